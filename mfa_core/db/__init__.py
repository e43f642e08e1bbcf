# (c) Copyright Datacraft, 2026
from .store import MfaRepository, MfaStore, InMemoryStore
from .sql import SqlStore
from .engine import create_db_engine, create_tables

__all__ = [
	"MfaRepository",
	"MfaStore",
	"InMemoryStore",
	"SqlStore",
	"create_db_engine",
	"create_tables",
]
