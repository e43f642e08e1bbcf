# (c) Copyright Datacraft, 2026
"""Multi-Factor Authentication module."""

from .totp import TOTPManager
from .backup import BackupCodeGenerator, format_codes_for_display
from .channels import DeliveryChannel, LoggingChannel
from .issuer import ChallengeIssuer
from .locks import KeyedLock
from .registry import MethodRegistry
from .verifier import ChallengeVerifier
from .service import MFAService

__all__ = [
	"TOTPManager",
	"BackupCodeGenerator",
	"format_codes_for_display",
	"DeliveryChannel",
	"LoggingChannel",
	"ChallengeIssuer",
	"KeyedLock",
	"MethodRegistry",
	"ChallengeVerifier",
	"MFAService",
]
