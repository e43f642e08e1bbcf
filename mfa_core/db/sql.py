# (c) Copyright Datacraft, 2026
"""SQLAlchemy backed MFA store."""
import logging
import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime
from typing import Iterator
from uuid import UUID

from sqlalchemy import Engine, select, delete, or_
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mfa_core.errors import NotFound
from mfa_core.schema import MfaMethod, MfaChallenge, ChallengeState
from mfa_core.utils import as_utc
from .orm import MfaMethodRow, MfaChallengeRow
from .store import MfaRepository, MfaStore

logger = logging.getLogger(__name__)


def _to_method(row: MfaMethodRow) -> MfaMethod:
	method = MfaMethod.model_validate(row)
	method.enrolled_at = as_utc(method.enrolled_at)
	method.last_used_at = as_utc(method.last_used_at)
	return method


def _to_challenge(row: MfaChallengeRow) -> MfaChallenge:
	challenge = MfaChallenge.model_validate(row)
	challenge.created_at = as_utc(challenge.created_at)
	challenge.expires_at = as_utc(challenge.expires_at)
	return challenge


class SqlRepository(MfaRepository):
	"""Repository bound to one session/transaction."""

	def __init__(self, session: Session):
		self.session = session

	def get_method(self, method_id: UUID) -> MfaMethod | None:
		row = self.session.get(MfaMethodRow, method_id)
		return _to_method(row) if row else None

	def add_method(self, method: MfaMethod) -> None:
		self.session.add(MfaMethodRow(**method.model_dump()))
		self.session.flush()

	def update_method(self, method: MfaMethod) -> None:
		row = self.session.get(MfaMethodRow, method.id)
		if row is None:
			raise NotFound(f"MFA method {method.id} does not exist")
		for key, value in method.model_dump(exclude={"id"}).items():
			setattr(row, key, value)
		self.session.flush()

	def delete_method(self, method_id: UUID) -> None:
		self.session.execute(
			delete(MfaChallengeRow).where(MfaChallengeRow.method_id == method_id)
		)
		self.session.execute(delete(MfaMethodRow).where(MfaMethodRow.id == method_id))

	def list_methods(self, user_id: UUID) -> list[MfaMethod]:
		stmt = (
			select(MfaMethodRow)
			.where(MfaMethodRow.user_id == user_id)
			.order_by(MfaMethodRow.enrolled_at, MfaMethodRow.id)
		)
		return [_to_method(row) for row in self.session.scalars(stmt)]

	def get_challenge(self, challenge_id: UUID) -> MfaChallenge | None:
		row = self.session.get(MfaChallengeRow, challenge_id)
		return _to_challenge(row) if row else None

	def add_challenge(self, challenge: MfaChallenge) -> None:
		self.session.add(MfaChallengeRow(**challenge.model_dump()))
		self.session.flush()

	def update_challenge(self, challenge: MfaChallenge) -> None:
		row = self.session.get(MfaChallengeRow, challenge.id)
		if row is None:
			raise NotFound(f"MFA challenge {challenge.id} does not exist")
		for key, value in challenge.model_dump(exclude={"id"}).items():
			setattr(row, key, value)
		self.session.flush()

	def list_challenges(
		self,
		method_id: UUID,
		state: ChallengeState | None = None,
	) -> list[MfaChallenge]:
		stmt = select(MfaChallengeRow).where(MfaChallengeRow.method_id == method_id)
		if state is not None:
			stmt = stmt.where(MfaChallengeRow.state == state)
		stmt = stmt.order_by(MfaChallengeRow.created_at)
		return [_to_challenge(row) for row in self.session.scalars(stmt)]

	def purge_challenges(self, now: datetime) -> int:
		result = self.session.execute(
			delete(MfaChallengeRow).where(
				or_(
					MfaChallengeRow.state != ChallengeState.OUTSTANDING,
					MfaChallengeRow.expires_at < now,
				)
			)
		)
		return result.rowcount


class SqlStore(MfaStore):
	"""One transaction per unit of work.

	Engines sharing a single connection (StaticPool, used for in-memory
	SQLite) run one unit of work at a time, otherwise a commit in one
	thread would also commit another thread's pending writes.
	"""

	def __init__(self, engine: Engine):
		self.engine = engine
		self.Session = sessionmaker(engine, expire_on_commit=False)
		self._serial = (
			threading.Lock() if isinstance(engine.pool, StaticPool) else None
		)

	@contextmanager
	def unit_of_work(self) -> Iterator[MfaRepository]:
		with self._serial or nullcontext():
			with self.Session.begin() as session:
				yield SqlRepository(session)
