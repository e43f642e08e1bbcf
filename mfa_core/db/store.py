# (c) Copyright Datacraft, 2026
"""Persistence contract for MFA methods and challenges."""
import abc
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator
from uuid import UUID

from mfa_core.errors import NotFound
from mfa_core.schema import MfaMethod, MfaChallenge, ChallengeState


class MfaRepository(abc.ABC):
	"""CRUD-by-id and list-by-user access inside one unit of work."""

	@abc.abstractmethod
	def get_method(self, method_id: UUID) -> MfaMethod | None: ...

	@abc.abstractmethod
	def add_method(self, method: MfaMethod) -> None: ...

	@abc.abstractmethod
	def update_method(self, method: MfaMethod) -> None:
		"""Raises NotFound when the method does not exist."""

	@abc.abstractmethod
	def delete_method(self, method_id: UUID) -> None:
		"""Delete the method together with its challenges."""

	@abc.abstractmethod
	def list_methods(self, user_id: UUID) -> list[MfaMethod]:
		"""All methods of the user ordered by (enrolled_at, id)."""

	@abc.abstractmethod
	def get_challenge(self, challenge_id: UUID) -> MfaChallenge | None: ...

	@abc.abstractmethod
	def add_challenge(self, challenge: MfaChallenge) -> None: ...

	@abc.abstractmethod
	def update_challenge(self, challenge: MfaChallenge) -> None:
		"""Raises NotFound when the challenge does not exist."""

	@abc.abstractmethod
	def list_challenges(
		self,
		method_id: UUID,
		state: ChallengeState | None = None,
	) -> list[MfaChallenge]: ...

	@abc.abstractmethod
	def purge_challenges(self, now: datetime) -> int:
		"""Delete terminal challenges and those past their window.

		Returns:
			Number of deleted records
		"""


class MfaStore(abc.ABC):
	"""Storage engine handing out transactional repositories."""

	@abc.abstractmethod
	@contextmanager
	def unit_of_work(self) -> Iterator[MfaRepository]:
		"""Yield a repository; commit on clean exit, roll back on error."""


def _sort_key(method: MfaMethod):
	return method.enrolled_at, str(method.id)


class InMemoryRepository(MfaRepository):
	"""Buffers writes until the unit of work commits.

	Reads see committed state overlaid with this unit's own staged
	changes. A staged value of None marks a deletion.
	"""

	def __init__(self, store: "InMemoryStore"):
		self._store = store
		self._methods: dict[UUID, MfaMethod | None] = {}
		self._challenges: dict[UUID, MfaChallenge | None] = {}

	def get_method(self, method_id: UUID) -> MfaMethod | None:
		if method_id in self._methods:
			method = self._methods[method_id]
		else:
			with self._store.lock:
				method = self._store.methods.get(method_id)
		return method.model_copy() if method else None

	def add_method(self, method: MfaMethod) -> None:
		self._methods[method.id] = method.model_copy()

	def update_method(self, method: MfaMethod) -> None:
		if self.get_method(method.id) is None:
			raise NotFound(f"MFA method {method.id} does not exist")
		self._methods[method.id] = method.model_copy()

	def delete_method(self, method_id: UUID) -> None:
		self._methods[method_id] = None
		for challenge in self.list_challenges(method_id):
			self._challenges[challenge.id] = None

	def list_methods(self, user_id: UUID) -> list[MfaMethod]:
		with self._store.lock:
			merged = {
				m.id: m for m in self._store.methods.values()
				if m.user_id == user_id
			}
		for method_id, method in self._methods.items():
			if method is None:
				merged.pop(method_id, None)
			elif method.user_id == user_id:
				merged[method_id] = method
		return [m.model_copy() for m in sorted(merged.values(), key=_sort_key)]

	def get_challenge(self, challenge_id: UUID) -> MfaChallenge | None:
		if challenge_id in self._challenges:
			challenge = self._challenges[challenge_id]
		else:
			with self._store.lock:
				challenge = self._store.challenges.get(challenge_id)
		return challenge.model_copy() if challenge else None

	def add_challenge(self, challenge: MfaChallenge) -> None:
		self._challenges[challenge.id] = challenge.model_copy()

	def update_challenge(self, challenge: MfaChallenge) -> None:
		if self.get_challenge(challenge.id) is None:
			raise NotFound(f"MFA challenge {challenge.id} does not exist")
		self._challenges[challenge.id] = challenge.model_copy()

	def list_challenges(
		self,
		method_id: UUID,
		state: ChallengeState | None = None,
	) -> list[MfaChallenge]:
		with self._store.lock:
			merged = {
				c.id: c for c in self._store.challenges.values()
				if c.method_id == method_id
			}
		for challenge_id, challenge in self._challenges.items():
			if challenge is None:
				merged.pop(challenge_id, None)
			elif challenge.method_id == method_id:
				merged[challenge_id] = challenge
		return [
			c.model_copy()
			for c in sorted(merged.values(), key=lambda c: c.created_at)
			if state is None or c.state == state
		]

	def purge_challenges(self, now: datetime) -> int:
		with self._store.lock:
			stale = [
				c.id for c in self._store.challenges.values()
				if not c.is_outstanding or c.is_expired(now)
			]
		for challenge_id in stale:
			self._challenges[challenge_id] = None
		return len(stale)

	def commit(self) -> None:
		with self._store.lock:
			for method_id, method in self._methods.items():
				if method is None:
					self._store.methods.pop(method_id, None)
				else:
					self._store.methods[method_id] = method
			for challenge_id, challenge in self._challenges.items():
				if challenge is None:
					self._store.challenges.pop(challenge_id, None)
				else:
					self._store.challenges[challenge_id] = challenge
		self._methods.clear()
		self._challenges.clear()


class InMemoryStore(MfaStore):
	"""Keyed collections guarded by a single lock."""

	def __init__(self):
		self.lock = threading.RLock()
		self.methods: dict[UUID, MfaMethod] = {}
		self.challenges: dict[UUID, MfaChallenge] = {}

	@contextmanager
	def unit_of_work(self) -> Iterator[MfaRepository]:
		repo = InMemoryRepository(self)
		# staged writes are simply dropped when the block raises
		yield repo
		repo.commit()
