# (c) Copyright Datacraft, 2026
"""Challenge issuance."""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

from mfa_core.config import get_settings
from mfa_core.db import MfaStore, MfaRepository
from mfa_core.errors import NotFound, Unverified, Unsupported, DeliveryFailed
from mfa_core.schema import (
	MfaMethod, MfaChallenge, ChallengeState, ChallengePurpose
)
from mfa_core.utils import utc_now, mask_destination
from .channels import DeliveryChannel
from .locks import KeyedLock

logger = logging.getLogger(__name__)


def generate_channel_code(digits: int = 6) -> str:
	"""Generate a zero-padded numeric one-time code."""
	return str(secrets.randbelow(10 ** digits)).zfill(digits)


class ChallengeIssuer:
	"""Creates time-bounded challenges and dispatches channel codes."""

	def __init__(
		self,
		store: MfaStore,
		channel: DeliveryChannel,
		user_locks: KeyedLock,
		challenge_locks: KeyedLock,
		clock: Callable[[], datetime] = utc_now,
	):
		settings = get_settings()
		self.store = store
		self.channel = channel
		self.user_locks = user_locks
		self.challenge_locks = challenge_locks
		self.clock = clock
		self.ttl = timedelta(seconds=settings.challenge_ttl_seconds)
		self.code_digits = settings.channel_code_digits

	def issue_challenge(
		self,
		user_id: UUID,
		method_id: UUID | None = None,
	) -> MfaChallenge:
		"""Open a login challenge against a verified method.

		Args:
			user_id: User being authenticated
			method_id: Specific method, defaults to the user's primary

		Returns:
			The new challenge. For sms/email methods the code has already
			been dispatched.

		Raises:
			NotFound: no eligible method
			Unverified: the requested method is not verified
			DeliveryFailed: the channel rejected the code
		"""
		with self.user_locks.hold(user_id):
			with self.store.unit_of_work() as repo:
				method = self._resolve_method(repo, user_id, method_id)
				challenge = self.open_challenge(repo, method, ChallengePurpose.LOGIN)

		logger.info(
			f"MFA challenge {challenge.id} issued for user {user_id} "
			f"via {method.kind.value}"
		)
		return challenge

	def _resolve_method(
		self,
		repo: MfaRepository,
		user_id: UUID,
		method_id: UUID | None,
	) -> MfaMethod:
		if method_id is not None:
			method = repo.get_method(method_id)
			if method is None or method.user_id != user_id:
				raise NotFound("MFA method not found")
			if not method.is_verified:
				raise Unverified()
			return method

		for method in repo.list_methods(user_id):
			if method.is_primary and method.is_verified:
				return method

		raise NotFound("No primary MFA method")

	def open_challenge(
		self,
		repo: MfaRepository,
		method: MfaMethod,
		purpose: ChallengePurpose,
	) -> MfaChallenge:
		"""Create a challenge inside the caller's unit of work.

		The caller must hold the user lock of the method's owner. Any
		still outstanding challenge for the same method is discarded.
		"""
		code = None
		if method.kind.is_channel:
			if not method.destination:
				raise Unsupported(f"{method.kind.value} method has no destination")
			code = generate_channel_code(self.code_digits)

		for stale in repo.list_challenges(method.id, ChallengeState.OUTSTANDING):
			stale.state = ChallengeState.DISCARDED
			repo.update_challenge(stale)

		now = self.clock()
		challenge = MfaChallenge(
			user_id=method.user_id,
			method_id=method.id,
			purpose=purpose,
			code=code,
			created_at=now,
			expires_at=now + self.ttl,
		)
		repo.add_challenge(challenge)

		# dispatch last; a failed send rolls back the whole unit of work
		if code is not None and not self.channel.send(method.destination, code):
			logger.warning(
				f"Delivery of MFA code to {mask_destination(method.destination)} failed"
			)
			raise DeliveryFailed()

		return challenge

	def cancel_challenge(self, challenge_id: UUID) -> None:
		"""Discard an outstanding challenge.

		Raises:
			NotFound: challenge absent, consumed or discarded
		"""
		with self.challenge_locks.hold(challenge_id):
			with self.store.unit_of_work() as repo:
				challenge = repo.get_challenge(challenge_id)
			if challenge is None or not challenge.is_outstanding:
				raise NotFound("MFA challenge not found")

			with self.user_locks.hold(challenge.user_id):
				with self.store.unit_of_work() as repo:
					challenge = repo.get_challenge(challenge_id)
					if challenge is None or not challenge.is_outstanding:
						raise NotFound("MFA challenge not found")
					challenge.state = ChallengeState.DISCARDED
					repo.update_challenge(challenge)

		logger.info(f"MFA challenge {challenge_id} cancelled")

	def purge_expired(self, now: datetime | None = None) -> int:
		"""Drop terminal and expired challenge records.

		Returns:
			Number of purged records
		"""
		with self.store.unit_of_work() as repo:
			purged = repo.purge_challenges(now or self.clock())

		if purged:
			logger.info(f"Purged {purged} stale MFA challenges")
		return purged
