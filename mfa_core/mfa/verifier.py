# (c) Copyright Datacraft, 2026
"""Challenge verification."""
import hmac
import logging
from datetime import datetime
from typing import Callable
from uuid import UUID

from mfa_core.config import get_settings
from mfa_core.db import MfaStore, MfaRepository
from mfa_core.errors import NotFound, Expired, InvalidCode
from mfa_core.schema import (
	MfaMethod, MfaChallenge, MethodKind, ChallengeState, ChallengePurpose
)
from mfa_core.utils import utc_now
from .backup import verify_backup_code
from .locks import KeyedLock
from .totp import TOTPManager

logger = logging.getLogger(__name__)


class ChallengeVerifier:
	"""Validates submitted codes against outstanding challenges."""

	def __init__(
		self,
		store: MfaStore,
		totp: TOTPManager,
		user_locks: KeyedLock,
		challenge_locks: KeyedLock,
		clock: Callable[[], datetime] = utc_now,
	):
		self.store = store
		self.totp = totp
		self.user_locks = user_locks
		self.challenge_locks = challenge_locks
		self.clock = clock
		self.backup_code_length = get_settings().backup_code_length

	def code_matches(
		self,
		method: MfaMethod,
		challenge: MfaChallenge | None,
		code: str,
		now: datetime,
	) -> bool:
		"""Kind specific code check, shared with enrollment confirmation.

		Args:
			method: Target method
			challenge: Challenge carrying the issued code (sms/email only)
			code: Submitted code
			now: Verifier's current time

		Returns:
			True if the code satisfies the method
		"""
		if method.kind == MethodKind.TOTP:
			if not method.secret:
				return False
			return self.totp.time_step_delta(method.secret, code, for_time=now) == 0

		if method.kind.is_channel:
			if challenge is None or challenge.code is None:
				return False
			return hmac.compare_digest(code.encode(), challenge.code.encode())

		if method.kind == MethodKind.BACKUP:
			if not method.secret:
				return False
			return verify_backup_code(code, method.secret, self.backup_code_length)

		return False

	def verify_challenge(self, challenge_id: UUID, submitted_code: str) -> MfaMethod:
		"""Verify a code against an outstanding challenge.

		Args:
			challenge_id: Challenge to verify
			submitted_code: Code entered by the user

		Returns:
			The method that satisfied the challenge (already deleted
			from the store for backup codes)

		Raises:
			NotFound: challenge absent, consumed or discarded, or its
				method no longer exists
			Expired: challenge is past its window; it is discarded
			InvalidCode: code mismatch; challenge stays outstanding
		"""
		with self.challenge_locks.hold(challenge_id):
			# peek to find whose method set the verification touches
			with self.store.unit_of_work() as repo:
				challenge = repo.get_challenge(challenge_id)
			if challenge is None or not challenge.is_outstanding:
				raise NotFound("MFA challenge not found")

			with self.user_locks.hold(challenge.user_id):
				return self._verify_locked(challenge_id, submitted_code)

	def _verify_locked(self, challenge_id: UUID, submitted_code: str) -> MfaMethod:
		now = self.clock()
		expired = False

		with self.store.unit_of_work() as repo:
			challenge = repo.get_challenge(challenge_id)
			# enrollment codes are only redeemable through confirm_enrollment
			if (
				challenge is None
				or not challenge.is_outstanding
				or challenge.purpose != ChallengePurpose.LOGIN
			):
				raise NotFound("MFA challenge not found")

			if challenge.is_expired(now):
				challenge.state = ChallengeState.DISCARDED
				repo.update_challenge(challenge)
				expired = True
			else:
				method = self.target_method(repo, challenge)
				if not self.code_matches(method, challenge, submitted_code, now):
					raise InvalidCode()

				self._consume(repo, method, challenge, now)

		if expired:
			logger.info(f"MFA challenge {challenge_id} expired")
			raise Expired()

		logger.info(f"MFA challenge {challenge_id} satisfied with {method.kind.value} method")
		return method

	def target_method(self, repo: MfaRepository, challenge: MfaChallenge) -> MfaMethod:
		method = repo.get_method(challenge.method_id)
		if method is None or method.user_id != challenge.user_id:
			raise NotFound("MFA method not found")
		return method

	def _consume(
		self,
		repo: MfaRepository,
		method: MfaMethod,
		challenge: MfaChallenge,
		now: datetime,
	) -> None:
		challenge.state = ChallengeState.CONSUMED
		repo.update_challenge(challenge)

		method.last_used_at = now
		if method.kind == MethodKind.BACKUP:
			repo.delete_method(method.id)
			logger.warning(f"Backup code used for user {method.user_id}")
		else:
			repo.update_method(method)
