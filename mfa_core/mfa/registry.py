# (c) Copyright Datacraft, 2026
"""Enrolled method registry."""
import logging
from datetime import datetime
from typing import Callable
from uuid import UUID

from mfa_core.config import get_settings
from mfa_core.db import MfaStore, MfaRepository
from mfa_core.errors import (
	NotFound, Unverified, Expired, InvalidCode, InvariantViolation, Unsupported
)
from mfa_core.schema import (
	MfaMethod, MfaChallenge, MethodKind, MethodOptions, Registration,
	ChallengeState, ChallengePurpose,
)
from mfa_core.utils import utc_now
from .backup import generate_backup_code, hash_backup_code
from .issuer import ChallengeIssuer
from .locks import KeyedLock
from .totp import TOTPManager
from .verifier import ChallengeVerifier

logger = logging.getLogger(__name__)


class MethodRegistry:
	"""Owns each user's set of enrolled methods.

	Every mutation runs under the owner's user lock inside a single unit
	of work, so no other caller observes two primaries or a method set
	mid-removal.
	"""

	def __init__(
		self,
		store: MfaStore,
		totp: TOTPManager,
		issuer: ChallengeIssuer,
		verifier: ChallengeVerifier,
		user_locks: KeyedLock,
		clock: Callable[[], datetime] = utc_now,
	):
		self.store = store
		self.totp = totp
		self.issuer = issuer
		self.verifier = verifier
		self.user_locks = user_locks
		self.clock = clock

	def register_method(
		self,
		user_id: UUID,
		kind: MethodKind,
		options: MethodOptions | None = None,
	) -> Registration:
		"""Create an unverified method.

		Args:
			user_id: Owner of the method
			kind: Method kind
			options: Destination for sms/email, account label for totp

		Returns:
			Registration with the method and, for totp and backup kinds,
			the plain secret (plus QR payload for totp). sms/email
			methods get an enrollment code dispatched instead.

		Raises:
			Unsupported: unknown kind, or sms/email without destination
			DeliveryFailed: enrollment code could not be sent
		"""
		try:
			kind = MethodKind(kind)
		except ValueError:
			raise Unsupported(f"Unknown MFA method kind: {kind}") from None
		options = options or MethodOptions()
		method = MfaMethod(user_id=user_id, kind=kind, enrolled_at=self.clock())
		secret = None
		enrollment = None

		if kind == MethodKind.TOTP:
			secret = self.totp.generate_secret()
			method.secret = secret
			enrollment = self.totp.enrollment_payload(
				secret, options.account_name or str(user_id)
			)
		elif kind == MethodKind.SMS:
			if not options.phone_number:
				raise Unsupported("SMS method requires a phone number")
			method.destination = options.phone_number
		elif kind == MethodKind.EMAIL:
			if not options.email_address:
				raise Unsupported("Email method requires an email address")
			method.destination = options.email_address
		elif kind == MethodKind.BACKUP:
			secret = generate_backup_code(get_settings().backup_code_length)
			method.secret = hash_backup_code(secret)

		with self.user_locks.hold(user_id):
			with self.store.unit_of_work() as repo:
				repo.add_method(method)
				if kind.is_channel:
					self.issuer.open_challenge(repo, method, ChallengePurpose.ENROLLMENT)

		logger.info(f"MFA {kind.value} method {method.id} registered for user {user_id}")

		return Registration(method=method, secret=secret, enrollment=enrollment)

	def resend_enrollment_code(self, method_id: UUID) -> MfaChallenge:
		"""Send a new enrollment code for an unverified sms/email method.

		Raises:
			NotFound: unknown or already verified method
			Unsupported: method kind has no channel
		"""
		method = self._peek(method_id)
		with self.user_locks.hold(method.user_id):
			with self.store.unit_of_work() as repo:
				method = self._get(repo, method_id)
				if method.is_verified:
					raise NotFound("MFA method has no pending enrollment")
				if not method.kind.is_channel:
					raise Unsupported(f"{method.kind.value} methods receive no codes")
				return self.issuer.open_challenge(
					repo, method, ChallengePurpose.ENROLLMENT
				)

	def confirm_enrollment(self, method_id: UUID, code: str) -> MfaMethod:
		"""Verify a freshly registered method.

		Applies the same kind specific check as challenge verification.
		The method becomes primary when the user has none, which always
		holds for the first method a user verifies.

		Raises:
			NotFound: unknown or already verified method, or no enrollment
				code outstanding
			Expired: enrollment code lapsed; it is discarded
			InvalidCode: code mismatch
		"""
		method = self._peek(method_id)
		expired = False

		with self.user_locks.hold(method.user_id):
			with self.store.unit_of_work() as repo:
				method = self._get(repo, method_id)
				if method.is_verified:
					raise NotFound("MFA method has no pending enrollment")

				now = self.clock()
				challenge = None
				if method.kind.is_channel:
					challenge = self._enrollment_challenge(repo, method)
					if challenge.is_expired(now):
						challenge.state = ChallengeState.DISCARDED
						repo.update_challenge(challenge)
						expired = True

				if not expired:
					if not self.verifier.code_matches(method, challenge, code, now):
						raise InvalidCode()

					if challenge is not None:
						challenge.state = ChallengeState.CONSUMED
						repo.update_challenge(challenge)

					has_primary = any(
						m.is_primary for m in repo.list_methods(method.user_id)
					)
					method.is_verified = True
					method.is_primary = not has_primary
					repo.update_method(method)

		if expired:
			raise Expired("Enrollment code expired")

		logger.info(
			f"MFA method {method_id} verified for user {method.user_id}"
			+ (" and made primary" if method.is_primary else "")
		)
		return method

	def set_primary_method(self, method_id: UUID) -> MfaMethod:
		"""Make a verified method the user's primary.

		Raises:
			NotFound: unknown method
			Unverified: method is not verified
		"""
		method = self._peek(method_id)

		with self.user_locks.hold(method.user_id):
			with self.store.unit_of_work() as repo:
				method = self._get(repo, method_id)
				if not method.is_verified:
					raise Unverified()

				for other in repo.list_methods(method.user_id):
					if other.is_primary and other.id != method.id:
						other.is_primary = False
						repo.update_method(other)

				method.is_primary = True
				repo.update_method(method)

		logger.info(f"MFA method {method_id} is now primary for user {method.user_id}")
		return method

	def remove_method(self, method_id: UUID) -> None:
		"""Delete a method.

		Removing the primary auto-promotes the earliest enrolled
		remaining verified non-backup method, if any; otherwise the user
		stays primary-less until one is assigned.

		Raises:
			NotFound: unknown method
			InvariantViolation: method is the user's last verified one
		"""
		method = self._peek(method_id)

		with self.user_locks.hold(method.user_id):
			with self.store.unit_of_work() as repo:
				method = self._get(repo, method_id)
				others = [
					m for m in repo.list_methods(method.user_id)
					if m.id != method.id
				]
				remaining_verified = [m for m in others if m.is_verified]
				if method.is_verified and not remaining_verified:
					raise InvariantViolation(
						"Cannot remove the only verified MFA method"
					)

				for challenge in repo.list_challenges(
					method.id, ChallengeState.OUTSTANDING
				):
					challenge.state = ChallengeState.DISCARDED
					repo.update_challenge(challenge)
				repo.delete_method(method.id)

				promoted = None
				if method.is_primary:
					promoted = next(
						(m for m in remaining_verified if m.kind != MethodKind.BACKUP),
						None,
					)
					if promoted is not None:
						promoted.is_primary = True
						repo.update_method(promoted)

		logger.info(f"MFA method {method_id} removed for user {method.user_id}")
		if promoted is not None:
			logger.info(f"MFA method {promoted.id} promoted to primary")

	def list_methods(self, user_id: UUID) -> list[MfaMethod]:
		"""All methods of the user, ordered by enrollment time."""
		with self.store.unit_of_work() as repo:
			return repo.list_methods(user_id)

	def get_method(self, method_id: UUID) -> MfaMethod:
		return self._peek(method_id)

	def _peek(self, method_id: UUID) -> MfaMethod:
		with self.store.unit_of_work() as repo:
			return self._get(repo, method_id)

	@staticmethod
	def _get(repo: MfaRepository, method_id: UUID) -> MfaMethod:
		method = repo.get_method(method_id)
		if method is None:
			raise NotFound("MFA method not found")
		return method

	@staticmethod
	def _enrollment_challenge(repo: MfaRepository, method: MfaMethod) -> MfaChallenge:
		for challenge in reversed(
			repo.list_challenges(method.id, ChallengeState.OUTSTANDING)
		):
			if challenge.purpose == ChallengePurpose.ENROLLMENT:
				return challenge
		raise NotFound("No enrollment code outstanding")
