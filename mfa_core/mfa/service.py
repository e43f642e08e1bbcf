# (c) Copyright Datacraft, 2026
"""MFA service for managing multi-factor authentication."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from mfa_core.db import MfaStore, InMemoryStore
from mfa_core.errors import MFAError, InvalidCode
from mfa_core.schema import MfaMethod, MethodKind, MethodOptions, MFAResult
from mfa_core.utils import utc_now
from .backup import BackupCodeGenerator, verify_backup_code
from .channels import DeliveryChannel, LoggingChannel
from .issuer import ChallengeIssuer
from .locks import KeyedLock
from .registry import MethodRegistry
from .totp import TOTPManager
from .verifier import ChallengeVerifier


def _outcome(operation: Callable[[], Any]) -> MFAResult:
	try:
		value = operation()
	except MFAError as exc:
		return MFAResult(success=False, error=exc.kind, message=exc.message)
	return MFAResult(success=True, value=value)


@dataclass
class MFAService:
	"""Entry point for an authentication service.

	Every operation returns an MFAResult: either success with a value,
	or failure carrying exactly one MFAErrorKind. Failed operations
	leave stored methods and challenges unchanged.
	"""

	store: MfaStore = field(default_factory=InMemoryStore)
	channel: DeliveryChannel = field(default_factory=LoggingChannel)
	totp_manager: TOTPManager = field(default_factory=TOTPManager)
	clock: Callable[[], datetime] = utc_now

	def __post_init__(self):
		user_locks = KeyedLock()
		challenge_locks = KeyedLock()

		self.verifier = ChallengeVerifier(
			self.store, self.totp_manager, user_locks, challenge_locks, self.clock
		)
		self.issuer = ChallengeIssuer(
			self.store, self.channel, user_locks, challenge_locks, self.clock
		)
		self.registry = MethodRegistry(
			self.store,
			self.totp_manager,
			self.issuer,
			self.verifier,
			user_locks,
			self.clock,
		)
		self.backup_codes = BackupCodeGenerator(
			self.store, user_locks, clock=self.clock
		)

	def register_method(
		self,
		user_id: UUID,
		kind: MethodKind,
		options: MethodOptions | None = None,
	) -> MFAResult:
		"""Value: Registration."""
		return _outcome(lambda: self.registry.register_method(user_id, kind, options))

	def resend_enrollment_code(self, method_id: UUID) -> MFAResult:
		return _outcome(lambda: self.registry.resend_enrollment_code(method_id))

	def confirm_enrollment(self, method_id: UUID, code: str) -> MFAResult:
		"""Value: the verified MfaMethod."""
		return _outcome(lambda: self.registry.confirm_enrollment(method_id, code))

	def set_primary_method(self, method_id: UUID) -> MFAResult:
		return _outcome(lambda: self.registry.set_primary_method(method_id))

	def remove_method(self, method_id: UUID) -> MFAResult:
		return _outcome(lambda: self.registry.remove_method(method_id))

	def list_methods(self, user_id: UUID) -> list[MfaMethod]:
		return self.registry.list_methods(user_id)

	def issue_challenge(
		self,
		user_id: UUID,
		method_id: UUID | None = None,
	) -> MFAResult:
		"""Value: MfaChallenge."""
		return _outcome(lambda: self.issuer.issue_challenge(user_id, method_id))

	def cancel_challenge(self, challenge_id: UUID) -> MFAResult:
		return _outcome(lambda: self.issuer.cancel_challenge(challenge_id))

	def verify_challenge(self, challenge_id: UUID, code: str) -> MFAResult:
		"""Value: the MfaMethod that satisfied the challenge."""
		return _outcome(lambda: self.verifier.verify_challenge(challenge_id, code))

	def redeem_backup_code(self, user_id: UUID, code: str) -> MFAResult:
		"""Satisfy a login with a backup code alone.

		Finds the user's backup method holding the code, then runs the
		regular issue/verify path against it.
		"""
		def redeem():
			for method in self.registry.list_methods(user_id):
				if (
					method.kind == MethodKind.BACKUP
					and method.secret
					and verify_backup_code(code, method.secret, self.backup_codes.code_length)
				):
					challenge = self.issuer.issue_challenge(user_id, method.id)
					return self.verifier.verify_challenge(challenge.id, code)
			raise InvalidCode()

		return _outcome(redeem)

	def generate_backup_codes(self, user_id: UUID, count: int | None = None) -> MFAResult:
		"""Value: list of plain text codes, shown to the user once."""
		return _outcome(lambda: self.backup_codes.generate_backup_codes(user_id, count))

	def remaining_backup_codes(self, user_id: UUID) -> int:
		return self.backup_codes.count_remaining(user_id)

	def purge_expired_challenges(self) -> int:
		return self.issuer.purge_expired()
