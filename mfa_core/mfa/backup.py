# (c) Copyright Datacraft, 2026
"""Backup codes for MFA recovery."""

import hashlib
import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from mfa_core.config import get_settings
from mfa_core.db import MfaStore
from mfa_core.errors import Unsupported
from mfa_core.schema import MfaMethod, MethodKind
from mfa_core.utils import utc_now
from .locks import KeyedLock

logger = logging.getLogger(__name__)

BACKUP_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_backup_code(length: int = 8) -> str:
	"""Draw one code from the uppercase-letter-and-digit alphabet."""
	return "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(length))


def hash_backup_code(code: str) -> str:
	"""Hash a backup code for secure storage.

	Args:
		code: Plain text backup code

	Returns:
		SHA-256 hash of the code
	"""
	return hashlib.sha256(code.encode()).hexdigest()


def is_well_formed(code: str, length: int = 8) -> bool:
	return len(code) == length and all(c in BACKUP_CODE_ALPHABET for c in code)


def verify_backup_code(code: str, stored_hash: str, length: int = 8) -> bool:
	"""Verify a backup code against stored hash.

	Args:
		code: Plain text backup code to verify
		stored_hash: Stored hash to compare against
		length: Expected code length

	Returns:
		True if code is well formed and matches
	"""
	if not is_well_formed(code, length):
		return False
	return secrets.compare_digest(hash_backup_code(code), stored_hash)


class BackupCodeGenerator:
	"""Mints pre-verified, single-use backup methods."""

	def __init__(
		self,
		store: MfaStore,
		user_locks: KeyedLock,
		code_length: int | None = None,
		clock: Callable[[], datetime] = utc_now,
	):
		self.store = store
		self.user_locks = user_locks
		self.code_length = code_length or get_settings().backup_code_length
		self.clock = clock

	def generate_backup_codes(self, user_id: UUID, count: int | None = None) -> list[str]:
		"""Generate backup codes and register each as a verified method.

		Possession of a code at generation time counts as proof of
		enrollment, so no confirmation step applies.

		Args:
			user_id: Owner of the new methods
			count: Number of codes to generate

		Returns:
			Plain text codes. They are not retained anywhere, callers
			must show or persist them immediately.

		Raises:
			Unsupported: count is not positive
		"""
		if count is None:
			count = get_settings().backup_codes_count
		if count < 1:
			raise Unsupported("Backup code count must be positive")

		codes: list[str] = []
		while len(codes) < count:
			code = generate_backup_code(self.code_length)
			if code not in codes:
				codes.append(code)

		now = self.clock()
		with self.user_locks.hold(user_id):
			with self.store.unit_of_work() as repo:
				for code in codes:
					repo.add_method(
						MfaMethod(
							user_id=user_id,
							kind=MethodKind.BACKUP,
							secret=hash_backup_code(code),
							is_verified=True,
							is_primary=False,
							enrolled_at=now,
						)
					)

		logger.info(f"{count} backup codes generated for user {user_id}")

		return codes

	def count_remaining(self, user_id: UUID) -> int:
		"""Count remaining unused backup codes."""
		with self.store.unit_of_work() as repo:
			return sum(
				1 for m in repo.list_methods(user_id) if m.kind == MethodKind.BACKUP
			)


def format_codes_for_display(codes: list[str], issuer: str | None = None) -> str:
	"""Format backup codes for user display/download.

	Args:
		codes: List of plain text codes
		issuer: Heading shown above the codes

	Returns:
		Formatted string with numbered codes
	"""
	issuer = issuer or get_settings().totp_issuer
	lines = [f"{issuer} Backup Codes", "=" * 30, ""]
	lines.append("Store these codes in a safe place.")
	lines.append("Each code can only be used once.")
	lines.append("")

	for i, code in enumerate(codes, 1):
		lines.append(f"{i:2}. {code}")

	lines.append("")
	lines.append(f"Generated: {datetime.now(timezone.utc).isoformat()}")

	return "\n".join(lines)
