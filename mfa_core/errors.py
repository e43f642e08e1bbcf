# (c) Copyright Datacraft, 2026
"""Error taxonomy for MFA operations."""
from enum import Enum


class MFAErrorKind(str, Enum):
	"""Kinds of failure an MFA operation can report."""
	NOT_FOUND = "not_found"
	UNVERIFIED = "unverified"
	EXPIRED = "expired"
	INVALID_CODE = "invalid_code"
	INVARIANT_VIOLATION = "invariant_violation"
	UNSUPPORTED = "unsupported"
	DELIVERY_FAILED = "delivery_failed"


class MFAError(Exception):
	"""Base class for MFA failures."""
	kind: MFAErrorKind
	default_message = "MFA operation failed"

	def __init__(self, message: str | None = None):
		self.message = message or self.default_message
		super().__init__(self.message)


class NotFound(MFAError):
	"""Method or challenge absent, or challenge already consumed."""
	kind = MFAErrorKind.NOT_FOUND
	default_message = "Not found"


class Unverified(MFAError):
	"""Operation requires a verified method."""
	kind = MFAErrorKind.UNVERIFIED
	default_message = "Method is not verified"


class Expired(MFAError):
	"""Challenge is past its window."""
	kind = MFAErrorKind.EXPIRED
	default_message = "Challenge expired"


class InvalidCode(MFAError):
	kind = MFAErrorKind.INVALID_CODE
	default_message = "Invalid code"


class InvariantViolation(MFAError):
	"""Operation would break a method-set invariant."""
	kind = MFAErrorKind.INVARIANT_VIOLATION
	default_message = "Operation would violate an MFA invariant"


class Unsupported(MFAError):
	"""Method kind is missing something it requires."""
	kind = MFAErrorKind.UNSUPPORTED
	default_message = "Unsupported method configuration"


class DeliveryFailed(MFAError):
	"""Delivery channel could not send the code."""
	kind = MFAErrorKind.DELIVERY_FAILED
	default_message = "Could not deliver code"
