# (c) Copyright Datacraft, 2026
"""MFA enrollment and challenge/verification engine."""
from .errors import (
	MFAError, MFAErrorKind, NotFound, Unverified, Expired, InvalidCode,
	InvariantViolation, Unsupported, DeliveryFailed,
)
from .schema import (
	MfaMethod, MfaChallenge, MethodKind, MethodOptions, ChallengeState,
	ChallengePurpose, Registration, EnrollmentPayload, MFAResult,
)
from .mfa import MFAService

__all__ = [
	"MFAError",
	"MFAErrorKind",
	"NotFound",
	"Unverified",
	"Expired",
	"InvalidCode",
	"InvariantViolation",
	"Unsupported",
	"DeliveryFailed",
	"MfaMethod",
	"MfaChallenge",
	"MethodKind",
	"MethodOptions",
	"ChallengeState",
	"ChallengePurpose",
	"Registration",
	"EnrollmentPayload",
	"MFAResult",
	"MFAService",
]
