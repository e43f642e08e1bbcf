# (c) Copyright Datacraft, 2026
import uuid
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .errors import MFAErrorKind
from .utils import utc_now


class MethodKind(str, Enum):
    TOTP = "totp"
    SMS = "sms"
    EMAIL = "email"
    BACKUP = "backup"

    @property
    def is_channel(self) -> bool:
        """Channel kinds receive their code out-of-band"""
        return self in (MethodKind.SMS, MethodKind.EMAIL)


class ChallengeState(str, Enum):
    OUTSTANDING = "outstanding"
    CONSUMED = "consumed"
    DISCARDED = "discarded"


class ChallengePurpose(str, Enum):
    LOGIN = "login"
    ENROLLMENT = "enrollment"


class MfaMethod(BaseModel):
    id: UUID = Field(default_factory=uuid.uuid4)
    user_id: UUID
    kind: MethodKind
    secret: str | None = None  # TOTP secret or backup code digest
    destination: str | None = None  # phone number or email address
    is_primary: bool = False
    is_verified: bool = False
    enrolled_at: datetime = Field(default_factory=utc_now)
    last_used_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class MfaChallenge(BaseModel):
    id: UUID = Field(default_factory=uuid.uuid4)
    user_id: UUID
    method_id: UUID
    purpose: ChallengePurpose = ChallengePurpose.LOGIN
    code: str | None = None  # only for sms/email
    state: ChallengeState = ChallengeState.OUTSTANDING
    created_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_outstanding(self) -> bool:
        return self.state == ChallengeState.OUTSTANDING

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class MethodOptions(BaseModel):
    """Kind specific registration options."""
    phone_number: str | None = None
    email_address: str | None = None
    account_name: str | None = None  # label shown in authenticator apps


class EnrollmentPayload(BaseModel):
    """Out-of-band display data for TOTP enrollment."""
    provisioning_uri: str
    qr_code_base64: str


class Registration(BaseModel):
    method: MfaMethod
    secret: str | None = None
    enrollment: EnrollmentPayload | None = None


class MFAResult(BaseModel):
    """Typed outcome of an MFA operation."""
    success: bool
    error: MFAErrorKind | None = None
    message: str | None = None
    value: Any = None
