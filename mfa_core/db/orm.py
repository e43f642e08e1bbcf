# (c) Copyright Datacraft, 2026
"""SQL tables for enrolled methods and challenges."""
import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import (
	String, ForeignKey, Index, Boolean, DateTime, Uuid, Enum as SAEnum
)
from sqlalchemy.orm import Mapped, mapped_column

from mfa_core.schema import MethodKind, ChallengeState, ChallengePurpose
from .base import Base


class MfaMethodRow(Base):
	"""One enrolled second factor."""

	__tablename__ = "mfa_methods"

	id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
	kind: Mapped[MethodKind] = mapped_column(
		SAEnum(MethodKind, native_enum=False, length=16), nullable=False
	)
	secret: Mapped[str | None] = mapped_column(String(128), nullable=True)
	destination: Mapped[str | None] = mapped_column(String(320), nullable=True)
	is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
	is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
	enrolled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
	last_used_at: Mapped[datetime | None] = mapped_column(
		DateTime(timezone=True), nullable=True
	)

	__table_args__ = (
		Index("idx_mfa_method_user", "user_id"),
	)

	def __repr__(self):
		return f"MfaMethodRow({self.kind}: {self.id})"


class MfaChallengeRow(Base):
	"""One authentication attempt window."""

	__tablename__ = "mfa_challenges"

	id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
	method_id: Mapped[UUID] = mapped_column(
		ForeignKey("mfa_methods.id", ondelete="CASCADE"), nullable=False
	)
	purpose: Mapped[ChallengePurpose] = mapped_column(
		SAEnum(ChallengePurpose, native_enum=False, length=16), nullable=False
	)
	code: Mapped[str | None] = mapped_column(String(16), nullable=True)
	state: Mapped[ChallengeState] = mapped_column(
		SAEnum(ChallengeState, native_enum=False, length=16), nullable=False
	)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
	expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

	__table_args__ = (
		Index("idx_mfa_challenge_method", "method_id"),
	)

	def __repr__(self):
		return f"MfaChallengeRow({self.state}: {self.id})"
