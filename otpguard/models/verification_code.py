"""Verification code model.

Short-lived, single-use codes keyed by (identity, purpose). The live code
for a pair is its most recently created row that is unconsumed and
unexpired. Dead rows stay behind until the stale code sweep deletes them.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from otpguard.models.base import Base, UTCDateTime


class VerificationCode(Base):
    """A 6-digit code issued to a phone number or email address."""

    __tablename__ = "verification_codes"

    # Monotonic key doubles as the tie-breaker for "most recent" lookups
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    identity: Mapped[str] = mapped_column(String(320), nullable=False)

    purpose: Mapped[str] = mapped_column(String(20), nullable=False)

    code: Mapped[str] = mapped_column(String(6), nullable=False)

    attempts: Mapped[int] = mapped_column(
        Integer(),
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    consumed: Mapped[bool] = mapped_column(
        Boolean(),
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        index=True,
    )

    consumed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<VerificationCode(id={self.id}, purpose={self.purpose}, "
            f"attempts={self.attempts}, consumed={self.consumed})>"
        )


Index(
    "ix_verification_codes_lookup",
    VerificationCode.identity,
    VerificationCode.purpose,
    VerificationCode.created_at.desc(),
    VerificationCode.id.desc(),
)
