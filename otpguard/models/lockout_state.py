"""Per-identity lockout state model."""

from datetime import datetime

from sqlalchemy import Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from otpguard.models.base import Base, UTCDateTime


class LockoutState(Base):
    """Account-wide failed verification counter for one identity.

    Shared across purposes. Created lazily and never deleted. A
    ``locked_until`` in the past means unlocked; nothing clears it
    until the next success.
    """

    __tablename__ = "lockout_states"

    identity: Mapped[str] = mapped_column(String(320), primary_key=True)

    failed_attempts: Mapped[int] = mapped_column(
        Integer(),
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    locked_until: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    last_failure_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )

    last_success_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<LockoutState(failed_attempts={self.failed_attempts}, "
            f"locked_until={self.locked_until})>"
        )
