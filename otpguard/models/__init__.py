# Database Models
from otpguard.models.base import Base, UTCDateTime
from otpguard.models.lockout_state import LockoutState
from otpguard.models.verification_code import VerificationCode

__all__ = [
    "Base",
    "LockoutState",
    "UTCDateTime",
    "VerificationCode",
]
