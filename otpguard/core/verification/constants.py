"""Verification policy defaults.

These are DEFAULTS. The running values come from Settings and are frozen
into a VerificationPolicy at startup.
"""

from typing import Final

# Code length is fixed: clients validate a 6-digit numeric field.
CODE_LENGTH: Final[int] = 6
CODE_SPACE: Final[int] = 10**CODE_LENGTH

# Lifetime of an issued code.
DEFAULT_CODE_TTL_MINUTES: Final[int] = 10

# Failed comparisons allowed against one code before it is dead,
# even if the account itself is not locked yet.
DEFAULT_MAX_CODE_ATTEMPTS: Final[int] = 3

# Failed verifications per identity (any purpose, any code) before the
# identity is locked.
DEFAULT_MAX_ACCOUNT_ATTEMPTS: Final[int] = 5

# Length of the lock window once the account threshold is reached.
DEFAULT_LOCK_MINUTES: Final[int] = 30
