"""Identity normalization and masking.

All counters are keyed by the normalized identity, so "+1 (555) 123-4567"
and "15551234567" share one lockout state.
"""

import re

from otpguard.core.verification.exceptions import InvalidIdentityError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_SEPARATORS_RE = re.compile(r"[\s().\-]")

# E.164 allows at most 15 digits; 7 rules out obvious junk.
_MIN_PHONE_DIGITS = 7
_MAX_PHONE_DIGITS = 15
_MAX_EMAIL_LENGTH = 320


def normalize_identity(raw: str) -> str:
    """Return the canonical form of a phone number or email address.

    Emails are trimmed and lower-cased. Phone numbers are reduced to
    ``+`` followed by their digits.

    Raises:
        InvalidIdentityError: If the value is neither.
    """
    value = (raw or "").strip()
    if not value:
        raise InvalidIdentityError("Identity must not be empty")

    if "@" in value:
        email = value.lower()
        if len(email) > _MAX_EMAIL_LENGTH or not _EMAIL_RE.match(email):
            raise InvalidIdentityError("Invalid email address")
        return email

    phone = _PHONE_SEPARATORS_RE.sub("", value)
    if phone.startswith("+"):
        phone = phone[1:]
    if not phone.isascii() or not phone.isdigit():
        raise InvalidIdentityError("Invalid phone number")
    if not _MIN_PHONE_DIGITS <= len(phone) <= _MAX_PHONE_DIGITS:
        raise InvalidIdentityError("Invalid phone number")
    return f"+{phone}"


def mask_identity(identity: str) -> str:
    """Mask an identity for logs: ``j***@example.com``, ``+155****4567``."""
    if "@" in identity:
        local, _, domain = identity.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(identity) <= 4:
        return "****"
    return f"{identity[:4]}****{identity[-4:]}"
