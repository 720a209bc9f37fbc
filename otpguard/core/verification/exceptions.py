"""Verification error types."""


class VerificationStoreError(Exception):
    """The persistent store could not complete an operation.

    Raised for connection failures, timeouts and driver errors. Callers
    must treat it as an infrastructure fault, never as a failed guess.
    """


class InvalidIdentityError(ValueError):
    """The identity is neither a usable phone number nor an email address."""
