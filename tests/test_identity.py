"""Tests for identity normalization and masking."""

import pytest

from otpguard.core.verification import (
    InvalidIdentityError,
    mask_identity,
    normalize_identity,
)


class TestNormalizeIdentity:
    @pytest.mark.parametrize(
        "raw",
        [
            "+15551234567",
            "15551234567",
            "+1 (555) 123-4567",
            " +1.555.123.4567 ",
        ],
    )
    def test_phone_formats_share_one_identity(self, raw):
        assert normalize_identity(raw) == "+15551234567"

    def test_email_is_trimmed_and_lowercased(self):
        assert normalize_identity("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

    @pytest.mark.parametrize(
        "raw",
        ["", "   ", "not-an-identity", "123", "+1234567890123456", "jane@", "@example.com"],
    )
    def test_rejects_invalid_values(self, raw):
        with pytest.raises(InvalidIdentityError):
            normalize_identity(raw)

    def test_invalid_identity_is_a_value_error(self):
        """Pydantic validators turn ValueError into a 422."""
        with pytest.raises(ValueError):
            normalize_identity("nope")


class TestMaskIdentity:
    def test_masks_email_local_part(self):
        assert mask_identity("jane@example.com") == "j***@example.com"

    def test_masks_phone_middle_digits(self):
        masked = mask_identity("+15551234567")
        assert masked == "+155****4567"
        assert "123" not in masked

    def test_short_value_fully_masked(self):
        assert mask_identity("+123") == "****"
