"""Tests for settings loading and startup validation."""

from unittest.mock import patch

import pytest

from otpguard.config import Settings, settings, validate_settings
from otpguard.core.verification import VerificationPolicy


class TestSettings:
    def test_policy_defaults(self, monkeypatch):
        for name in (
            "VERIFICATION_CODE_TTL_MINUTES",
            "VERIFICATION_MAX_CODE_ATTEMPTS",
            "VERIFICATION_MAX_ACCOUNT_ATTEMPTS",
            "VERIFICATION_LOCK_MINUTES",
            "EXPOSE_DEV_CODES",
        ):
            monkeypatch.delenv(name, raising=False)

        loaded = Settings(_env_file=None)

        assert loaded.verification_code_ttl_minutes == 10
        assert loaded.verification_max_code_attempts == 3
        assert loaded.verification_max_account_attempts == 5
        assert loaded.verification_lock_minutes == 30
        assert loaded.expose_dev_codes is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("VERIFICATION_LOCK_MINUTES", "45")
        monkeypatch.setenv("EXPOSE_DEV_CODES", "true")

        loaded = Settings(_env_file=None)

        assert loaded.verification_lock_minutes == 45
        assert loaded.expose_dev_codes is True

    def test_policy_built_from_settings(self, monkeypatch):
        monkeypatch.setenv("VERIFICATION_MAX_ACCOUNT_ATTEMPTS", "7")

        policy = VerificationPolicy.from_settings(Settings(_env_file=None))

        assert policy.max_account_attempts == 7
        assert policy.code_ttl_minutes == 10


class TestValidateSettings:
    @pytest.fixture(autouse=True)
    def _not_testing(self):
        with patch.object(settings, "testing", False):
            yield

    def test_defaults_pass(self):
        validate_settings()

    def test_skipped_while_testing(self):
        with (
            patch.object(settings, "testing", True),
            patch.object(settings, "verification_lock_minutes", 0),
        ):
            validate_settings()

    def test_dev_codes_rejected_in_production(self):
        with (
            patch.object(settings, "environment", "production"),
            patch.object(settings, "expose_dev_codes", True),
        ):
            with pytest.raises(SystemExit):
                validate_settings()

    def test_dev_codes_warn_outside_production(self, capsys):
        with patch.object(settings, "expose_dev_codes", True):
            validate_settings()

        assert "EXPOSE_DEV_CODES" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "field",
        [
            "verification_code_ttl_minutes",
            "verification_max_code_attempts",
            "verification_max_account_attempts",
            "verification_lock_minutes",
        ],
    )
    def test_non_positive_policy_rejected(self, field):
        with patch.object(settings, field, 0):
            with pytest.raises(SystemExit):
                validate_settings()

    def test_retention_shorter_than_ttl_rejected(self):
        with (
            patch.object(settings, "verification_code_ttl_minutes", 48 * 60),
            patch.object(settings, "code_retention_hours", 24),
        ):
            with pytest.raises(SystemExit):
                validate_settings()

    def test_retention_equal_to_ttl_accepted(self):
        with (
            patch.object(settings, "verification_code_ttl_minutes", 120),
            patch.object(settings, "code_retention_hours", 2),
        ):
            validate_settings()
