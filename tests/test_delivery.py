"""Tests for the code delivery hook."""

import logging
from unittest.mock import AsyncMock

from otpguard.core.verification import CodePurpose
from otpguard.services.delivery import LogOnlyDelivery, deliver_code


class TestLogOnlyDelivery:
    async def test_logs_masked_identity_without_code(self, caplog):
        with caplog.at_level(logging.INFO):
            await LogOnlyDelivery().send("+15551234567", CodePurpose.SIGNUP, "483920")

        record = caplog.records[-1]
        assert record.extra_fields == {"identity": "+155****4567", "purpose": "signup"}
        assert "483920" not in caplog.text

    async def test_exposes_code_in_development(self, caplog):
        with caplog.at_level(logging.INFO):
            await LogOnlyDelivery(expose_codes=True).send(
                "jane@example.com", CodePurpose.RECOVERY, "000042"
            )

        assert caplog.records[-1].extra_fields["dev_code"] == "000042"


class TestDeliverCode:
    async def test_passes_code_to_channel(self):
        delivery = AsyncMock()

        await deliver_code(delivery, "+15551234567", CodePurpose.SIGNUP, "483920")

        delivery.send.assert_awaited_once_with("+15551234567", CodePurpose.SIGNUP, "483920")

    async def test_channel_failure_is_logged_not_raised(self, caplog):
        delivery = AsyncMock()
        delivery.send.side_effect = ConnectionError("smtp down")

        with caplog.at_level(logging.ERROR):
            await deliver_code(delivery, "jane@example.com", CodePurpose.SIGNUP, "483920")

        assert "delivery failed" in caplog.text
        assert caplog.records[-1].extra_fields["identity"] == "j***@example.com"
