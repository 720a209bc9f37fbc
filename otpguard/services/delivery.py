"""Code delivery hook.

Delivery is fire-and-forget: the verification core never learns whether
an SMS or email arrived. Deployments plug a real sender in at startup;
the default only records that a code is waiting to be sent.
"""

from typing import Protocol

from otpguard.core.verification.enums import CodePurpose
from otpguard.core.verification.identity import mask_identity
from otpguard.logging_config import get_logger

logger = get_logger(__name__)


class CodeDelivery(Protocol):
    async def send(self, identity: str, purpose: CodePurpose, code: str) -> None: ...


class LogOnlyDelivery:
    """Delivery stand-in that writes a log line instead of sending.

    The raw code is logged only when ``expose_codes`` is set, which is
    allowed in development builds only.
    """

    def __init__(self, *, expose_codes: bool = False) -> None:
        self.expose_codes = expose_codes

    async def send(self, identity: str, purpose: CodePurpose, code: str) -> None:
        fields = {"identity": mask_identity(identity), "purpose": str(purpose)}
        if self.expose_codes:
            fields["dev_code"] = code
        logger.info("Verification code ready for delivery", **fields)


async def deliver_code(
    delivery: CodeDelivery,
    identity: str,
    purpose: CodePurpose,
    code: str,
) -> None:
    """Run a delivery, logging failures instead of raising.

    Called as a background task after the response is sent, so there is
    no caller left to handle an exception.
    """
    try:
        await delivery.send(identity, purpose, code)
    except Exception as e:
        logger.error(
            "Verification code delivery failed",
            identity=mask_identity(identity),
            purpose=str(purpose),
            error=str(e),
        )
