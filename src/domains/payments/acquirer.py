"""Mock acquirer: simulates a third-party card processor.

Outcomes are keyed off the amount and magic last-four values:

    0000 -> invalid card      0002 -> fraud detected
    0001 -> expired card      0003 -> network error

Amounts above 10,000 are declined for insufficient funds 30% of the time;
everything else is approved 95% of the time. Every call sleeps for a random
500-1500 ms to stand in for network latency.
"""

import asyncio
import random
import string
from datetime import UTC, datetime
from decimal import Decimal

import structlog
from pydantic import BaseModel

logger = structlog.get_logger()

LARGE_AMOUNT = Decimal("10000")

MAGIC_LAST_FOUR = {
    "0000": "invalid_card",
    "0001": "expired_card",
    "0002": "fraud_detected",
    "0003": "network_error",
}

DECLINE_MESSAGES = {
    "insufficient_funds": "Insufficient funds",
    "invalid_card": "Invalid card number",
    "expired_card": "Card expired",
    "fraud_detected": "Fraud detected",
    "network_error": "Network error",
}


class AcquirerResponse(BaseModel):
    success: bool
    transaction_id: str | None = None
    decline_reason: str | None = None
    response_code: str
    response_message: str
    auth_code: str | None = None


class MockAcquirer:
    def __init__(
        self,
        rng: random.Random | None = None,
        min_delay_ms: int = 500,
        max_delay_ms: int = 1500,
    ) -> None:
        self._rng = rng or random.Random()
        self._min_delay = min_delay_ms / 1000
        self._max_delay = max_delay_ms / 1000

    async def _network_delay(self) -> None:
        delay = self._min_delay + self._rng.random() * (self._max_delay - self._min_delay)
        if delay > 0:
            await asyncio.sleep(delay)

    def _code(self, length: int) -> str:
        return "".join(self._rng.choices(string.ascii_uppercase + string.digits, k=length))

    def _reference(self) -> str:
        return f"TXN_{self._code(7)}"

    def _scenario(self, amount: Decimal, last_four: str) -> str:
        if amount > LARGE_AMOUNT:
            return "insufficient_funds" if self._rng.random() < 0.3 else "success"
        if last_four in MAGIC_LAST_FOUR:
            return MAGIC_LAST_FOUR[last_four]
        return "success" if self._rng.random() < 0.95 else "insufficient_funds"

    async def authorize(
        self,
        amount: Decimal,
        currency: str,
        last_four: str,
        brand: str,
        expiry_month: int,
        expiry_year: int,
        now: datetime | None = None,
    ) -> AcquirerResponse:
        await self._network_delay()
        now = now or datetime.now(UTC)

        if expiry_year < now.year or (expiry_year == now.year and expiry_month < now.month):
            response = AcquirerResponse(
                success=False,
                decline_reason="expired_card",
                response_code="54",
                response_message="Card expired",
            )
        else:
            scenario = self._scenario(amount, last_four)
            if scenario == "success":
                response = AcquirerResponse(
                    success=True,
                    transaction_id=self._reference(),
                    response_code="00",
                    response_message="Approved",
                    auth_code=self._code(6),
                )
            else:
                response = AcquirerResponse(
                    success=False,
                    decline_reason=scenario,
                    response_code="05",
                    response_message=DECLINE_MESSAGES[scenario],
                )

        logger.info(
            "acquirer_authorize",
            amount=str(amount),
            currency=currency,
            brand=brand,
            success=response.success,
            response_code=response.response_code,
            decline_reason=response.decline_reason,
        )
        return response

    async def capture(self, authorization_id: str | None, amount: Decimal | None) -> AcquirerResponse:
        await self._network_delay()
        if self._rng.random() < 0.99:
            response = AcquirerResponse(
                success=True,
                transaction_id=self._reference(),
                response_code="00",
                response_message="Capture successful",
            )
        else:
            response = AcquirerResponse(
                success=False, response_code="96", response_message="System error"
            )
        logger.info(
            "acquirer_capture",
            authorization_id=authorization_id,
            success=response.success,
            response_code=response.response_code,
        )
        return response

    async def refund(
        self, original_transaction_id: str | None, amount: Decimal | None
    ) -> AcquirerResponse:
        await self._network_delay()
        if self._rng.random() < 0.98:
            response = AcquirerResponse(
                success=True,
                transaction_id=self._reference(),
                response_code="00",
                response_message="Refund successful",
            )
        else:
            response = AcquirerResponse(
                success=False, response_code="96", response_message="Refund failed"
            )
        logger.info(
            "acquirer_refund",
            original_transaction_id=original_transaction_id,
            success=response.success,
            response_code=response.response_code,
        )
        return response
