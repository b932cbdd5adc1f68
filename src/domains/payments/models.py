"""Request schemas for the payments API. JSON bodies use camelCase keys."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import Field, StringConstraints, field_validator

from src.shared.schemas import CamelModel

Amount = Annotated[Decimal, Field(ge=Decimal("0.01"), max_digits=12, decimal_places=2)]
CurrencyCode = Annotated[str, StringConstraints(pattern=r"^[A-Z]{3}$")]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]


class AuthorizeRequest(CamelModel):
    payment_method_id: uuid.UUID
    amount: Amount
    currency: CurrencyCode
    description: Description | None = None


class SettleRequest(CamelModel):
    """Body for capture and refund. The amount is informational; the stored one is used."""

    amount: Amount | None = None
    currency: CurrencyCode | None = None
    description: Description | None = None


class PaymentMethodCreate(CamelModel):
    token: str | None = Field(default=None, min_length=1, max_length=255)
    last_four: Annotated[str, StringConstraints(pattern=r"^\d{4}$")]
    brand: Literal["visa", "mastercard", "amex", "discover"]
    expiry_month: int = Field(ge=1, le=12)
    expiry_year: int
    cardholder_name: Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)] | None = None

    @field_validator("expiry_year")
    @classmethod
    def _not_in_past(cls, value: int) -> int:
        if value < datetime.now(UTC).year:
            raise ValueError("Expiry year must be current year or later")
        return value
