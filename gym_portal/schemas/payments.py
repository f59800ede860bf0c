# gym_portal/schemas/payments.py
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from gym_portal.utils.datetime_utils import parse_iso_datetime
from gym_portal.utils.enums import PaymentState, PlanId


class PaymentSession(BaseModel):
    """Gateway payment session as created by the backend.

    The same shape comes back from the create and details endpoints and is
    what the local store keeps under ``payment_{orderId}``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    order_id: str
    payment_id: Optional[str] = None
    upi_intent: Optional[str] = None
    qr_image: Optional[str] = None
    amount: float
    currency: str = "INR"
    expires_at: Optional[datetime] = None
    state: PaymentState = Field(
        default=PaymentState.created,
        validation_alias=AliasChoices("state", "status"),
        serialization_alias="status",
    )

    @field_validator("expires_at", mode="before")
    def parse_expiry(cls, value):
        if value in (None, ""):
            return None
        return parse_iso_datetime(value)

    @field_validator("state", mode="before")
    def parse_state(cls, value):
        # The status endpoint is authoritative; unknown wording here is not terminal
        if value is None:
            return PaymentState.created
        try:
            return PaymentState(value)
        except ValueError:
            return PaymentState.created

    def to_cache(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class PaymentStatusData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    state: PaymentState
    expires_at: Optional[datetime] = None

    @field_validator("expires_at", mode="before")
    def parse_expiry(cls, value):
        if value in (None, ""):
            return None
        return parse_iso_datetime(value)


class CreatePaymentRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    plan: PlanId
    amount: int
    currency: str = "INR"
