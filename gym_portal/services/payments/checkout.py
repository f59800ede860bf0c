"""Provisioning a payment session after a member record exists."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from gym_portal.core.config import settings
from gym_portal.core.exceptions import BackendError
from gym_portal.core.logging_config import get_logger
from gym_portal.core.plans import get_plan_price
from gym_portal.schemas.payments import CreatePaymentRequest, PaymentSession
from gym_portal.services.api_client import BackendClient
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.utils.enums import PlanId

logger = get_logger(__name__)

PAYMENT_SETUP_FAILED = (
    "Registration successful, but payment setup failed. "
    "Please contact the gym to complete your payment."
)


def extract_member_id(body: Mapping[str, Any]) -> Optional[str]:
    """Find the created member's id in a register/renew response."""
    data = body.get("data") if isinstance(body.get("data"), Mapping) else {}
    for source in (data, data.get("user") or {}, body, body.get("user") or {}):
        for key in ("userId", "_id", "id"):
            value = source.get(key)
            if value:
                return str(value)
    return None


def extract_embedded_session(body: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """A renewal response may already carry the payment session."""
    data = body.get("data") if isinstance(body.get("data"), Mapping) else {}
    return data.get("payment") or body.get("payment")


async def provision_payment(
    client: BackendClient,
    cache: PaymentSessionCache,
    member_id: Optional[str],
    plan: PlanId,
    embedded: Optional[Mapping[str, Any]] = None,
) -> PaymentSession:
    """Create (or adopt an embedded) payment session sized to the plan price and store it locally.

    Raises:
        BackendError: the backend could not create the session
        httpx.HTTPError: transport failure
        pydantic.ValidationError: the session payload is malformed
    """
    if embedded:
        session = PaymentSession.model_validate(embedded)
    else:
        if not member_id:
            raise BackendError("Member id missing from registration response", status_code=502)
        session = await client.create_payment_session(
            CreatePaymentRequest(
                user_id=member_id,
                plan=plan,
                amount=get_plan_price(plan),
                currency=settings.CURRENCY,
            )
        )
    await cache.remember(session)
    return session
