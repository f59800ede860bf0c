"""Payment page endpoints.

The first GET for an order opens a payment view which starts polling the
backend and counting down to expiry. Later GETs read its snapshot. DELETE is
sent when the browser leaves the page and cancels both timers.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from gym_portal.api.dependencies.portal import get_view_registry
from gym_portal.core.logging_config import get_logger
from gym_portal.core.response import ResponseModel, error_response, success_response
from gym_portal.services.navigation import RecordingNavigator, RecordingNotifier, notices_payload, redirect_payload
from gym_portal.services.payments.registry import PaymentViewRegistry
from gym_portal.services.payments.view import PaymentView

logger = get_logger(__name__)
router = APIRouter(prefix="/payments", tags=["payments"])


def _view_payload(view: PaymentView) -> dict:
    data = view.snapshot()
    if isinstance(view.navigator, RecordingNavigator):
        data["redirect"] = redirect_payload(view.navigator)
    if isinstance(view.notifier, RecordingNotifier):
        data["notices"] = notices_payload(view.notifier.drain())
    return data


@router.get("/{order_id}", response_model=ResponseModel)
async def get_payment_view(
    order_id: str,
    registry: PaymentViewRegistry = Depends(get_view_registry),
):
    """Open (or reuse) the payment view for an order and return its current snapshot."""
    view = await registry.get_or_open(order_id)
    return success_response("Payment status", data=_view_payload(view))


@router.delete("/{order_id}", response_model=ResponseModel)
async def close_payment_view(
    order_id: str,
    registry: PaymentViewRegistry = Depends(get_view_registry),
):
    closed = await registry.close(order_id)
    return success_response("Payment view closed", data={"order_id": order_id, "closed": closed})


@router.post("/{order_id}/upi", response_model=ResponseModel)
async def open_upi_app(
    order_id: str,
    user_agent: Optional[str] = Header(default=None),
    registry: PaymentViewRegistry = Depends(get_view_registry),
):
    """Hand the UPI deep link to the browser, with guidance for desktop visitors."""
    view = registry.get(order_id)
    if view is None or view.closed:
        return error_response("Payment view is not open", status_code=404)

    # The browser performs the actual hand-off; record what it should open
    opened: list[str] = []
    launched = await view.open_upi_app(user_agent, opened.append, hint_delay=0)
    data = _view_payload(view)
    data["open_url"] = opened[0] if opened else None
    data["launched"] = launched
    return success_response("UPI hand-off", data=data)
