"""Member registration endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from gym_portal.api.dependencies.portal import (
    FlowContext,
    get_backend_client,
    get_flow_context,
    get_payment_cache,
)
from gym_portal.core.logging_config import get_logger
from gym_portal.core.response import ResponseModel
from gym_portal.schemas.members import PhotoUpload
from gym_portal.services.api_client import BackendClient
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.services.registration import RegistrationFlow

logger = get_logger(__name__)
router = APIRouter(tags=["registration"])


async def read_photo(photo: Optional[UploadFile]) -> Optional[PhotoUpload]:
    if photo is None or not photo.filename:
        return None
    content = await photo.read()
    return PhotoUpload(
        filename=photo.filename,
        content_type=photo.content_type or "application/octet-stream",
        content=content,
    )


@router.post("/register", response_model=ResponseModel)
async def register_member(
    name: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    dob: str = Form(""),
    plan: str = Form("1month"),
    paymentMethod: str = Form("online"),
    photo: Optional[UploadFile] = File(None),
    client: BackendClient = Depends(get_backend_client),
    cache: PaymentSessionCache = Depends(get_payment_cache),
    ctx: FlowContext = Depends(get_flow_context),
):
    """Register a member and tell the browser where to go next.

    Response data:
        - redirect: {view, path} (thank-you page or payment page)
        - notices: toast messages to show
        - payment: created payment session, for online payments
    """
    flow = RegistrationFlow(client, cache, ctx.navigator, ctx.notifier)
    result = await flow.submit(
        {
            "name": name,
            "email": email,
            "phone": phone,
            "dob": dob,
            "plan": plan,
            "payment_method": paymentMethod,
        },
        await read_photo(photo),
    )
    return ctx.respond(
        "Registration submitted",
        member_id=result.member_id,
        payment_method=result.payment_method.value,
        payment_setup_failed=result.payment_setup_failed,
        payment=result.payment_session.to_cache() if result.payment_session else None,
    )
