"""Membership renewal endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gym_portal.api.dependencies.portal import (
    FlowContext,
    get_backend_client,
    get_flow_context,
    get_payment_cache,
)
from gym_portal.api.v1.routes.registration.registration import read_photo
from gym_portal.core.response import ResponseModel, error_response
from gym_portal.schemas.members import RenewalRequest
from gym_portal.services.api_client import BackendClient
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.services.renewal import RenewalFlow

router = APIRouter(prefix="/renewal", tags=["renewal"])


class RenewalApprovalPayload(BaseModel):
    """Renewal request payload (queued for admin approval)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: Optional[str] = None
    plan: Optional[str] = None
    payment_method: str = "cash"


class TokenApprovalPayload(BaseModel):
    """Renewal request for the member a renewal-request link belongs to."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    plan: Optional[str] = None
    payment_method: str = "cash"


def _approval_response(ctx: FlowContext, request: Optional[RenewalRequest]):
    if request is None:
        return error_response(
            ctx.notifier.notices[-1].message if ctx.notifier.notices else "Renewal request not submitted",
            data=ctx.payload(submitted=False),
            status_code=422,
        )
    return ctx.respond(
        "Renewal request submitted",
        submitted=True,
        request=request.model_dump(mode="json", by_alias=True),
    )


@router.post("/requests", response_model=ResponseModel)
async def request_renewal(
    req: RenewalApprovalPayload,
    client: BackendClient = Depends(get_backend_client),
    cache: PaymentSessionCache = Depends(get_payment_cache),
    ctx: FlowContext = Depends(get_flow_context),
):
    flow = RenewalFlow(client, cache, ctx.navigator, ctx.notifier)
    request = await flow.request_approval(req.user_id, req.plan, req.payment_method)
    return _approval_response(ctx, request)


@router.get("/requests/{token}", response_model=ResponseModel)
async def verify_renewal_request_link(
    token: str,
    client: BackendClient = Depends(get_backend_client),
    cache: PaymentSessionCache = Depends(get_payment_cache),
    ctx: FlowContext = Depends(get_flow_context),
):
    """Resolve a renewal-request link to the member it belongs to."""
    flow = RenewalFlow(client, cache, ctx.navigator, ctx.notifier)
    member = await flow.resolve_member(token)
    return ctx.respond(
        "Member verified",
        member=member.model_dump(mode="json", by_alias=True, exclude_none=True),
        subscription_status=member.derived_status().value,
        days_left=member.days_left(),
    )


@router.post("/requests/{token}", response_model=ResponseModel)
async def request_renewal_for_link(
    token: str,
    req: TokenApprovalPayload,
    client: BackendClient = Depends(get_backend_client),
    cache: PaymentSessionCache = Depends(get_payment_cache),
    ctx: FlowContext = Depends(get_flow_context),
):
    """Queue a renewal for admin approval; the member comes from the link, not the body."""
    flow = RenewalFlow(client, cache, ctx.navigator, ctx.notifier)
    request = await flow.request_approval_for_token(token, req.plan, req.payment_method)
    return _approval_response(ctx, request)


@router.get("/{token}", response_model=ResponseModel)
async def verify_renewal_token(
    token: str,
    client: BackendClient = Depends(get_backend_client),
    cache: PaymentSessionCache = Depends(get_payment_cache),
    ctx: FlowContext = Depends(get_flow_context),
):
    """Resolve a renewal link to the member it belongs to."""
    flow = RenewalFlow(client, cache, ctx.navigator, ctx.notifier)
    member = await flow.verify(token)
    return ctx.respond(
        "Renewal token verified",
        member=member.model_dump(mode="json", by_alias=True, exclude_none=True),
        subscription_status=member.derived_status().value,
        days_left=member.days_left(),
    )


@router.post("/{token}", response_model=ResponseModel)
async def renew_membership(
    token: str,
    plan: str = Form("1month"),
    paymentMethod: str = Form("online"),
    photo: Optional[UploadFile] = File(None),
    client: BackendClient = Depends(get_backend_client),
    cache: PaymentSessionCache = Depends(get_payment_cache),
    ctx: FlowContext = Depends(get_flow_context),
):
    flow = RenewalFlow(client, cache, ctx.navigator, ctx.notifier)
    result = await flow.submit(
        token,
        {"plan": plan, "payment_method": paymentMethod},
        await read_photo(photo),
    )
    return ctx.respond(
        "Renewal submitted",
        member_id=result.member_id,
        payment_method=result.payment_method.value,
        payment_setup_failed=result.payment_setup_failed,
        payment=result.payment_session.to_cache() if result.payment_session else None,
    )
