"""Admin dashboard endpoints.

The browser sends its admin bearer token; it is forwarded to the backend for
every call. Member status is derived here from end dates.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from gym_portal.api.dependencies.portal import FlowContext, get_admin_client, get_flow_context
from gym_portal.core.exceptions import FormValidationError
from gym_portal.core.response import ResponseModel, error_response
from gym_portal.schemas.members import MemberUpdate
from gym_portal.services.admin import AdminDashboard
from gym_portal.services.api_client import BackendClient
from gym_portal.services.validation import collect_field_errors
from gym_portal.utils.enums import AdminSection

router = APIRouter(prefix="/admin", tags=["admin"])


class MemberUpdatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    plan: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def _dashboard(client: BackendClient, ctx: FlowContext) -> AdminDashboard:
    return AdminDashboard(client, ctx.notifier)


@router.get("/members", response_model=ResponseModel)
async def list_members(
    section: AdminSection = Query(AdminSection.all, description="Dashboard section filter"),
    client: BackendClient = Depends(get_admin_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    dashboard = _dashboard(client, ctx)
    await dashboard.refresh()
    return ctx.respond(
        "Members retrieved",
        section=section.value,
        members=dashboard.rows(section),
        counts=dashboard.counts(),
    )


@router.patch("/members/{member_id}/approve", response_model=ResponseModel)
async def approve_payment(
    member_id: str,
    client: BackendClient = Depends(get_admin_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    await _dashboard(client, ctx).approve_payment(member_id)
    return ctx.respond("Payment approved", member_id=member_id, payment_status="confirmed")


@router.post("/members/{member_id}/notify-expired", response_model=ResponseModel)
async def notify_expired(
    member_id: str,
    client: BackendClient = Depends(get_admin_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    dashboard = _dashboard(client, ctx)
    await dashboard.refresh()
    if not await dashboard.notify_expired(member_id):
        return error_response("Member not found", data=ctx.payload(member_id=member_id), status_code=404)
    return ctx.respond("Notification sent", member_id=member_id)


@router.patch("/members/{member_id}", response_model=ResponseModel)
async def update_member(
    member_id: str,
    req: MemberUpdatePayload,
    client: BackendClient = Depends(get_admin_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    try:
        update = MemberUpdate.model_validate(req.model_dump(exclude_none=True))
    except ValidationError as e:
        raise FormValidationError(collect_field_errors(e)) from e
    await _dashboard(client, ctx).update_member(member_id, update)
    return ctx.respond("Member updated", member_id=member_id)


@router.delete("/members/{member_id}", response_model=ResponseModel)
async def delete_member(
    member_id: str,
    client: BackendClient = Depends(get_admin_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    await _dashboard(client, ctx).delete_member(member_id)
    return ctx.respond("Member deleted", member_id=member_id)
