"""Admin authentication endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gym_portal.api.dependencies.portal import (
    FlowContext,
    bearer_token,
    get_admin_client,
    get_backend_client,
    get_flow_context,
)
from gym_portal.core.config import settings
from gym_portal.core.response import ResponseModel, error_response
from gym_portal.schemas.auth import LoginRequest
from gym_portal.services.api_client import BackendClient
from gym_portal.services.auth import AuthService
from gym_portal.services.storage import TOKEN_KEY, InMemoryStore

router = APIRouter(prefix="/auth", tags=["auth"])


class ResetPasswordPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    password: str = ""
    confirm_password: str = ""


@router.post("/login", response_model=ResponseModel)
async def login(
    req: LoginRequest,
    client: BackendClient = Depends(get_backend_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    """Exchange admin credentials for a bearer token the browser keeps."""
    store = InMemoryStore()
    auth = AuthService(client.with_store(store, ctx.navigator), ctx.notifier, ctx.navigator)
    token = await auth.login(req.email, req.password)
    return ctx.respond("Login successful", token=token, token_type="bearer")


@router.get("/verify", response_model=ResponseModel)
async def verify(
    client: BackendClient = Depends(get_admin_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    auth = AuthService(client, ctx.notifier, ctx.navigator)
    if not await auth.verify():
        return error_response(
            "Session expired. Please login again.",
            data={"clear_token": True},
            status_code=401,
        )
    # The browser re-checks on this interval while the dashboard is open
    return ctx.respond("Authenticated", authenticated=True, reverify_in=settings.AUTH_REVERIFY_SECONDS)


@router.post("/logout", response_model=ResponseModel)
async def logout(
    authorization: Optional[str] = Header(default=None),
    client: BackendClient = Depends(get_backend_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    """Drop the admin token; the browser clears its copy and returns to login."""
    token = bearer_token(authorization)
    store = InMemoryStore({TOKEN_KEY: token} if token else {})
    auth = AuthService(client.with_store(store, ctx.navigator), ctx.notifier, ctx.navigator)
    await auth.logout()
    return ctx.respond("Logged out", clear_token=True)


@router.post("/reset-password/{token}", response_model=ResponseModel)
async def reset_password(
    token: str,
    req: ResetPasswordPayload,
    client: BackendClient = Depends(get_backend_client),
    ctx: FlowContext = Depends(get_flow_context),
):
    auth = AuthService(client, ctx.notifier, ctx.navigator)
    await auth.reset_password(token, req.password, req.confirm_password)
    return ctx.respond("Password reset")
