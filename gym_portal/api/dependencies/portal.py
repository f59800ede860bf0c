"""
Portal dependencies for FastAPI routes.

Shared objects (backend client, local store, payment views) live on
``app.state`` and are created by the application lifespan. Each request gets
its own navigator and notifier so flows can report where the browser should
go next.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from gym_portal.core.exceptions import MissingCredentials
from gym_portal.core.response import success_response
from gym_portal.services.api_client import BackendClient
from gym_portal.services.navigation import (
    RecordingNavigator,
    RecordingNotifier,
    notices_payload,
    redirect_payload,
)
from gym_portal.services.payments.registry import PaymentViewRegistry
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.services.storage import TOKEN_KEY, InMemoryStore


class FlowContext:
    """Navigator and notifier recorded during one request."""

    def __init__(self, path: str = "/"):
        self.navigator = RecordingNavigator(path=path)
        self.notifier = RecordingNotifier()

    def payload(self, **data) -> dict:
        data["redirect"] = redirect_payload(self.navigator)
        data["notices"] = notices_payload(self.notifier.drain())
        return data

    def respond(self, msg: str, status_code: int = 200, **data):
        return success_response(msg, data=self.payload(**data), status_code=status_code)


def get_flow_context(request: Request) -> FlowContext:
    referer_path = request.headers.get("x-portal-path") or "/"
    ctx = FlowContext(path=referer_path)
    # Error handlers report the notices recorded before the failure
    request.state.flow_context = ctx
    return ctx


def flow_payload(request: Request) -> Optional[dict]:
    """Redirect and notices of the request's flow, if it got that far."""
    ctx = getattr(request.state, "flow_context", None)
    if ctx is None:
        return None
    return ctx.payload()


def get_backend_client(request: Request) -> BackendClient:
    return request.app.state.backend_client


def get_payment_cache(request: Request) -> PaymentSessionCache:
    return request.app.state.payment_cache


def get_view_registry(request: Request) -> PaymentViewRegistry:
    return request.app.state.payment_views


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_admin_client(
    authorization: Optional[str] = Header(default=None),
    client: BackendClient = Depends(get_backend_client),
    ctx: FlowContext = Depends(get_flow_context),
) -> BackendClient:
    """Backend client carrying the admin token the browser sent.

    The token is kept in a per-request store so a 401 clears only this
    request's copy; the browser is told to drop its own via the error payload.
    """
    token = bearer_token(authorization)
    if not token:
        raise MissingCredentials()
    return client.with_store(InMemoryStore({TOKEN_KEY: token}), ctx.navigator)
