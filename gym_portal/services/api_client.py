"""Backend REST client - bearer-token injection and response envelope handling."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from gym_portal.core.config import settings
from gym_portal.core.exceptions import AuthenticationExpired, BackendError, MissingCredentials
from gym_portal.core.logging_config import get_logger
from gym_portal.schemas.members import Member, MemberUpdate, PhotoUpload, RenewalRequest
from gym_portal.schemas.payments import CreatePaymentRequest, PaymentSession, PaymentStatusData
from gym_portal.services.navigation import Navigator
from gym_portal.services.storage import TOKEN_KEY, KeyValueStore
from gym_portal.utils.enums import View

logger = get_logger(__name__)


def is_login_adjacent(path: str) -> bool:
    """Admin routes other than password reset already lead to the login view."""
    return "/admin" in path and "/admin/reset-password" not in path


def _extract_message(body: Any, default: str) -> str:
    if isinstance(body, dict):
        return body.get("message") or body.get("msg") or default
    return default


class BackendClient:
    """Thin wrapper over the gym backend REST API."""

    def __init__(
        self,
        store: KeyValueStore,
        navigator: Optional[Navigator] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.store = store
        self.navigator = navigator
        self.base_url = (base_url or settings.BACKEND_API_URL).rstrip("/")
        # A borrowed client belongs to whoever created it
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def with_store(self, store: KeyValueStore, navigator: Optional[Navigator] = None) -> "BackendClient":
        """Share the underlying connection pool with a different credential store."""
        return BackendClient(store, navigator, base_url=self.base_url, http_client=self._client)

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        require_auth: bool = False,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Issue a request and return the decoded JSON body.

        Raises:
            MissingCredentials: ``require_auth`` without a stored token
            AuthenticationExpired: backend answered 401
            BackendError: non-2xx status or ``status == "error"`` body
            httpx.HTTPError: transport failure
        """
        headers: Dict[str, str] = {"Accept": "application/json"}
        if require_auth:
            token = await self.store.get(TOKEN_KEY)
            if not token:
                raise MissingCredentials()
            headers["Authorization"] = f"Bearer {token}"

        response = await self._client.request(
            method, endpoint, headers=headers, json=json, data=data, files=files
        )

        if response.status_code == 401:
            await self._handle_unauthorized()

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            message = _extract_message(body, f"Request failed with status {response.status_code}")
            logger.warning(f"Backend {method} {endpoint} failed: {response.status_code} {message}")
            raise BackendError(message, status_code=response.status_code, payload=body)
        if isinstance(body, dict) and body.get("status") == "error":
            message = _extract_message(body, "Request failed")
            logger.warning(f"Backend {method} {endpoint} returned error envelope: {message}")
            raise BackendError(message, status_code=response.status_code, payload=body)

        return body if isinstance(body, dict) else {"data": body}

    async def _handle_unauthorized(self) -> None:
        await self.store.delete(TOKEN_KEY)
        redirect_to = None
        current_path = self.navigator.current_path if self.navigator else ""
        if self.navigator and not is_login_adjacent(current_path):
            self.navigator.navigate(View.admin_login)
            redirect_to = View.admin_login.path()
        logger.info(f"Backend rejected credentials on {current_path or 'unknown route'}; token cleared")
        raise AuthenticationExpired(redirect_to=redirect_to)

    # Members
    async def register_member(self, fields: Dict[str, str], photo: Optional[PhotoUpload]) -> Dict[str, Any]:
        files = None
        if photo is not None:
            files = {"photo": (photo.filename, photo.content, photo.content_type)}
        logger.info(f"Registering member: email={fields.get('email')}, plan={fields.get('plan')}")
        return await self._request("POST", "/api/users/register", data=fields, files=files)

    async def verify_member_token(self, token: str) -> Member:
        body = await self._request("GET", f"/api/users/verify-token/{token}")
        return Member.model_validate(body.get("data") or {})

    async def verify_renewal_token(self, token: str) -> Member:
        body = await self._request("GET", f"/api/users/verify-renewal-token/{token}")
        user = body.get("user")
        if not user:
            raise BackendError("User data not found", status_code=404, payload=body)
        return Member.model_validate(user)

    async def renew_membership(
        self, token: str, payload: Dict[str, Any], photo: Optional[PhotoUpload] = None
    ) -> Dict[str, Any]:
        endpoint = f"/api/users/renew-membership/{token}"
        if photo is None:
            return await self._request("POST", endpoint, json=payload)
        files = {"photo": (photo.filename, photo.content, photo.content_type)}
        return await self._request("POST", endpoint, data=payload, files=files)

    async def request_renewal(self, request: RenewalRequest) -> Dict[str, Any]:
        return await self._request(
            "POST", "/api/users/request-renewal", json=request.model_dump(mode="json", by_alias=True)
        )

    # Payments
    async def create_payment_session(self, request: CreatePaymentRequest) -> PaymentSession:
        logger.info(f"Creating payment session: user={request.user_id}, plan={request.plan.value}, amount={request.amount}")
        body = await self._request(
            "POST", "/api/payments/create", json=request.model_dump(mode="json", by_alias=True)
        )
        session = PaymentSession.model_validate(body.get("data") or {})
        logger.info(f"Payment session created: order_id={session.order_id}")
        return session

    async def get_payment_status(self, order_id: str) -> PaymentStatusData:
        body = await self._request("GET", f"/api/payments/status/{order_id}")
        return PaymentStatusData.model_validate(body.get("data") or {})

    async def get_payment_details(self, order_id: str) -> PaymentSession:
        body = await self._request("GET", f"/api/payments/details/{order_id}")
        return PaymentSession.model_validate(body.get("data") or {})

    # Auth
    async def login(self, email: str, password: str) -> str:
        body = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        token = body.get("token") or (body.get("data") or {}).get("token")
        if not token:
            raise BackendError("Login response did not include a token", payload=body)
        return token

    async def verify_auth(self) -> bool:
        await self._request("GET", "/api/auth/verify", require_auth=True)
        return True

    async def reset_password(self, token: str, password: str) -> Dict[str, Any]:
        return await self._request("POST", f"/api/auth/reset-password/{token}", json={"password": password})

    # Admin
    async def list_members(self) -> list[Member]:
        body = await self._request("GET", "/api/users", require_auth=True)
        users = (body.get("data") or {}).get("users") or []
        return [Member.model_validate(user) for user in users]

    async def approve_payment(self, member_id: str) -> Dict[str, Any]:
        return await self._request("PATCH", f"/api/users/approve/{member_id}", require_auth=True)

    async def notify_expired(self, member_id: str, email: str, name: str) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/api/users/notify-expired/{member_id}", require_auth=True,
            json={"email": email, "name": name},
        )

    async def update_member(self, member_id: str, update: MemberUpdate) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"/api/users/{member_id}", require_auth=True,
            json=update.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    async def delete_member(self, member_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/users/{member_id}", require_auth=True)
