from __future__ import annotations

import httpx
import pytest

from gym_portal.core.exceptions import AuthenticationExpired, BackendError, MissingCredentials
from gym_portal.schemas.payments import CreatePaymentRequest
from gym_portal.services.api_client import BackendClient, is_login_adjacent
from gym_portal.services.navigation import RecordingNavigator
from gym_portal.services.storage import TOKEN_KEY, InMemoryStore
from gym_portal.utils.enums import PaymentState, View
from tests.fakes import BACKEND_URL, FakeBackend, fail, ok, session_payload

pytestmark = pytest.mark.anyio


def _client(backend: FakeBackend, path: str, token: str | None = "admin-token"):
    store = InMemoryStore({TOKEN_KEY: token} if token else {})
    navigator = RecordingNavigator(path=path)
    client = BackendClient(store, navigator, base_url=BACKEND_URL, transport=httpx.MockTransport(backend))
    return client, store, navigator


@pytest.mark.parametrize(
    "path, adjacent",
    [
        ("/admin", True),
        ("/admin/dashboard", True),
        ("/admin/reset-password/abc", False),
        ("/payment/O1", False),
        ("/", False),
    ],
)
def test_login_adjacent_paths(path, adjacent):
    assert is_login_adjacent(path) is adjacent


async def test_unauthorized_clears_token_and_redirects_to_login(backend):
    backend.on("GET", "/api/users", fail(401, "Token expired"))
    client, store, navigator = _client(backend, "/payment/O1")

    with pytest.raises(AuthenticationExpired) as exc_info:
        await client.list_members()

    assert TOKEN_KEY not in store.data
    assert navigator.last.view is View.admin_login
    assert exc_info.value.redirect_to == "/admin"


async def test_unauthorized_on_admin_page_does_not_redirect(backend):
    backend.on("GET", "/api/users", fail(401, "Token expired"))
    client, store, navigator = _client(backend, "/admin/dashboard")

    with pytest.raises(AuthenticationExpired) as exc_info:
        await client.list_members()

    assert TOKEN_KEY not in store.data
    assert navigator.history == []
    assert exc_info.value.redirect_to is None


async def test_unauthorized_on_reset_password_page_redirects(backend):
    backend.on("GET", "/api/auth/verify", fail(401, "Token expired"))
    client, _, navigator = _client(backend, "/admin/reset-password/t0k3n")

    with pytest.raises(AuthenticationExpired):
        await client.verify_auth()

    assert navigator.last.view is View.admin_login


async def test_authenticated_call_without_token(backend):
    client, _, _ = _client(backend, "/admin/dashboard", token=None)

    with pytest.raises(MissingCredentials):
        await client.list_members()

    assert backend.requests == []


async def test_bearer_token_is_attached_only_when_required(backend):
    backend.on("GET", "/api/users", ok({"users": []}))
    backend.on("GET", "/api/payments/status/O1", ok({"state": "created"}))
    client, _, _ = _client(backend, "/")

    await client.list_members()
    await client.get_payment_status("O1")

    assert backend.requests[0].headers["Authorization"] == "Bearer admin-token"
    assert "Authorization" not in backend.requests[1].headers


async def test_non_2xx_raises_backend_error_with_message(backend):
    backend.on("GET", "/api/payments/details/O1", fail(404, "Payment not found"))
    client, _, _ = _client(backend, "/")

    with pytest.raises(BackendError) as exc_info:
        await client.get_payment_details("O1")

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Payment not found"


async def test_error_envelope_with_200_is_an_error(backend):
    backend.on("POST", "/api/payments/create", httpx.Response(200, json={"status": "error", "message": "Plan disabled"}))
    client, _, _ = _client(backend, "/")

    with pytest.raises(BackendError) as exc_info:
        await client.create_payment_session(
            CreatePaymentRequest(user_id="U1", plan="1month", amount=1500)
        )

    assert exc_info.value.message == "Plan disabled"


async def test_non_json_error_body(backend):
    backend.on("GET", "/api/payments/status/O1", httpx.Response(502, text="<html>Bad gateway</html>"))
    client, _, _ = _client(backend, "/")

    with pytest.raises(BackendError) as exc_info:
        await client.get_payment_status("O1")

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "Request failed with status 502"


async def test_payment_status_and_details_parsing(backend):
    backend.on("GET", "/api/payments/status/O1", ok({"state": "paid"}))
    backend.on("GET", "/api/payments/details/O1", ok(session_payload("O1", 3500)))
    client, _, _ = _client(backend, "/")

    status = await client.get_payment_status("O1")
    session = await client.get_payment_details("O1")

    assert status.state is PaymentState.paid
    assert status.expires_at is None
    assert session.order_id == "O1"
    assert session.amount == 3500
    assert session.expires_at.tzinfo is not None


async def test_login_reads_token_from_either_shape(backend):
    backend.on("POST", "/api/auth/login", ok(token="t1"), ok({"token": "t2"}))
    client, _, _ = _client(backend, "/admin", token=None)

    assert await client.login("admin@example.com", "secret") == "t1"
    assert await client.login("admin@example.com", "secret") == "t2"


async def test_verify_renewal_token_without_user(backend):
    backend.on("GET", "/api/users/verify-renewal-token/abc", ok())
    client, _, _ = _client(backend, "/")

    with pytest.raises(BackendError) as exc_info:
        await client.verify_renewal_token("abc")

    assert exc_info.value.status_code == 404


async def test_with_store_shares_connection_but_not_credentials(backend):
    backend.on("GET", "/api/users", ok({"users": []}))
    client, store, _ = _client(backend, "/", token=None)

    scoped = client.with_store(InMemoryStore({TOKEN_KEY: "other"}), RecordingNavigator(path="/admin"))
    await scoped.list_members()
    await scoped.aclose()

    assert backend.requests[0].headers["Authorization"] == "Bearer other"
    assert store.data == {}
    # The shared client stays usable after the scoped one is closed
    backend.on("GET", "/api/payments/status/O1", ok({"state": "created"}))
    assert (await client.get_payment_status("O1")).state is PaymentState.created
    await client.aclose()
