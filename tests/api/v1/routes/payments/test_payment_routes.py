from __future__ import annotations

import httpx
import pytest

from gym_portal.services.payments.upi import DESKTOP_HINT, SCAN_HINT
from tests.fakes import fail, ok, session_payload, status_payload

pytestmark = pytest.mark.anyio

STATUS_PATH = "/api/payments/status/O1"
DETAILS_PATH = "/api/payments/details/O1"
ANDROID = "Mozilla/5.0 (Linux; Android 14) Mobile Safari/537.36"


async def test_payment_page_snapshot_and_reuse(client, backend, test_app):
    backend.on("GET", STATUS_PATH, status_payload("created", expires_in=900))
    backend.on("GET", DETAILS_PATH, ok(session_payload("O1", 1500)))

    first = await client.get("/api/v1/payments/O1")
    second = await client.get("/api/v1/payments/O1")

    assert first.status_code == 200
    data = first.json()["data"]
    assert data["state"] == "created"
    assert data["can_pay"] is True
    assert data["amount_display"] == "₹1,500"
    assert data["qr_image"] == "data:image/png;base64,QR-O1"
    assert data["banner"]["title"] == "Waiting for Payment"
    assert 895 <= data["remaining_seconds"] <= 900
    # The open view is reused; status and details were fetched once
    assert second.status_code == 200
    assert len(test_app.state.payment_views) == 1
    assert len(backend.calls("GET", STATUS_PATH)) == 1
    assert len(backend.calls("GET", DETAILS_PATH)) == 1


async def test_already_paid_redirects(client, backend):
    backend.on("GET", STATUS_PATH, status_payload("paid"))

    resp = await client.get("/api/v1/payments/O1")

    data = resp.json()["data"]
    assert data["state"] == "paid"
    assert data["redirect"] == {"view": "thank_you", "path": "/thank-you"}
    assert data["notices"] == [{"level": "success", "message": "Payment already confirmed!"}]


async def test_unknown_payment_redirects_home(client, backend):
    backend.on("GET", STATUS_PATH, fail(404, "Payment not found"))

    resp = await client.get("/api/v1/payments/O1")

    data = resp.json()["data"]
    assert data["redirect"]["path"] == "/"
    assert data["notices"] == [{"level": "error", "message": "Payment not found"}]


async def test_leaving_the_page_closes_the_view(client, backend, test_app):
    backend.on("GET", STATUS_PATH, status_payload("created"))
    backend.on("GET", DETAILS_PATH, ok(session_payload("O1")))
    await client.get("/api/v1/payments/O1")
    view = test_app.state.payment_views.get("O1")

    resp = await client.delete("/api/v1/payments/O1")

    assert resp.json()["data"] == {"order_id": "O1", "closed": True}
    assert view.closed
    assert len(test_app.state.payment_views) == 0

    again = await client.delete("/api/v1/payments/O1")
    assert again.json()["data"]["closed"] is False


async def test_upi_hand_off_on_mobile(client, backend):
    backend.on("GET", STATUS_PATH, status_payload("created"))
    backend.on("GET", DETAILS_PATH, ok(session_payload("O1")))
    await client.get("/api/v1/payments/O1")

    resp = await client.post("/api/v1/payments/O1/upi", headers={"User-Agent": ANDROID})

    data = resp.json()["data"]
    assert data["launched"] is True
    assert data["open_url"].startswith("upi://pay")
    assert {"level": "info", "message": SCAN_HINT} in data["notices"]


async def test_upi_hand_off_on_desktop(client, backend):
    backend.on("GET", STATUS_PATH, status_payload("created"))
    backend.on("GET", DETAILS_PATH, ok(session_payload("O1")))
    await client.get("/api/v1/payments/O1")

    resp = await client.post(
        "/api/v1/payments/O1/upi",
        headers={"User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) Safari/605.1.15"},
    )

    data = resp.json()["data"]
    assert data["launched"] is True
    assert {"level": "info", "message": DESKTOP_HINT} in data["notices"]


async def test_upi_requires_open_view(client):
    resp = await client.post("/api/v1/payments/O9/upi", headers={"User-Agent": ANDROID})

    assert resp.status_code == 404
    assert resp.json()["msg"] == "Payment view is not open"


async def test_reload_retries_after_failed_load(client, backend, test_app):
    def backend_down(request):
        raise httpx.ConnectError("backend unreachable", request=request)

    backend.on("GET", STATUS_PATH, backend_down)

    first = await client.get("/api/v1/payments/O1")

    data = first.json()["data"]
    assert data["notices"] == [{"level": "error", "message": "Failed to load payment details"}]
    assert data["redirect"]["path"] == "/"
    assert len(test_app.state.payment_views) == 0

    backend.on("GET", STATUS_PATH, status_payload("created"))
    backend.on("GET", DETAILS_PATH, ok(session_payload("O1")))

    second = await client.get("/api/v1/payments/O1")

    data = second.json()["data"]
    assert data["state"] == "created"
    assert data["can_pay"] is True
    assert len(backend.calls("GET", STATUS_PATH)) == 2
    assert len(test_app.state.payment_views) == 1


async def test_paid_view_is_not_kept(client, backend, test_app):
    backend.on("GET", STATUS_PATH, status_payload("paid"))

    await client.get("/api/v1/payments/O1")
    again = await client.get("/api/v1/payments/O1")

    assert len(test_app.state.payment_views) == 0
    assert len(backend.calls("GET", STATUS_PATH)) == 2
    assert again.json()["data"]["redirect"]["path"] == "/thank-you"
