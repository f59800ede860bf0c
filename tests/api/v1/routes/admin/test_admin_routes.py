from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import httpx
import pytest

from tests.fakes import fail, json_body, ok, iso

pytestmark = pytest.mark.anyio

ADMIN = {"Authorization": "Bearer admin-token", "x-portal-path": "/admin/dashboard"}


def seed_roster() -> List[Dict[str, Any]]:
    now = datetime.now(timezone.utc)
    return [
        {
            "_id": "A",
            "name": "Active Member",
            "email": "active@example.com",
            "phone": "9876543210",
            "plan": "6month",
            "endDate": iso(now + timedelta(days=90)),
            "paymentMethod": "cash",
            "paymentStatus": "confirmed",
        },
        {
            "_id": "B",
            "name": "Online Pending",
            "email": "pending@example.com",
            "phone": "9876543211",
            "plan": "1month",
            "endDate": iso(now + timedelta(days=30)),
            "paymentMethod": "online",
            "paymentStatus": "pending",
        },
        {
            "_id": "C",
            "name": "Lapsed Member",
            "email": "lapsed@example.com",
            "phone": "9876543212",
            "plan": "1month",
            "endDate": iso(now - timedelta(days=3)),
            "paymentMethod": "cash",
            "paymentStatus": "confirmed",
        },
    ]


async def test_list_members_by_section(client, backend):
    backend.on("GET", "/api/users", ok({"users": seed_roster()}))

    resp = await client.get("/api/v1/admin/members", params={"section": "expired"}, headers=ADMIN)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["section"] == "expired"
    assert [m["_id"] for m in data["members"]] == ["C"]
    assert data["members"][0]["subscriptionStatus"] == "expired"
    assert data["counts"] == {"confirmed": 2, "pending": 1, "expired": 1, "total": 3}


async def test_online_pending_section(client, backend):
    backend.on("GET", "/api/users", ok({"users": seed_roster()}))

    resp = await client.get("/api/v1/admin/members", params={"section": "online-pending"}, headers=ADMIN)

    assert [m["_id"] for m in resp.json()["data"]["members"]] == ["B"]


async def test_unknown_section_is_rejected(client, backend):
    resp = await client.get("/api/v1/admin/members", params={"section": "vip"}, headers=ADMIN)

    assert resp.status_code == 422
    assert resp.json()["error_code"] == "VALIDATION_ERROR"
    assert backend.requests == []


async def test_missing_token(client):
    resp = await client.get("/api/v1/admin/members")

    assert resp.status_code == 401
    assert resp.json()["error_code"] == "NOT_AUTHENTICATED"


async def test_expired_token_on_dashboard_clears_without_redirect(client, backend):
    backend.on("GET", "/api/users", fail(401, "Token expired"))

    resp = await client.get("/api/v1/admin/members", headers=ADMIN)

    assert resp.status_code == 401
    body = resp.json()
    assert body["error_code"] == "SESSION_EXPIRED"
    assert body["data"]["clear_token"] is True
    assert body["data"].get("redirect") is None


async def test_expired_token_elsewhere_redirects_to_login(client, backend):
    backend.on("GET", "/api/users", fail(401, "Token expired"))

    resp = await client.get(
        "/api/v1/admin/members",
        headers={"Authorization": "Bearer admin-token", "x-portal-path": "/renewal-pending"},
    )

    assert resp.status_code == 401
    assert resp.json()["data"]["redirect"] == {"path": "/admin"}


async def test_approve_payment(client, backend):
    backend.on("PATCH", "/api/users/approve/B", ok())

    resp = await client.patch("/api/v1/admin/members/B/approve", headers=ADMIN)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["payment_status"] == "confirmed"
    assert data["notices"] == [{"level": "success", "message": "Payment approved successfully!"}]


async def test_notify_expired(client, backend):
    backend.on("GET", "/api/users", ok({"users": seed_roster()}))
    backend.on("POST", "/api/users/notify-expired/C", ok())

    resp = await client.post("/api/v1/admin/members/C/notify-expired", headers=ADMIN)

    assert resp.status_code == 200
    assert json_body(backend.calls("POST", "/api/users/notify-expired/C")[0]) == {
        "email": "lapsed@example.com",
        "name": "Lapsed Member",
    }


async def test_update_member(client, backend):
    backend.on("PATCH", "/api/users/A", ok())

    resp = await client.patch(
        "/api/v1/admin/members/A",
        json={"name": "Renamed Member", "endDate": "2026-01-31"},
        headers=ADMIN,
    )

    assert resp.status_code == 200
    assert json_body(backend.calls("PATCH", "/api/users/A")[0]) == {
        "name": "Renamed Member",
        "endDate": "2026-01-31",
    }


async def test_update_member_validates_fields(client, backend):
    resp = await client.patch(
        "/api/v1/admin/members/A",
        json={"phone": "123", "email": "broken"},
        headers=ADMIN,
    )

    assert resp.status_code == 422
    fields = {d["field"] for d in resp.json()["details"]}
    assert fields == {"phone", "email"}
    assert backend.requests == []


async def test_delete_member(client, backend):
    backend.on("DELETE", "/api/users/C", ok())

    resp = await client.delete("/api/v1/admin/members/C", headers=ADMIN)

    assert resp.status_code == 200
    assert resp.json()["data"]["member_id"] == "C"
    assert len(backend.calls("DELETE", "/api/users/C")) == 1


async def test_notify_unknown_member_is_not_found(client, backend):
    backend.on("GET", "/api/users", ok({"users": seed_roster()}))

    resp = await client.post("/api/v1/admin/members/Z/notify-expired", headers=ADMIN)

    assert resp.status_code == 404
    body = resp.json()
    assert body["msg"] == "Member not found"
    assert body["data"]["notices"] == [{"level": "error", "message": "Member not found"}]
    assert backend.calls("POST", "/api/users/notify-expired/Z") == []


async def test_member_list_with_backend_down(client, backend):
    def backend_down(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend.on("GET", "/api/users", backend_down)

    resp = await client.get("/api/v1/admin/members", headers=ADMIN)

    assert resp.status_code == 502
    assert resp.json()["error_code"] == "BACKEND_UNAVAILABLE"
