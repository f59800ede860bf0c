from __future__ import annotations

from datetime import date

import httpx
import pytest

from gym_portal.core.exceptions import BackendError, FormValidationError
from gym_portal.schemas.members import PhotoUpload
from gym_portal.services.payments.checkout import PAYMENT_SETUP_FAILED
from gym_portal.services.registration import REGISTRATION_FAILED, RegistrationFlow
from gym_portal.services.storage import payment_key
from gym_portal.utils.enums import NoticeLevel, PaymentMethod, View
from tests.fakes import fail, json_body, ok, session_payload

pytestmark = pytest.mark.anyio

REGISTER_PATH = "/api/users/register"
CREATE_PATH = "/api/payments/create"


def _form(plan="1month", payment_method="online", **overrides):
    data = {
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "9876543210",
        "dob": "1995-04-12",
        "plan": plan,
        "payment_method": payment_method,
    }
    data.update(overrides)
    return data


def _photo():
    return PhotoUpload(filename="me.png", content_type="image/png", content=b"\x89PNG")


def _flow(api_client, cache, navigator, notifier):
    return RegistrationFlow(api_client, cache, navigator, notifier, today=lambda: date(2025, 1, 31))


async def test_cash_registration_skips_payment(backend, api_client, cache, navigator, notifier):
    backend.on("POST", REGISTER_PATH, ok({"userId": "U1"}))

    result = await _flow(api_client, cache, navigator, notifier).submit(_form(payment_method="cash"), _photo())

    assert result.member_id == "U1"
    assert result.payment_method is PaymentMethod.cash
    assert result.payment_session is None
    assert backend.calls("POST", CREATE_PATH) == []
    assert [r.path for r in navigator.history] == ["/thank-you"]
    assert notifier.messages(NoticeLevel.success) == ["Registration successful! Please check your email."]


async def test_register_sends_plan_period_as_multipart(backend, api_client, cache, navigator, notifier):
    backend.on("POST", REGISTER_PATH, ok({"userId": "U1"}))

    await _flow(api_client, cache, navigator, notifier).submit(_form(plan="1month", payment_method="cash"), _photo())

    body = backend.calls("POST", REGISTER_PATH)[0].content
    assert b'name="startDate"\r\n\r\n2025-01-31' in body
    assert b'name="endDate"\r\n\r\n2025-02-28' in body
    assert b'name="paymentMethod"\r\n\r\ncash' in body
    assert b'filename="me.png"' in body


@pytest.mark.parametrize(
    "plan, price",
    [("1month", 1500), ("2month", 2500), ("3month", 3500), ("6month", 5000), ("yearly", 8000)],
)
async def test_online_registration_creates_one_session_at_plan_price(
    backend, api_client, cache, navigator, notifier, store, plan, price
):
    backend.on("POST", REGISTER_PATH, ok({"userId": "U1"}))
    backend.on("POST", CREATE_PATH, ok(session_payload("O1", price)))

    result = await _flow(api_client, cache, navigator, notifier).submit(_form(plan=plan), _photo())

    creates = backend.calls("POST", CREATE_PATH)
    assert len(creates) == 1
    assert json_body(creates[0]) == {"userId": "U1", "plan": plan, "amount": price, "currency": "INR"}
    # Session creation happens before the only navigation, to the payment view
    assert [r.path for r in navigator.history] == ["/payment/O1"]
    assert result.payment_session.order_id == "O1"
    assert store.data[payment_key("O1")]["amount"] == price
    assert notifier.messages(NoticeLevel.success) == ["Registration successful! Please complete your payment."]


async def test_payment_setup_failure_keeps_registration(backend, api_client, cache, navigator, notifier):
    backend.on("POST", REGISTER_PATH, ok({"userId": "U1"}))
    backend.on("POST", CREATE_PATH, fail(500, "Gateway unavailable"))

    result = await _flow(api_client, cache, navigator, notifier).submit(_form(), _photo())

    assert result.payment_setup_failed is True
    assert result.member_id == "U1"
    assert navigator.last.view is View.thank_you
    assert notifier.messages(NoticeLevel.warning) == [PAYMENT_SETUP_FAILED]
    # No rollback call is made for the member
    assert [r.method for r in backend.requests] == ["POST", "POST"]


async def test_payment_setup_network_failure_is_partial_success(backend, api_client, cache, navigator, notifier):
    def _timeout(request):
        raise httpx.ReadTimeout("gateway timed out", request=request)

    backend.on("POST", REGISTER_PATH, ok({"userId": "U1"}))
    backend.on("POST", CREATE_PATH, _timeout)

    result = await _flow(api_client, cache, navigator, notifier).submit(_form(), _photo())

    assert result.payment_setup_failed is True
    assert navigator.last.view is View.thank_you


async def test_unreachable_backend_notifies_and_raises(backend, api_client, cache, navigator, notifier):
    def _refused(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend.on("POST", REGISTER_PATH, _refused)
    flow = _flow(api_client, cache, navigator, notifier)

    with pytest.raises(httpx.ConnectError):
        await flow.submit(_form(), _photo())

    assert notifier.messages(NoticeLevel.error) == [REGISTRATION_FAILED]
    assert navigator.history == []
    assert flow.is_submitting is False
    assert backend.calls("POST", CREATE_PATH) == []


async def test_invalid_form_submits_nothing(backend, api_client, cache, navigator, notifier):
    flow = _flow(api_client, cache, navigator, notifier)

    with pytest.raises(FormValidationError) as exc_info:
        await flow.submit(_form(phone="12345"), None)

    assert set(exc_info.value.field_errors) == {"phone", "photo"}
    assert backend.requests == []
    assert navigator.history == []
    assert flow.is_submitting is False


async def test_duplicate_email_is_reported_on_the_field(backend, api_client, cache, navigator, notifier):
    backend.on("POST", REGISTER_PATH, fail(400, "Email already exists"))

    with pytest.raises(FormValidationError) as exc_info:
        await _flow(api_client, cache, navigator, notifier).submit(_form(), _photo())

    assert exc_info.value.field_errors == {"email": "This email is already registered"}
    assert navigator.history == []


async def test_duplicate_phone_is_reported_on_the_field(backend, api_client, cache, navigator, notifier):
    backend.on("POST", REGISTER_PATH, fail(400, "User with this phone number already exists"))

    with pytest.raises(FormValidationError) as exc_info:
        await _flow(api_client, cache, navigator, notifier).submit(_form(), _photo())

    assert exc_info.value.field_errors == {"phone": "This phone number is already registered"}


async def test_other_backend_errors_propagate(backend, api_client, cache, navigator, notifier):
    backend.on("POST", REGISTER_PATH, fail(500, "Database unavailable"))
    flow = _flow(api_client, cache, navigator, notifier)

    with pytest.raises(BackendError):
        await flow.submit(_form(), _photo())

    assert notifier.messages(NoticeLevel.error) == ["Database unavailable"]
    assert flow.is_submitting is False
