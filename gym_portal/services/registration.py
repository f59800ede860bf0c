"""Member registration flow.

Validates the form, creates the member and then branches on the payment
method: cash registrations are done, online registrations get a payment
session and move to the payment view. A payment session that cannot be
created does not undo the registration; the member is sent to the thank-you
view and an admin reconciles the payment later.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Mapping, Optional

import httpx
from pydantic import ValidationError

from gym_portal.core.exceptions import BackendError, FormValidationError
from gym_portal.core.logging_config import get_logger
from gym_portal.schemas.members import PhotoUpload
from gym_portal.schemas.payments import PaymentSession
from gym_portal.services.api_client import BackendClient
from gym_portal.services.navigation import Navigator, Notifier
from gym_portal.services.payments.checkout import (
    PAYMENT_SETUP_FAILED,
    extract_member_id,
    provision_payment,
)
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.services.validation import validate_registration
from gym_portal.utils.enums import NoticeLevel, PaymentMethod, View

logger = get_logger(__name__)

REGISTRATION_FAILED = "Registration failed. Please try again."


@dataclass
class SubmissionResult:
    member_id: Optional[str]
    payment_method: PaymentMethod
    payment_session: Optional[PaymentSession] = None
    payment_setup_failed: bool = False


def _duplicate_field(e: BackendError) -> Optional[tuple[str, str, str]]:
    if e.status_code != 400:
        return None
    if "Email already exists" in e.message:
        return (
            "email",
            "This email is already registered",
            "This email is already registered. Please use a different email.",
        )
    if "phone" in e.message:
        return (
            "phone",
            "This phone number is already registered",
            "This phone number is already registered. Please use a different phone number.",
        )
    return None


class RegistrationFlow:
    def __init__(
        self,
        client: BackendClient,
        cache: PaymentSessionCache,
        navigator: Navigator,
        notifier: Notifier,
        today: Callable[[], date] = date.today,
    ):
        self.client = client
        self.cache = cache
        self.navigator = navigator
        self.notifier = notifier
        self.today = today
        self.is_submitting = False

    async def submit(self, data: Mapping[str, Any], photo: Optional[PhotoUpload]) -> SubmissionResult:
        """Validate and submit a registration.

        Raises:
            FormValidationError: any field failed; nothing was submitted
            BackendError: the backend refused the registration
            httpx.HTTPError: the backend could not be reached
        """
        try:
            form = validate_registration(data, photo)
        except FormValidationError:
            self.notifier.notify(NoticeLevel.error, "Please fix the errors in the form")
            raise

        self.is_submitting = True
        try:
            try:
                body = await self.client.register_member(form.to_form_fields(self.today()), photo)
            except BackendError as e:
                duplicate = _duplicate_field(e)
                if duplicate:
                    field, field_message, notice = duplicate
                    self.notifier.notify(NoticeLevel.error, notice)
                    raise FormValidationError({field: field_message}, message=notice) from e
                self.notifier.notify(NoticeLevel.error, e.message or REGISTRATION_FAILED)
                raise
            except httpx.HTTPError as e:
                logger.error(f"Registration for {form.email} did not reach the backend: {e}")
                self.notifier.notify(NoticeLevel.error, REGISTRATION_FAILED)
                raise

            member_id = extract_member_id(body)
            result = SubmissionResult(member_id=member_id, payment_method=form.payment_method)

            match form.payment_method:
                case PaymentMethod.cash:
                    self.notifier.notify(NoticeLevel.success, "Registration successful! Please check your email.")
                    self.navigator.navigate(View.thank_you)
                case PaymentMethod.online:
                    try:
                        session = await provision_payment(self.client, self.cache, member_id, form.plan)
                    except (BackendError, httpx.HTTPError, ValidationError) as e:
                        logger.error(f"Payment setup failed after registering {form.email}: {e}")
                        result.payment_setup_failed = True
                        self.notifier.notify(NoticeLevel.warning, PAYMENT_SETUP_FAILED)
                        self.navigator.navigate(View.thank_you)
                    else:
                        result.payment_session = session
                        self.notifier.notify(NoticeLevel.success, "Registration successful! Please complete your payment.")
                        self.navigator.navigate(View.payment, order_id=session.order_id)
            return result
        finally:
            self.is_submitting = False
