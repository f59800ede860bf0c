"""Membership renewal flows.

Two paths exist. A renewal link carries a token that identifies the member;
submitting it renews directly and, for online payment, continues into the
payment view. A renewal request is queued for admin approval instead.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Mapping, Optional

import httpx
from pydantic import ValidationError

from gym_portal.core.exceptions import BackendError, FormValidationError
from gym_portal.core.logging_config import get_logger
from gym_portal.core.plans import get_plan_price
from gym_portal.schemas.members import Member, PhotoUpload, RenewalRequest
from gym_portal.services.api_client import BackendClient
from gym_portal.services.navigation import Navigator, Notifier
from gym_portal.services.payments.checkout import (
    extract_embedded_session,
    extract_member_id,
    provision_payment,
)
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.services.registration import SubmissionResult
from gym_portal.services.validation import validate_renewal
from gym_portal.utils.enums import NoticeLevel, PaymentMethod, PlanId, View

logger = get_logger(__name__)

RENEWAL_PAYMENT_SETUP_FAILED = (
    "Renewal submitted, but payment setup failed. "
    "Please contact the gym to complete your payment."
)
RENEWAL_FAILED = "Could not reach the membership service. Please try again."


class RenewalFlow:
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

    async def verify(self, token: str) -> Member:
        """Resolve a renewal token to its member; invalid tokens send the user home."""
        try:
            return await self.client.verify_renewal_token(token)
        except BackendError as e:
            logger.warning(f"Renewal token verification failed: {e.message}")
            self.notifier.notify(NoticeLevel.error, e.message or "Invalid or expired renewal token")
            self.navigator.navigate(View.home)
            raise
        except httpx.HTTPError as e:
            logger.error(f"Renewal token verification did not reach the backend: {e}")
            self.notifier.notify(NoticeLevel.error, RENEWAL_FAILED)
            raise

    async def resolve_member(self, token: str) -> Member:
        """Member behind a renewal-request link (admin approval path)."""
        try:
            member = await self.client.verify_member_token(token)
        except BackendError as e:
            logger.warning(f"Member token verification failed: {e.message}")
            self.notifier.notify(NoticeLevel.error, e.message or "Failed to verify token")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Member token verification did not reach the backend: {e}")
            self.notifier.notify(NoticeLevel.error, RENEWAL_FAILED)
            raise
        except ValidationError as e:
            logger.warning(f"Member token resolved to an unusable record: {e}")
            member = None
        if member is None or not member.member_id:
            self.notifier.notify(NoticeLevel.error, "User information not found")
            raise BackendError("User information not found", status_code=404)
        return member

    async def submit(
        self,
        token: str,
        data: Mapping[str, Any],
        photo: Optional[PhotoUpload] = None,
        member: Optional[Member] = None,
    ) -> SubmissionResult:
        """Renew the membership identified by ``token``.

        Raises:
            FormValidationError: plan, payment method or photo is invalid
            BackendError: the backend refused the renewal
            httpx.HTTPError: the backend could not be reached
        """
        try:
            submission = validate_renewal(data, photo)
        except FormValidationError:
            self.notifier.notify(NoticeLevel.error, "Please fix the errors in the form")
            raise

        self.is_submitting = True
        try:
            try:
                body = await self.client.renew_membership(token, submission.to_payload(self.today()), photo)
            except BackendError as e:
                self.notifier.notify(NoticeLevel.error, "Failed to process renewal request")
                logger.warning(f"Renewal failed: {e.message}")
                raise
            except httpx.HTTPError as e:
                logger.error(f"Renewal did not reach the backend: {e}")
                self.notifier.notify(NoticeLevel.error, "Failed to process renewal request")
                raise

            member_id = extract_member_id(body) or (member.member_id if member else None)
            result = SubmissionResult(member_id=member_id, payment_method=submission.payment_method)

            match submission.payment_method:
                case PaymentMethod.cash:
                    self.notifier.notify(NoticeLevel.success, "Renewal request submitted successfully!")
                    self.navigator.navigate(View.renewal_thank_you)
                case PaymentMethod.online:
                    try:
                        session = await provision_payment(
                            self.client,
                            self.cache,
                            member_id,
                            submission.plan,
                            embedded=extract_embedded_session(body),
                        )
                    except (BackendError, httpx.HTTPError, ValidationError) as e:
                        logger.error(f"Payment setup failed after renewal for member {member_id}: {e}")
                        result.payment_setup_failed = True
                        self.notifier.notify(NoticeLevel.warning, RENEWAL_PAYMENT_SETUP_FAILED)
                        self.navigator.navigate(View.renewal_thank_you)
                    else:
                        result.payment_session = session
                        self.notifier.notify(NoticeLevel.success, "Renewal submitted! Please complete your payment.")
                        self.navigator.navigate(View.payment, order_id=session.order_id)
            return result
        finally:
            self.is_submitting = False

    async def request_approval(
        self,
        member_id: Optional[str],
        plan: Optional[str],
        payment_method: str = PaymentMethod.cash.value,
    ) -> Optional[RenewalRequest]:
        """Queue a renewal for admin approval; returns the submitted request."""
        if not plan:
            self.notifier.notify(NoticeLevel.error, "Please select a plan")
            return None
        if not member_id:
            self.notifier.notify(NoticeLevel.error, "User information not found")
            return None

        errors: dict[str, str] = {}
        if plan not in {p.value for p in PlanId}:
            errors["plan"] = "Please select a valid plan"
        if payment_method not in {m.value for m in PaymentMethod}:
            errors["paymentMethod"] = "Payment method must be 'cash' or 'online'"
        if errors:
            self.notifier.notify(NoticeLevel.error, "Please fix the errors in the form")
            raise FormValidationError(errors)

        request = RenewalRequest(
            user_id=member_id,
            plan=PlanId(plan),
            payment_method=PaymentMethod(payment_method),
            amount=get_plan_price(plan),
        )

        self.is_submitting = True
        try:
            await self.client.request_renewal(request)
        except BackendError as e:
            self.notifier.notify(NoticeLevel.error, e.message or "Failed to submit renewal request")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Renewal request for member {member_id} did not reach the backend: {e}")
            self.notifier.notify(NoticeLevel.error, "Failed to submit renewal request")
            raise
        finally:
            self.is_submitting = False

        self.notifier.notify(
            NoticeLevel.success,
            "Renewal request submitted successfully! Please wait for admin approval.",
        )
        self.navigator.navigate(View.renewal_pending)
        return request

    async def request_approval_for_token(
        self,
        token: str,
        plan: Optional[str],
        payment_method: str = PaymentMethod.cash.value,
    ) -> Optional[RenewalRequest]:
        """Queue a renewal for the member a renewal-request link belongs to."""
        member = await self.resolve_member(token)
        return await self.request_approval(member.member_id, plan, payment_method)
