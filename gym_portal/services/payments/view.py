"""Payment view: one open payment session and the timers that watch it.

The view owns a state tracker, a status poller and a countdown timer. Both
timers are started by ``open()`` and cancelled by ``close()``; using the view
as an async context manager guarantees no timer outlives it.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from gym_portal.core.exceptions import BackendError
from gym_portal.core.logging_config import get_logger
from gym_portal.core.plans import format_price
from gym_portal.schemas.payments import PaymentSession
from gym_portal.services.api_client import BackendClient
from gym_portal.services.navigation import (
    Navigator,
    Notifier,
    RecordingNavigator,
    RecordingNotifier,
)
from gym_portal.services.payments.countdown import CountdownTimer
from gym_portal.services.payments.poller import PaymentStatusPoller
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.services.payments.state import PaymentStateTracker
from gym_portal.services.payments.upi import LinkOpener, launch_upi_intent
from gym_portal.utils.datetime_utils import get_current_utc_datetime
from gym_portal.utils.enums import NoticeLevel, PaymentState, View
from gym_portal.utils.tasks import TaskHandle

logger = get_logger(__name__)


def status_banner(state: PaymentState) -> Dict[str, str]:
    match state:
        case PaymentState.paid:
            return {"title": "Payment Confirmed!", "detail": "Redirecting to confirmation page..."}
        case PaymentState.failed:
            return {"title": "Payment Failed", "detail": "Please try again or contact support"}
        case PaymentState.expired:
            return {"title": "Payment Expired", "detail": "Please register again to generate a new payment link"}
        case PaymentState.created:
            return {"title": "Waiting for Payment", "detail": "Time remaining"}


class PaymentView:
    def __init__(
        self,
        order_id: str,
        client: BackendClient,
        cache: PaymentSessionCache,
        navigator: Optional[Navigator] = None,
        notifier: Optional[Notifier] = None,
        poll_interval: Optional[float] = None,
        tick: Optional[float] = None,
        success_delay: Optional[float] = None,
        clock: Callable[[], datetime] = get_current_utc_datetime,
    ):
        self.order_id = order_id
        self.client = client
        self.cache = cache
        self.navigator = navigator or RecordingNavigator(path=View.payment.path(order_id=order_id or "-"))
        self.notifier = notifier or RecordingNotifier()
        self.poll_interval = poll_interval
        self.tick = tick
        self.success_delay = success_delay
        self.clock = clock

        self.tracker: Optional[PaymentStateTracker] = None
        self.poller: Optional[PaymentStatusPoller] = None
        self.countdown: Optional[CountdownTimer] = None
        self.session: Optional[PaymentSession] = None
        self.is_loading = True
        self._handles: List[TaskHandle] = []
        self._closed = False
        self.opened = asyncio.Event()

    async def __aenter__(self) -> "PaymentView":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def state(self) -> PaymentState:
        return self.tracker.state if self.tracker else PaymentState.created

    @property
    def is_polling(self) -> bool:
        return bool(self.poller and self.poller.is_polling)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def finished(self) -> bool:
        """True once opening is over and no timer is left running."""
        return self.opened.is_set() and all(handle.done for handle in self._handles)

    def _leave(self, view: View, level: NoticeLevel, message: str) -> None:
        self.is_loading = False
        self.notifier.notify(level, message)
        self.navigator.navigate(view)

    async def open(self) -> None:
        """Load the session and start polling and the countdown."""
        try:
            await self._load()
        finally:
            self.opened.set()

    async def _load(self) -> None:
        if not self.order_id:
            self._leave(View.home, NoticeLevel.error, "Invalid payment order ID")
            return

        try:
            status = await self.client.get_payment_status(self.order_id)
        except BackendError as e:
            logger.warning(f"Payment {self.order_id} not found: {e.message}")
            self._leave(View.home, NoticeLevel.error, "Payment not found")
            return
        except (httpx.HTTPError, ValidationError) as e:
            logger.error(f"Error fetching payment details for {self.order_id}: {e}")
            self._leave(View.home, NoticeLevel.error, "Failed to load payment details")
            return

        self.tracker = PaymentStateTracker(self.order_id, status.state)
        if status.state is PaymentState.paid:
            self._leave(View.thank_you, NoticeLevel.success, "Payment already confirmed!")
            return

        self.countdown = CountdownTimer(
            self.tracker, status.expires_at, tick=self.tick, clock=self.clock
        )

        try:
            self.session = await self.cache.load(self.order_id)
        except BackendError as e:
            logger.warning(f"Payment details for {self.order_id} unavailable: {e.message}")
            self._leave(View.home, NoticeLevel.error, "Payment details not found. Please try registering again.")
            return
        except (httpx.HTTPError, ValidationError) as e:
            logger.error(f"Error fetching payment details for {self.order_id}: {e}")
            self._leave(View.home, NoticeLevel.error, "Failed to load payment details")
            return
        self.is_loading = False

        if self._closed:
            return
        self.poller = PaymentStatusPoller(
            self.client,
            self.tracker,
            self.navigator,
            self.notifier,
            interval=self.poll_interval,
            success_delay=self.success_delay,
        )
        self._handles = [self.poller.start(), self.countdown.start()]

    async def close(self) -> None:
        """Cancel every timer owned by this view."""
        self._closed = True
        handles, self._handles = self._handles, []
        for handle in handles:
            await handle.aclose()
        logger.debug(f"Payment view for {self.order_id} closed")

    async def open_upi_app(
        self,
        user_agent: Optional[str],
        opener: LinkOpener,
        hint_delay: Optional[float] = None,
    ) -> bool:
        if self.state is not PaymentState.created:
            return False
        upi_intent = self.session.upi_intent if self.session else None
        return await launch_upi_intent(upi_intent, user_agent, opener, self.notifier, hint_delay=hint_delay)

    def snapshot(self) -> Dict[str, Any]:
        """Everything the payment page renders."""
        state = self.state
        remaining = self.countdown.remaining if self.countdown else 0
        data: Dict[str, Any] = {
            "order_id": self.order_id,
            "state": state.value,
            "is_loading": self.is_loading,
            "is_polling": self.is_polling,
            "remaining_seconds": remaining,
            "time_remaining": self.countdown.formatted if self.countdown else "0:00",
            "banner": status_banner(state),
            # QR code and the deep link are only offered while payment is possible
            "can_pay": state is PaymentState.created and self.session is not None,
        }
        if self.session is not None:
            data.update(
                amount=self.session.amount,
                amount_display=format_price(self.session.amount, self.session.currency),
                currency=self.session.currency,
                qr_image=self.session.qr_image if state is PaymentState.created else None,
                upi_intent=self.session.upi_intent,
            )
        return data
