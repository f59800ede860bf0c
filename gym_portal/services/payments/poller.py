"""Payment status poller.

Asks the backend for the state of one payment session every interval until a
terminal state is observed (by this poller or by the countdown timer). Only
one status request is ever in flight: the next interval starts after the
previous response has been handled.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx
from pydantic import ValidationError

from gym_portal.core.config import settings
from gym_portal.core.exceptions import PortalError
from gym_portal.core.logging_config import get_logger
from gym_portal.services.api_client import BackendClient
from gym_portal.services.navigation import Navigator, Notifier
from gym_portal.services.payments.state import PaymentStateTracker
from gym_portal.utils.enums import NoticeLevel, PaymentState, PaymentStateSource, View
from gym_portal.utils.tasks import TaskHandle, wait_or_timeout

logger = get_logger(__name__)


class PaymentStatusPoller:
    def __init__(
        self,
        client: BackendClient,
        tracker: PaymentStateTracker,
        navigator: Navigator,
        notifier: Notifier,
        interval: Optional[float] = None,
        success_delay: Optional[float] = None,
    ):
        self.client = client
        self.tracker = tracker
        self.navigator = navigator
        self.notifier = notifier
        self.interval = interval if interval is not None else settings.PAYMENT_POLL_INTERVAL_SECONDS
        self.success_delay = (
            success_delay if success_delay is not None else settings.PAYMENT_SUCCESS_REDIRECT_SECONDS
        )
        self.poll_count = 0
        self._in_flight = False

    @property
    def order_id(self) -> str:
        return self.tracker.order_id

    @property
    def is_polling(self) -> bool:
        return self._in_flight

    def start(self) -> TaskHandle:
        if self.tracker.is_terminal:
            return TaskHandle.finished(f"poller:{self.order_id}")
        return TaskHandle.spawn(self._run(), name=f"poller:{self.order_id}")

    async def _run(self) -> None:
        logger.info(f"Polling payment {self.order_id} every {self.interval}s")
        try:
            while not self.tracker.is_terminal:
                # Local expiry ends the wait early
                if await wait_or_timeout(self.tracker.terminal_reached, self.interval):
                    break
                await self.poll_once()

            if self.tracker.state is PaymentState.paid and self.tracker.source is PaymentStateSource.server:
                await asyncio.sleep(self.success_delay)
                self.navigator.navigate(View.thank_you)
        except asyncio.CancelledError:
            logger.info(f"Polling for payment {self.order_id} cancelled")
            raise
        logger.info(f"Polling for payment {self.order_id} stopped at {self.tracker.state.value}")

    async def poll_once(self) -> None:
        """Issue one status request; transport and backend errors are retried next tick."""
        if self._in_flight:
            logger.debug(f"Status request for {self.order_id} still in flight; skipping")
            return

        self._in_flight = True
        self.poll_count += 1
        try:
            status = await self.client.get_payment_status(self.order_id)
        except (httpx.HTTPError, PortalError, ValidationError) as e:
            logger.warning(f"Error polling payment status for {self.order_id}: {e}")
            return
        finally:
            self._in_flight = False

        if not self.tracker.observe(status.state, PaymentStateSource.server):
            return

        match status.state:
            case PaymentState.paid:
                self.notifier.notify(NoticeLevel.success, "Payment confirmed!")
            case PaymentState.failed | PaymentState.expired:
                self.notifier.notify(NoticeLevel.error, "Payment failed or expired")
            case PaymentState.created:
                pass
