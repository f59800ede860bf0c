"""Countdown to a payment session's expiry.

Runs independently of the poller. When it reaches zero while the session is
still ``created`` it declares the session expired locally; that declaration
wins over any later ``created`` poll response.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Optional

from gym_portal.core.config import settings
from gym_portal.core.logging_config import get_logger
from gym_portal.services.payments.state import PaymentStateTracker
from gym_portal.utils.datetime_utils import get_current_utc_datetime
from gym_portal.utils.enums import PaymentState, PaymentStateSource
from gym_portal.utils.tasks import TaskHandle, wait_or_timeout

logger = get_logger(__name__)


def remaining_seconds(expires_at: datetime, now: datetime) -> int:
    """Whole seconds until ``expires_at``, never negative."""
    return max(0, math.floor((expires_at - now).total_seconds()))


def format_time(seconds: int) -> str:
    """Render seconds as ``m:ss`` (125 -> "2:05")."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


class CountdownTimer:
    def __init__(
        self,
        tracker: PaymentStateTracker,
        expires_at: Optional[datetime],
        tick: Optional[float] = None,
        default_window: Optional[int] = None,
        clock: Callable[[], datetime] = get_current_utc_datetime,
    ):
        self.tracker = tracker
        self.tick = tick if tick is not None else settings.COUNTDOWN_TICK_SECONDS
        if expires_at is None:
            self.remaining = default_window if default_window is not None else settings.PAYMENT_DEFAULT_WINDOW_SECONDS
        else:
            self.remaining = remaining_seconds(expires_at, clock())

    @property
    def formatted(self) -> str:
        return format_time(self.remaining)

    def start(self) -> TaskHandle:
        name = f"countdown:{self.tracker.order_id}"
        if self.tracker.is_terminal:
            return TaskHandle.finished(name)
        if self.remaining <= 0:
            self._expire()
            return TaskHandle.finished(name)
        return TaskHandle.spawn(self._run(), name=name)

    async def _run(self) -> None:
        while self.remaining > 0 and not self.tracker.is_terminal:
            if await wait_or_timeout(self.tracker.terminal_reached, self.tick):
                break
            self.remaining -= 1
            if self.remaining == 0:
                self._expire()

    def _expire(self) -> None:
        self.remaining = 0
        if self.tracker.state is PaymentState.created:
            logger.info(f"Payment window for {self.tracker.order_id} elapsed; expiring locally")
            self.tracker.observe(PaymentState.expired, PaymentStateSource.local)
