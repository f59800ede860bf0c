"""Payment session watching: state tracking, status polling and expiry countdown."""

from .state import PaymentStateTracker
from .poller import PaymentStatusPoller
from .countdown import CountdownTimer, format_time, remaining_seconds
from .session_cache import PaymentSessionCache
from .view import PaymentView

__all__ = [
    "PaymentStateTracker",
    "PaymentStatusPoller",
    "CountdownTimer",
    "format_time",
    "remaining_seconds",
    "PaymentSessionCache",
    "PaymentView",
]
