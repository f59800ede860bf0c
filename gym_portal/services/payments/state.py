"""Last observed payment state, guarded by terminality rank.

Both the status poller and the countdown timer report into one tracker. A
report only replaces the current state when it ranks strictly higher
(paid/failed > locally declared expired > created), so a late ``created``
response can never resurrect a session that already ended.
"""

from __future__ import annotations

import asyncio
from typing import Callable, List

from gym_portal.core.logging_config import get_logger
from gym_portal.utils.enums import PaymentState, PaymentStateSource

logger = get_logger(__name__)

StateListener = Callable[[PaymentState, PaymentStateSource], None]


class PaymentStateTracker:
    def __init__(self, order_id: str, initial: PaymentState = PaymentState.created):
        self.order_id = order_id
        self._state = PaymentState.created
        self._source = PaymentStateSource.server
        self._listeners: List[StateListener] = []
        self.terminal_reached = asyncio.Event()
        if initial is not PaymentState.created:
            self.observe(initial, PaymentStateSource.server)

    @property
    def state(self) -> PaymentState:
        return self._state

    @property
    def source(self) -> PaymentStateSource:
        return self._source

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def observe(self, state: PaymentState, source: PaymentStateSource) -> bool:
        """Record a reported state; returns True if it became the current state."""
        state = PaymentState(state)
        if state.rank <= self._state.rank:
            if state is not self._state:
                logger.debug(
                    f"Ignoring {source.value} report {state.value} for {self.order_id}; "
                    f"current state is {self._state.value}"
                )
            return False

        previous = self._state
        self._state = state
        self._source = source
        logger.info(f"Payment {self.order_id}: {previous.value} -> {state.value} ({source.value})")
        if state.is_terminal:
            self.terminal_reached.set()
        for listener in list(self._listeners):
            listener(state, source)
        return True
