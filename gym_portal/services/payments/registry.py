"""Open payment views keyed by order id, shared by the portal routes.

The registry lock only guards the dict. A view is registered before it opens
so concurrent requests for the same order wait on that one opening, while
other orders are never held up by a slow backend. Views that end up with no
running timer (failed load, already paid, terminal state reached) are evicted
so the next request for the order loads it again.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional

from gym_portal.core.logging_config import get_logger
from gym_portal.services.payments.view import PaymentView

logger = get_logger(__name__)

ViewFactory = Callable[[str], PaymentView]


class PaymentViewRegistry:
    def __init__(self, factory: ViewFactory):
        self._factory = factory
        self._views: Dict[str, PaymentView] = {}
        self._lock = asyncio.Lock()

    def get(self, order_id: str) -> Optional[PaymentView]:
        return self._views.get(order_id)

    async def get_or_open(self, order_id: str) -> PaymentView:
        """Return the live view for ``order_id``, opening a fresh one if needed.

        The returned view may already be evicted when it has nothing left to
        watch; its snapshot still carries the redirect and notices.
        """
        async with self._lock:
            stale = self._pop_finished()
            view = self._views.get(order_id)
            owner = view is None
            if owner:
                view = self._factory(order_id)
                self._views[order_id] = view
        await self._close_views(stale)

        if owner:
            await view.open()
        else:
            await view.opened.wait()

        if view.finished:
            await self._evict(order_id, view)
        return view

    async def close(self, order_id: str) -> bool:
        async with self._lock:
            view = self._views.pop(order_id, None)
        if view is None:
            return False
        await view.close()
        return True

    async def close_all(self) -> None:
        async with self._lock:
            views, self._views = list(self._views.values()), {}
        await self._close_views(views)
        if views:
            logger.info(f"Closed {len(views)} payment views")

    def _pop_finished(self) -> List[PaymentView]:
        finished = [oid for oid, view in self._views.items() if view.finished]
        return [self._views.pop(oid) for oid in finished]

    async def _evict(self, order_id: str, view: PaymentView) -> None:
        async with self._lock:
            if self._views.get(order_id) is view:
                del self._views[order_id]
        await view.close()
        logger.debug(f"Evicted payment view for {order_id} at {view.state.value}")

    @staticmethod
    async def _close_views(views: List[PaymentView]) -> None:
        for view in views:
            await view.close()

    def __len__(self) -> int:
        return len(self._views)
