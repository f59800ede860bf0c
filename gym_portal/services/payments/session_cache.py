"""Read-through cache of payment sessions keyed by order id.

Sessions are written once when they are created and read back after a page
reload instead of refetching the details. Entries are never evicted; sessions
live for minutes and there are few of them per visitor.
"""

from __future__ import annotations

from gym_portal.core.logging_config import get_logger
from gym_portal.schemas.payments import PaymentSession
from gym_portal.services.api_client import BackendClient
from gym_portal.services.storage import KeyValueStore, payment_key

logger = get_logger(__name__)


class PaymentSessionCache:
    def __init__(self, store: KeyValueStore, client: BackendClient):
        self.store = store
        self.client = client

    async def remember(self, session: PaymentSession) -> None:
        await self.store.set(payment_key(session.order_id), session.to_cache())

    async def cached(self, order_id: str) -> PaymentSession | None:
        raw = await self.store.get(payment_key(order_id))
        if raw is None:
            return None
        return PaymentSession.model_validate(raw)

    async def load(self, order_id: str) -> PaymentSession:
        """Return the stored session, fetching and storing the details on a miss.

        Raises:
            BackendError: details are not available from the backend
        """
        session = await self.cached(order_id)
        if session is not None:
            logger.debug(f"Payment session {order_id} served from local store")
            return session

        session = await self.client.get_payment_details(order_id)
        await self.remember(session)
        logger.info(f"Payment session {order_id} fetched and stored locally")
        return session
