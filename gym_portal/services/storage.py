"""Key-value store capability used for the payment session cache and credentials.

The interface is deliberately tiny: ``get``, ``set`` and ``delete`` by string
key. ``SqlKeyValueStore`` persists across restarts; ``InMemoryStore`` is used
for per-request admin credentials and in tests.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from gym_portal.core.logging_config import get_logger
from gym_portal.models.kv_entry import KeyValueEntry

logger = get_logger(__name__)

TOKEN_KEY = "token"


def payment_key(order_id: str) -> str:
    return f"payment_{order_id}"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None."""
        ...
    async def set(self, key: str, value: Any) -> None:
        ...
    async def delete(self, key: str) -> None:
        ...


@dataclass
class InMemoryStore:
    data: dict[str, Any] = field(default_factory=dict)

    async def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqlKeyValueStore:
    """Persistent store backed by the ``portal_kv`` table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[Any]:
        async with self._session_factory() as db:  # type: AsyncSession
            entry = await db.get(KeyValueEntry, key)
            return entry.value if entry else None

    async def set(self, key: str, value: Any) -> None:
        async with self._session_factory() as db:
            entry = await db.get(KeyValueEntry, key)
            if entry is None:
                db.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            await db.commit()
        logger.debug(f"Stored key {key}")

    async def delete(self, key: str) -> None:
        async with self._session_factory() as db:
            entry = await db.get(KeyValueEntry, key)
            if entry is not None:
                await db.delete(entry)
                await db.commit()
