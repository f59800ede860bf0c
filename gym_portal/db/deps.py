# gym_portal/db/deps.py
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from gym_portal.core.config import settings

engine = create_async_engine(
    settings.PORTAL_STORE_URL,
    echo=settings.DEBUG,
    future=True,
)
AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()


async def init_store() -> None:
    """Create the local store tables if they do not exist yet."""
    # Register models on Base.metadata before create_all
    import gym_portal.models.kv_entry  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
