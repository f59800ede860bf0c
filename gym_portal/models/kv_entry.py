from sqlalchemy import Column, String, DateTime, JSON, func
from gym_portal.db.deps import Base


class KeyValueEntry(Base):
    __tablename__ = "portal_kv"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    # updated_at stays NULL until the entry is overwritten
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())
