"""
SQLAlchemy database models for HWLink.

Two generic key-value tables back the host storage contract: one scoped per
player, one shared by every instance of a world.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now():
    """Generate timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class PlayerVariable(Base):
    """
    Per-player integer variable (e.g. the Discord link flag).
    """

    __tablename__ = "player_variables"

    id = Column(Integer, primary_key=True, autoincrement=True)
    world = Column(String(128), nullable=False)
    player_id = Column(Integer, nullable=False)
    key = Column(String(128), nullable=False)
    value = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("world", "player_id", "key", name="uq_player_variable"),
        Index("idx_player_variable_player", "world", "player_id"),
    )

    def __repr__(self):
        return f"<PlayerVariable(world={self.world}, player={self.player_id}, key={self.key}, value={self.value})>"


class WorldVariable(Base):
    """
    World-scoped JSON variable shared across all instances (e.g. the used code ledger).
    """

    __tablename__ = "world_variables"

    id = Column(Integer, primary_key=True, autoincrement=True)
    world = Column(String(128), nullable=False)
    key = Column(String(128), nullable=False)
    value = Column(JSON)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (UniqueConstraint("world", "key", name="uq_world_variable"),)

    def __repr__(self):
        return f"<WorldVariable(world={self.world}, key={self.key})>"
