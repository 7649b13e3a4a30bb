"""SQLAlchemy models for charsheet."""

from charsheet.database.models.actor import ActorRecord
from charsheet.database.models.base import Base, TimestampMixin
from charsheet.database.models.item import ItemRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "ActorRecord",
    "ItemRecord",
]
