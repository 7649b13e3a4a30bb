"""Persistence of actor documents."""

from .engine import close_db, get_engine, get_session, init_db
from .models import ActorRecord, Base, ItemRecord
from .store import ActorNotFoundError, ActorStore, MemoryActorStore, SqlActorStore

__all__ = [
    "ActorNotFoundError",
    "ActorRecord",
    "ActorStore",
    "Base",
    "ItemRecord",
    "MemoryActorStore",
    "SqlActorStore",
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
]
