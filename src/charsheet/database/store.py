"""
Actor stores: load prepared actor documents and apply batched updates.

Every store applies updates atomically: field changes and item patches for one
actor land together or not at all.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from charsheet.character import prepare_actor
from charsheet.documents import (
    ActorDocument,
    apply_changes,
    apply_item_patches,
    reset_death_saves_on_revive,
)
from charsheet.rules import EngineConfig, get_engine_config

from .models import ActorRecord

logger = structlog.get_logger(__name__)

ItemPatch = dict[str, Any]


class ActorNotFoundError(Exception):
    """Raised when a store has no actor with the requested id."""

    pass


class ActorStore(Protocol):
    """Persistence collaborator used by the workflows."""

    async def get(self, actor_id: str) -> ActorDocument: ...

    async def update(self, actor_id: str, changes: Mapping[str, Any]) -> ActorDocument: ...

    async def update_items(self, actor_id: str, patches: Sequence[ItemPatch]) -> ActorDocument: ...

    async def apply_updates(
        self,
        actor_id: str,
        changes: Mapping[str, Any],
        patches: Sequence[ItemPatch],
    ) -> ActorDocument: ...


def apply_to_document(
    actor: ActorDocument,
    changes: Mapping[str, Any],
    patches: Sequence[ItemPatch],
) -> ActorDocument:
    """
    Apply changes and item patches to a copy of an actor.

    The original document is untouched if any change fails.

    Raises:
        KeyError: If a change path or patched item does not exist
    """
    updated = actor.model_copy(deep=True)
    apply_changes(updated, reset_death_saves_on_revive(actor, changes))
    apply_item_patches(updated, list(patches))
    return updated


class MemoryActorStore:
    """Actor store over in-process documents."""

    def __init__(
        self,
        actors: Iterable[ActorDocument] = (),
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or get_engine_config()
        self._actors: dict[str, ActorDocument] = {
            actor.id: actor.model_copy(deep=True) for actor in actors
        }

    def add(self, actor: ActorDocument) -> None:
        """Store a copy of an actor."""
        self._actors[actor.id] = actor.model_copy(deep=True)

    def _stored(self, actor_id: str) -> ActorDocument:
        try:
            return self._actors[actor_id]
        except KeyError:
            raise ActorNotFoundError(f"Actor {actor_id} not found") from None

    async def get(self, actor_id: str) -> ActorDocument:
        """Return a prepared copy of the stored actor."""
        actor = self._stored(actor_id).model_copy(deep=True)
        original = None
        if actor.flags.is_polymorphed and actor.flags.original_actor in self._actors:
            original = self._actors[actor.flags.original_actor].model_copy(deep=True)
            prepare_actor(original, self.config)
        prepare_actor(actor, self.config, original)
        return actor

    async def update(self, actor_id: str, changes: Mapping[str, Any]) -> ActorDocument:
        return await self.apply_updates(actor_id, changes, [])

    async def update_items(self, actor_id: str, patches: Sequence[ItemPatch]) -> ActorDocument:
        return await self.apply_updates(actor_id, {}, patches)

    async def apply_updates(
        self,
        actor_id: str,
        changes: Mapping[str, Any],
        patches: Sequence[ItemPatch],
    ) -> ActorDocument:
        """Apply changes and item patches together, then return the prepared actor."""
        self._actors[actor_id] = apply_to_document(self._stored(actor_id), changes, patches)
        logger.debug(
            "actor_updated",
            actor_id=actor_id,
            changes=len(changes),
            item_patches=len(patches),
        )
        return await self.get(actor_id)


class SqlActorStore:
    """
    Actor store over the async SQLAlchemy models.

    The store works inside the caller's session; committing or rolling back is
    the session owner's job (see ``get_session``).
    """

    def __init__(self, session: AsyncSession, config: EngineConfig | None = None) -> None:
        self.session = session
        self.config = config or get_engine_config()

    async def _load_record(self, actor_id: str) -> ActorRecord:
        result = await self.session.execute(select(ActorRecord).where(ActorRecord.id == actor_id))
        record = result.scalar_one_or_none()
        if record is None:
            raise ActorNotFoundError(f"Actor {actor_id} not found")
        return record

    async def add(self, actor: ActorDocument) -> ActorRecord:
        """Insert an actor and its items."""
        record = ActorRecord.from_document(actor)
        self.session.add(record)
        await self.session.flush()
        logger.info("actor_created", actor_id=actor.id, name=actor.name, items=len(actor.items))
        return record

    async def get(self, actor_id: str) -> ActorDocument:
        """
        Load and prepare an actor.

        A polymorphed actor's original is loaded and prepared first so its
        saves and skills can be merged.

        Raises:
            ActorNotFoundError: If no such actor exists
        """
        record = await self._load_record(actor_id)
        actor = record.to_document()

        original = None
        if actor.flags.is_polymorphed and actor.flags.original_actor:
            result = await self.session.execute(
                select(ActorRecord).where(ActorRecord.id == actor.flags.original_actor)
            )
            original_record = result.scalar_one_or_none()
            if original_record is not None:
                original = original_record.to_document()
                prepare_actor(original, self.config)
            else:
                logger.warning(
                    "original_actor_missing",
                    actor_id=actor_id,
                    original_actor=actor.flags.original_actor,
                )

        prepare_actor(actor, self.config, original)
        return actor

    async def update(self, actor_id: str, changes: Mapping[str, Any]) -> ActorDocument:
        return await self.apply_updates(actor_id, changes, [])

    async def update_items(self, actor_id: str, patches: Sequence[ItemPatch]) -> ActorDocument:
        return await self.apply_updates(actor_id, {}, patches)

    async def apply_updates(
        self,
        actor_id: str,
        changes: Mapping[str, Any],
        patches: Sequence[ItemPatch],
    ) -> ActorDocument:
        """
        Apply field changes and item patches in one flush.

        Raises:
            ActorNotFoundError: If no such actor exists
            KeyError: If a change path or patched item does not exist
        """
        record = await self._load_record(actor_id)
        updated = apply_to_document(record.to_document(), changes, patches)

        record.name = updated.name
        record.system = updated.system.model_dump(mode="json")
        record.flags = updated.flags.model_dump(mode="json")

        patched_ids = {patch["id"] for patch in patches}
        items = {item.id: item for item in updated.items}
        for item_record in record.items:
            if item_record.id in patched_ids:
                item_record.system = items[item_record.id].system.model_dump(mode="json")

        await self.session.flush()
        logger.debug(
            "actor_updated",
            actor_id=actor_id,
            changes=len(changes),
            item_patches=len(patches),
        )
        return await self.get(actor_id)
