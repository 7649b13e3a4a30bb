"""Persisting workflow changes and mirroring them onto the caller's document."""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from charsheet.character import get_primary_class
from charsheet.documents import (
    ActorDocument,
    apply_changes,
    apply_item_patches,
    reset_death_saves_on_revive,
)

if TYPE_CHECKING:
    from charsheet.database.store import ActorStore

logger = structlog.get_logger(__name__)


async def commit_updates(
    actor: ActorDocument,
    store: "ActorStore",
    changes: Mapping[str, Any],
    patches: Sequence[dict[str, Any]] = (),
) -> ActorDocument:
    """
    Persist changes through the store in one call, then apply them in memory.

    The in-memory document is only touched after the store accepted the
    update.

    Args:
        actor: The caller's actor document
        store: Persistence collaborator
        changes: Dotted-path field changes
        patches: Item patch records

    Returns:
        The prepared actor as returned by the store
    """
    effective = reset_death_saves_on_revive(actor, changes)
    stored = await store.apply_updates(actor.id, effective, list(patches))
    apply_changes(actor, effective)
    apply_item_patches(actor, list(patches))
    return stored


async def assign_primary_class(actor: ActorDocument, store: "ActorStore") -> ActorDocument:
    """Record the class with the most levels as the actor's original class."""
    primary = get_primary_class(actor)
    logger.info("primary_class_assigned", actor_id=actor.id, item_id=primary)
    return await commit_updates(actor, store, {"system.details.original_class": primary})
