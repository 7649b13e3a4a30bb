"""Rules applied to every actor update before it is stored."""

from collections.abc import Mapping
from typing import Any

from .actor import ActorDocument

HP_VALUE_PATH = "system.attributes.hp.value"
DEATH_SUCCESS_PATH = "system.attributes.death.success"
DEATH_FAILURE_PATH = "system.attributes.death.failure"


def reset_death_saves_on_revive(
    actor: ActorDocument, changes: Mapping[str, Any]
) -> dict[str, Any]:
    """
    Clear death save counters when an update brings a downed actor above 0 HP.

    Args:
        actor: The actor before the update
        changes: Dotted-path changes about to be applied

    Returns:
        A copy of the changes, with the counters reset when the actor revives
    """
    updated = dict(changes)
    new_hp = updated.get(HP_VALUE_PATH)
    if actor.system.attributes.hp.value <= 0 and new_hp is not None and new_hp > 0:
        updated[DEATH_SUCCESS_PATH] = 0
        updated[DEATH_FAILURE_PATH] = 0
    return updated
