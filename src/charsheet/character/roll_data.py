"""Roll data: the nested values that formulas may reference with ``@path``."""

from collections.abc import Mapping
from typing import Any

from charsheet.documents import ActorDocument, ItemDocument
from charsheet.rules import EngineConfig

from .proficiency import Proficiency


def build_roll_data(
    actor: ActorDocument,
    config: EngineConfig,
    classes: Mapping[str, ItemDocument] | None = None,
    subclasses: Mapping[str, ItemDocument] | None = None,
    deterministic: bool = False,
) -> dict[str, Any]:
    """
    Build formula data from the actor's current system data.

    Args:
        actor: The actor document
        config: Engine configuration
        classes: Class items keyed by identifier
        subclasses: Subclass items keyed by their class identifier
        deterministic: Replace the proficiency term with its flat value

    Returns:
        A detached nested dictionary; changes to it do not affect the actor
    """
    data = actor.system.model_dump(mode="python")
    prof = Proficiency(actor.system.attributes.prof, 1, dice=config.proficiency_dice)
    data["prof"] = prof.flat if deterministic else prof

    data["classes"] = {}
    for identifier, cls in (classes or {}).items():
        class_data = cls.system.model_dump(mode="python")
        subclass = (subclasses or {}).get(identifier)
        if subclass is not None:
            class_data["subclass"] = subclass.system.model_dump(mode="python")
        data["classes"][identifier] = class_data
    return data
