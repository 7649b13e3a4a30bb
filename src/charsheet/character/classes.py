"""Class aggregation: class items keyed by identifier, levels and hit dice."""

from dataclasses import dataclass

import structlog

from charsheet.documents import ActorDocument, ActorType, ItemDocument, ItemType

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ClassLevels:
    """Total character level and remaining hit dice across all classes."""

    level: int
    hit_dice: int


def collect_classes(actor: ActorDocument) -> dict[str, ItemDocument]:
    """
    Map class identifiers to owned class items.

    Items are visited in stable sort order. Identifiers are expected to be
    unique; a duplicate replaces the earlier entry.

    Args:
        actor: The actor document

    Returns:
        Class items keyed by identifier (empty for vehicles)
    """
    if actor.type not in (ActorType.CHARACTER, ActorType.NPC):
        return {}

    classes: dict[str, ItemDocument] = {}
    for item in actor.items_of_type(ItemType.CLASS):
        if item.identifier in classes:
            logger.warning(
                "duplicate_class_identifier",
                actor_id=actor.id,
                identifier=item.identifier,
                item_id=item.id,
            )
        classes[item.identifier] = item
    return classes


def collect_subclasses(actor: ActorDocument) -> dict[str, ItemDocument]:
    """Map class identifiers to the subclass item attached to that class."""
    return {
        item.system.class_identifier: item
        for item in actor.items_of_type(ItemType.SUBCLASS)
        if item.system.class_identifier
    }


def class_progression(cls: ItemDocument, subclass: ItemDocument | None = None) -> str:
    """Effective spellcasting progression, preferring the subclass's when it grants one."""
    if subclass is not None and subclass.system.spellcasting.progression != "none":
        return subclass.system.spellcasting.progression
    return cls.system.spellcasting.progression


def calculate_class_levels(actor: ActorDocument) -> ClassLevels:
    """
    Sum class levels and unused hit dice.

    A class item with no usable level count contributes one level.
    """
    level = 0
    hit_dice = 0
    for item in actor.items_of_type(ItemType.CLASS):
        class_levels = int(item.system.levels or 0) or 1
        level += class_levels
        hit_dice += class_levels - int(item.system.hit_dice_used or 0)
    return ClassLevels(level=level, hit_dice=hit_dice)


def get_primary_class(actor: ActorDocument) -> str:
    """
    Get the id of the class item with the most levels.

    Returns:
        The item id, or an empty string when the actor has no classes
    """
    classes = sorted(
        actor.items_of_type(ItemType.CLASS),
        key=lambda item: item.system.levels,
        reverse=True,
    )
    return classes[0].id if classes else ""


def find_class_with_hit_die(
    actor: ActorDocument, denomination: str | None = None
) -> ItemDocument | None:
    """
    Find a class with an unspent hit die.

    Args:
        actor: The actor document
        denomination: Required hit die ("d8"); any denomination when None

    Returns:
        The first matching class item, or None
    """
    for item in actor.items_of_type(ItemType.CLASS):
        if denomination and item.system.hit_dice != denomination:
            continue
        if (item.system.hit_dice_used or 0) < (item.system.levels or 1):
            return item
    return None
