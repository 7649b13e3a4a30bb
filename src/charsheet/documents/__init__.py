"""In-memory actor and item documents."""

from .actor import (
    Ability,
    ActorDocument,
    ActorFlags,
    ActorSystem,
    ActorType,
    ArmorClass,
    Currency,
    Encumbrance,
    Experience,
    HitPoints,
    Resource,
    Skill,
    SpellSlot,
)
from .item import ArmorData, ItemDocument, ItemSystem, ItemType, ItemUses, slugify
from .paths import apply_changes, apply_item_patches, get_path, has_path, set_path
from .updates import reset_death_saves_on_revive

__all__ = [
    "Ability",
    "ActorDocument",
    "ActorFlags",
    "ActorSystem",
    "ActorType",
    "ArmorClass",
    "ArmorData",
    "Currency",
    "Encumbrance",
    "Experience",
    "HitPoints",
    "ItemDocument",
    "ItemSystem",
    "ItemType",
    "ItemUses",
    "Resource",
    "Skill",
    "SpellSlot",
    "apply_changes",
    "apply_item_patches",
    "get_path",
    "has_path",
    "reset_death_saves_on_revive",
    "set_path",
    "slugify",
]
