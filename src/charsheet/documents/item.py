"""Owned item documents: classes, equipment, consumables and anything with uses."""

import re
import uuid
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ItemType(StrEnum):
    """Types of items an actor can own."""

    WEAPON = "weapon"
    EQUIPMENT = "equipment"
    CONSUMABLE = "consumable"
    TOOL = "tool"
    LOOT = "loot"
    BACKPACK = "backpack"
    CLASS = "class"
    SUBCLASS = "subclass"
    SPELL = "spell"
    FEAT = "feat"


class DocumentModel(BaseModel):
    """Base for document blocks; unknown keys are preserved."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ArmorData(DocumentModel):
    """Armor or shield statistics of an equipment item."""

    type: str | None = None
    value: int | None = None
    dex: int | None = None


class ItemUses(DocumentModel):
    """Limited uses and the recovery period (sr, lr, day, charges)."""

    value: int = 0
    max: int | None = None
    per: str | None = None


class ItemRecharge(DocumentModel):
    """Recharge roll threshold and whether the item is currently charged."""

    value: int | None = None
    charged: bool = True


class SpellcastingData(DocumentModel):
    """Spellcasting progression granted by a class or subclass."""

    progression: str = "none"
    ability: str = ""


class ItemSystem(DocumentModel):
    """
    Type-specific item data.

    Only the blocks relevant to an item's type are meaningful; the rest keep
    their defaults.
    """

    quantity: int = 1
    weight: float = 0.0
    equipped: bool = False
    attunement: int = 0
    armor: ArmorData | None = None
    uses: ItemUses | None = None
    recharge: ItemRecharge | None = None

    # Class and subclass data
    identifier: str = ""
    class_identifier: str = ""
    levels: int = 1
    hit_dice: str = "d6"
    hit_dice_used: int = 0
    spellcasting: SpellcastingData = Field(default_factory=SpellcastingData)


def slugify(name: str) -> str:
    """Convert a display name into an identifier ("Path of Rage" -> "path-of-rage")."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class ItemDocument(DocumentModel):
    """An item owned by an actor."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    type: ItemType = ItemType.LOOT
    sort: int = 0
    system: ItemSystem = Field(default_factory=ItemSystem)

    @property
    def identifier(self) -> str:
        """Unique per-class identifier, derived from the name when not set."""
        return self.system.identifier or slugify(self.name)

    @property
    def hit_die_faces(self) -> int:
        """Number of faces of this class's hit die ("d10" -> 10)."""
        match = re.fullmatch(r"d(\d+)", self.system.hit_dice.strip().lower())
        return int(match.group(1)) if match else 0

    def to_patch(self, **changes: Any) -> dict[str, Any]:
        """Build an item patch record for this item."""
        return {"id": self.id, **changes}

    def __repr__(self) -> str:
        """String representation of ItemDocument."""
        return f"<ItemDocument(id='{self.id}', name='{self.name}', type={self.type.value})>"
