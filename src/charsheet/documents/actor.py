"""
Actor document model.

The document holds both authored inputs (ability scores, proficiencies, flags,
owned items) and the derived blocks written by data preparation (modifiers,
saves, armor class, slots). Derived fields are overwritten in full on every
preparation pass.
"""

import uuid
from enum import StrEnum
from typing import Any

from pydantic import Field

from .item import DocumentModel, ItemDocument, ItemType

Bonus = str | int | float | None


class ActorType(StrEnum):
    """Actor subtypes with their own base data preparation."""

    CHARACTER = "character"
    NPC = "npc"
    VEHICLE = "vehicle"


class AbilityBonuses(DocumentModel):
    """Per-ability check and save bonus formulas."""

    check: Bonus = ""
    save: Bonus = ""


class Ability(DocumentModel):
    """An ability score and its derived modifier, save and DC."""

    value: int = 10
    proficient: float = 0
    bonuses: AbilityBonuses = Field(default_factory=AbilityBonuses)

    # Derived
    mod: int = 0
    save: int = 0
    dc: int = 0
    save_bonus: int = 0
    check_bonus: int = 0
    save_prof: Any = Field(default=None, exclude=True)
    check_prof: Any = Field(default=None, exclude=True)


class SkillBonuses(DocumentModel):
    """Per-skill check and passive bonus formulas."""

    check: Bonus = ""
    passive: Bonus = ""


class Skill(DocumentModel):
    """A skill's proficiency multiplier and derived totals."""

    value: float = 0
    ability: str = "dex"
    bonuses: SkillBonuses = Field(default_factory=SkillBonuses)

    # Derived
    mod: int = 0
    bonus: int = 0
    proficient: float = 0
    total: int = 0
    passive: int = 0
    prof: Any = Field(default=None, exclude=True)


class ArmorClass(DocumentModel):
    """Armor class inputs and the resolved value."""

    calc: str = "default"
    flat: int | None = None
    formula: str = ""
    value: int | None = None

    # Derived
    armor: int = 10
    shield: int = 0
    bonus: int = 0
    cover: int = 0
    dex: int = 0
    base: int = 0
    equipped_armor: str | None = None
    equipped_shield: str | None = None
    warnings: list[str] = Field(default_factory=list)


class HitPoints(DocumentModel):
    """Current, maximum and temporary hit points."""

    value: int = 10
    max: int = 10
    temp: int = 0
    tempmax: int = 0


class Initiative(DocumentModel):
    """Initiative bonus inputs and total."""

    value: int = 0

    # Derived
    mod: int = 0
    bonus: int = 0
    total: int = 0
    prof: Any = Field(default=None, exclude=True)


class DeathSaves(DocumentModel):
    """Death saving throw counters."""

    success: int = 0
    failure: int = 0


class Encumbrance(DocumentModel):
    """Carried weight against capacity."""

    value: float = 0.0
    max: float = 0.0
    pct: float = 0.0
    encumbered: bool = False


class Attunement(DocumentModel):
    """Attuned item count and limit."""

    value: int = 0
    max: int = 3


class Attributes(DocumentModel):
    """Combat and derived attributes."""

    ac: ArmorClass = Field(default_factory=ArmorClass)
    hp: HitPoints = Field(default_factory=HitPoints)
    init: Initiative = Field(default_factory=Initiative)
    death: DeathSaves = Field(default_factory=DeathSaves)
    encumbrance: Encumbrance = Field(default_factory=Encumbrance)
    attunement: Attunement = Field(default_factory=Attunement)
    spellcasting: str | None = None

    # Derived
    prof: int = 0
    hd: int = 0
    spelldc: int = 10


class Experience(DocumentModel):
    """Experience points and progress toward the next level."""

    value: int = 0
    min: int = 0
    max: int = 0
    pct: int = 0


class Details(DocumentModel):
    """Level, experience and NPC challenge data."""

    level: int = 0
    xp: Experience = Field(default_factory=Experience)
    cr: float = 0
    spell_level: int | None = None
    original_class: str = ""


class Traits(DocumentModel):
    """Creature traits relevant to derived data."""

    size: str = "med"


class Currency(DocumentModel):
    """Carried coins by denomination."""

    pp: int = 0
    gp: int = 0
    ep: int = 0
    sp: int = 0
    cp: int = 0


class SpellSlot(DocumentModel):
    """Spell slots of one level (or the pact slot pool)."""

    value: int = 0
    override: int | None = None

    # Derived
    max: int = 0
    level: int = 0


class Resource(DocumentModel):
    """A generic limited resource and when it recovers."""

    label: str = ""
    value: int = 0
    max: int | str | None = None
    sr: bool = False
    lr: bool = False


class AbilityBonusSet(DocumentModel):
    """Global bonuses to every ability check, save and skill."""

    check: Bonus = ""
    save: Bonus = ""
    skill: Bonus = ""


class SpellBonusSet(DocumentModel):
    """Global spell bonuses."""

    dc: Bonus = ""


class GlobalBonuses(DocumentModel):
    """Bonuses that apply across the whole actor."""

    abilities: AbilityBonusSet = Field(default_factory=AbilityBonusSet)
    spell: SpellBonusSet = Field(default_factory=SpellBonusSet)


def default_spells() -> dict[str, SpellSlot]:
    """Empty slot pools for spell levels 1-9 and pact magic."""
    spells = {f"spell{level}": SpellSlot() for level in range(1, 10)}
    spells["pact"] = SpellSlot()
    return spells


class ActorSystem(DocumentModel):
    """All system data of an actor."""

    abilities: dict[str, Ability] = Field(default_factory=dict)
    skills: dict[str, Skill] = Field(default_factory=dict)
    attributes: Attributes = Field(default_factory=Attributes)
    details: Details = Field(default_factory=Details)
    traits: Traits = Field(default_factory=Traits)
    currency: Currency = Field(default_factory=Currency)
    spells: dict[str, SpellSlot] = Field(default_factory=default_spells)
    resources: dict[str, Resource] = Field(default_factory=dict)
    bonuses: GlobalBonuses = Field(default_factory=GlobalBonuses)


class TransformOptions(DocumentModel):
    """Merge rules applied while an actor is transformed."""

    merge_saves: bool = False
    merge_skills: bool = False


class ActorFlags(DocumentModel):
    """Feature flags and transformation state."""

    diamond_soul: bool = False
    jack_of_all_trades: bool = False
    remarkable_athlete: bool = False
    observant_feat: bool = False
    powerful_build: bool = False
    initiative_alert: bool = False
    is_polymorphed: bool = False
    original_actor: str | None = None
    transform_options: TransformOptions = Field(default_factory=TransformOptions)


class ActorDocument(DocumentModel):
    """A character, NPC or vehicle and its owned items."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    type: ActorType = ActorType.CHARACTER
    system: ActorSystem = Field(default_factory=ActorSystem)
    flags: ActorFlags = Field(default_factory=ActorFlags)
    items: list[ItemDocument] = Field(default_factory=list)

    def items_of_type(self, item_type: ItemType) -> list[ItemDocument]:
        """Owned items of one type in stable sort order."""
        return sorted(
            (item for item in self.items if item.type == item_type),
            key=lambda item: item.sort,
        )

    def get_item(self, item_id: str) -> ItemDocument | None:
        """Find an owned item by id."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def __repr__(self) -> str:
        """String representation of ActorDocument."""
        return f"<ActorDocument(id='{self.id}', name='{self.name}', type={self.type.value})>"
