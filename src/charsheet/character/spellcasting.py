"""
Spellcasting progression: spell slots per level and pact magic slots.

Class levels are converted into an abstract caster level according to each
class's progression (full, half, third, artificer), summed across classes and
used to index the spell slot table. Pact magic is tracked separately.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass

from charsheet.documents import ActorDocument, ActorType, ItemDocument, SpellSlot
from charsheet.formula import is_numeric
from charsheet.rules import EngineConfig

from .classes import class_progression

# Progressions where a single-classed caster rounds up instead of down
PARTIAL_PROGRESSION_DENOMINATORS = {"third": 3, "half": 2}


@dataclass
class SpellcastingProgression:
    """
    Accumulated spellcasting levels.

    Attributes:
        total: Number of non-pact spellcasting classes
        slot: Slot-equivalent caster level
        pact: Pact magic level
    """

    total: int = 0
    slot: int = 0
    pact: int = 0


def slot_levels_for(progression: str, levels: int) -> int:
    """
    Slot-equivalent levels contributed by one class.

    Examples:
        >>> slot_levels_for("half", 5)
        2
        >>> slot_levels_for("artificer", 5)
        3
    """
    if progression == "third":
        return levels // 3
    if progression == "half":
        return levels // 2
    if progression == "full":
        return levels
    if progression == "artificer":
        return math.ceil(levels / 2)
    return 0


def calculate_progression(
    classes: Mapping[str, ItemDocument],
    is_npc: bool = False,
    subclasses: Mapping[str, ItemDocument] | None = None,
) -> SpellcastingProgression:
    """
    Tabulate the caster level across all spellcasting classes.

    A single non-pact caster with a third or half progression rounds its slot
    level up rather than down. NPCs never get this exception.

    Args:
        classes: Class items keyed by identifier
        is_npc: Whether the actor is an NPC
        subclasses: Subclass items keyed by class identifier

    Returns:
        The accumulated progression
    """
    progression = SpellcastingProgression()
    caster: tuple[str, int] | None = None

    for identifier, cls in classes.items():
        prog = class_progression(cls, (subclasses or {}).get(identifier))
        if prog == "none":
            continue
        levels = int(cls.system.levels or 0)

        if prog == "pact":
            progression.pact += levels
            continue

        caster = (prog, levels)
        progression.total += 1
        progression.slot += slot_levels_for(prog, levels)

    single_class = progression.total == 1 and progression.slot > 0
    if not is_npc and single_class and caster and caster[0] in PARTIAL_PROGRESSION_DENOMINATORS:
        prog, levels = caster
        progression.slot = math.ceil(levels / PARTIAL_PROGRESSION_DENOMINATORS[prog])

    return progression


def lookup_spell_slots(caster_level: int, config: EngineConfig) -> list[int]:
    """
    Slot counts for spell levels 1-9 at a caster level.

    Levels past the end of the table use its last row; level 0 has no slots.
    """
    table = config.rules.spell_slot_table
    level = min(max(caster_level, 0), config.rules.max_level)
    if level == 0 or not table:
        return [0] * 9
    return list(table[min(level, len(table)) - 1])


def calculate_pact_slots(
    pact_level: int, override: int | None, current: int
) -> tuple[int, int, int]:
    """
    Pact slot level, maximum and current value.

    Examples:
        >>> calculate_pact_slots(9, None, 2)
        (5, 2, 2)
        >>> calculate_pact_slots(0, None, 0)
        (0, 0, 0)

    Returns:
        Tuple of (slot level, maximum slots, current slots)
    """
    if pact_level > 0:
        level = math.ceil(min(10, pact_level) / 2)
        if is_numeric(override):
            maximum = max(int(override), 1)
        else:
            maximum = max(
                1,
                min(pact_level, 2),
                min(pact_level - 8, 3),
                min(pact_level - 13, 4),
            )
        return level, maximum, min(int(current or 0), maximum)

    maximum = int(override) if is_numeric(override) else 0
    return (1 if maximum > 0 else 0), maximum, int(current or 0)


def resolve_spellcasting(
    actor: ActorDocument,
    config: EngineConfig,
    classes: Mapping[str, ItemDocument],
    subclasses: Mapping[str, ItemDocument] | None = None,
) -> SpellcastingProgression | None:
    """
    Compute the spell save DC, slot maximums and pact slots.

    Args:
        actor: The actor document (``system.spells`` is mutated in place)
        config: Engine configuration
        classes: Class items keyed by identifier
        subclasses: Subclass items keyed by class identifier

    Returns:
        The progression used, or None for vehicles
    """
    if actor.type == ActorType.VEHICLE:
        return None

    is_npc = actor.type == ActorType.NPC
    system = actor.system
    spells = system.spells
    attributes = system.attributes
    details = system.details

    casting_ability = system.abilities.get(attributes.spellcasting or "")
    attributes.spelldc = casting_ability.dc if casting_ability else 8 + attributes.prof

    progression = calculate_progression(classes, is_npc, subclasses)
    if is_npc and details.spell_level:
        progression.slot = details.spell_level

    slots = lookup_spell_slots(progression.slot, config)
    for key, slot in spells.items():
        suffix = key[-1:]
        if key == "pact" or not suffix.isdigit():
            continue
        spell_level = int(suffix)
        if is_numeric(slot.override):
            slot.max = max(int(slot.override), 0)
        else:
            slot.max = slots[spell_level - 1] if 0 < spell_level <= len(slots) else 0
        slot.value = int(slot.value or 0)

    pact_level = min(max(progression.pact, 0), config.rules.max_level)
    if "pact" not in spells:
        spells["pact"] = SpellSlot()
    pact = spells["pact"]
    if pact_level == 0 and is_npc and is_numeric(pact.override):
        pact_level = details.spell_level or 0
    pact.level, pact.max, pact.value = calculate_pact_slots(pact_level, pact.override, pact.value)

    return progression
