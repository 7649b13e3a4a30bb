"""Ability scores: modifiers, saving throws and save DCs.

Modifiers follow D&D-style math; saves and DCs add proficiency and global
bonuses, which may be formulas and are simplified against roll data.
"""

import math
from collections.abc import Mapping
from typing import Any

from charsheet.documents import Ability, ActorDocument, ActorType
from charsheet.formula import DEFAULT_EVALUATOR, FormulaEvaluator, simplify_bonus
from charsheet.rules import EngineConfig

from .proficiency import Proficiency


def get_modifier(value: int) -> int:
    """Calculate D&D-style attribute modifier.

    Args:
        value: The attribute value (typically 1-20+)

    Returns:
        The modifier: (value - 10) // 2

    Examples:
        >>> get_modifier(10)
        0
        >>> get_modifier(18)
        4
        >>> get_modifier(8)
        -1
    """
    return (value - 10) // 2


def prepare_base_abilities(actor: ActorDocument, config: EngineConfig) -> list[str]:
    """Add any configured abilities missing from the actor.

    Honor defaults to Charisma and Sanity to Wisdom for NPCs; both are 0 on
    vehicles. Everything else starts at 10.

    Returns:
        Ids of the abilities that were added
    """
    abilities = actor.system.abilities
    added = []
    for key in config.abilities:
        if key in abilities:
            continue
        ability = Ability()
        if key in ("hon", "san"):
            source = "cha" if key == "hon" else "wis"
            if actor.type == ActorType.VEHICLE:
                ability.value = 0
            elif actor.type == ActorType.NPC:
                ability.value = abilities[source].value if source in abilities else 10
        abilities[key] = ability
        added.append(key)
    return added


def is_remarkable_athlete(actor: ActorDocument, ability_id: str, config: EngineConfig) -> bool:
    """Whether remarkable athlete applies to checks with this ability."""
    return actor.flags.remarkable_athlete and (
        ability_id in config.rules.character_flags.remarkable_athlete.abilities
    )


def compute_ability_modifiers(actor: ActorDocument) -> None:
    """Set ``mod`` on every ability from its score."""
    for ability in actor.system.abilities.values():
        ability.mod = get_modifier(int(ability.value))


def resolve_abilities(
    actor: ActorDocument,
    config: EngineConfig,
    bonus_data: Mapping[str, Any],
    original_abilities: Mapping[str, Ability] | None = None,
    evaluator: FormulaEvaluator = DEFAULT_EVALUATOR,
) -> None:
    """Compute check proficiency, save bonus, save and DC for every ability.

    Args:
        actor: The actor document (mutated in place)
        config: Engine configuration
        bonus_data: Roll data used to simplify bonus formulas
        original_abilities: Prepared abilities of the original actor when a
            transformed actor merges saves
        evaluator: Formula evaluator
    """
    flags = actor.flags
    prof = actor.system.attributes.prof
    bonuses = actor.system.bonuses
    dice = config.proficiency_dice

    dc_bonus = simplify_bonus(bonuses.spell.dc, bonus_data, evaluator)
    global_save = simplify_bonus(bonuses.abilities.save, bonus_data, evaluator)
    global_check = simplify_bonus(bonuses.abilities.check, bonus_data, evaluator)

    for ability_id, ability in actor.system.abilities.items():
        if flags.diamond_soul:
            ability.proficient = 1
        ability.mod = get_modifier(int(ability.value))

        athlete = is_remarkable_athlete(actor, ability_id, config)
        half_check = athlete or flags.jack_of_all_trades
        ability.check_prof = Proficiency(prof, 0.5 if half_check else 0, not athlete, dice)

        save_bonus = simplify_bonus(ability.bonuses.save, bonus_data, evaluator)
        ability.save_bonus = math.floor(save_bonus + global_save)
        ability.save_prof = Proficiency(prof, ability.proficient, dice=dice)

        check_bonus = simplify_bonus(ability.bonuses.check, bonus_data, evaluator)
        ability.check_bonus = math.floor(check_bonus + global_check)

        ability.save = ability.mod + ability.save_bonus
        if ability.save_prof.is_numeric:
            ability.save += ability.save_prof.flat
        ability.dc = math.floor(8 + ability.mod + prof + dc_bonus)

        # Take the better save when merged with the original form
        if original_abilities and ability.proficient and ability_id in original_abilities:
            ability.save = max(ability.save, original_abilities[ability_id].save)
