"""Skill proficiency, totals and passive scores."""

import math
from collections.abc import Mapping
from typing import Any

from charsheet.documents import ActorDocument, ActorType, Skill
from charsheet.formula import DEFAULT_EVALUATOR, FormulaEvaluator, is_numeric, simplify_bonus
from charsheet.rules import EngineConfig

from .abilities import is_remarkable_athlete
from .proficiency import Proficiency

# Valid proficiency multipliers: none, half, full, expertise
PROFICIENCY_LEVELS = (0.0, 0.5, 1.0, 2.0)

OBSERVANT_PASSIVE_BONUS = 5


def normalize_proficiency(value: Any) -> float:
    """
    Snap a stored proficiency multiplier to 0, 0.5, 1 or 2.

    Values are rounded to the nearest half and clamped to [0, 2]. The remaining
    1.5 midpoint resolves down to 1.

    Examples:
        >>> normalize_proficiency(0.3)
        0.5
        >>> normalize_proficiency(1.8)
        2.0
        >>> normalize_proficiency("junk")
        0.0
    """
    if not is_numeric(value):
        return 0.0
    halves = math.floor(float(value) * 2 + 0.5) / 2
    clamped = min(max(halves, 0.0), 2.0)
    if clamped == 1.5:
        return 1.0
    return clamped


def resolve_skills(
    actor: ActorDocument,
    config: EngineConfig,
    bonus_data: Mapping[str, Any],
    global_check_bonus: int | float,
    original_skills: Mapping[str, Skill] | None = None,
    evaluator: FormulaEvaluator = DEFAULT_EVALUATOR,
) -> None:
    """
    Compute proficiency, total and passive score for every skill.

    Vehicles have no skills and are left untouched.

    Args:
        actor: The actor document (mutated in place)
        config: Engine configuration
        bonus_data: Roll data used to simplify bonus formulas
        global_check_bonus: Simplified global ability check bonus
        original_skills: Prepared skills of the original actor when a
            transformed actor merges skills
        evaluator: Formula evaluator
    """
    if actor.type == ActorType.VEHICLE:
        return

    flags = actor.flags
    prof = actor.system.attributes.prof
    abilities = actor.system.abilities
    observant_skills = config.rules.character_flags.observant_feat.skills
    skill_bonus = simplify_bonus(actor.system.bonuses.abilities.skill, bonus_data, evaluator)

    for skill_id, skill in actor.system.skills.items():
        ability = abilities.get(skill.ability)
        skill.value = normalize_proficiency(skill.value)
        base_bonus = simplify_bonus(skill.bonuses.check, bonus_data, evaluator)
        round_down = True

        if is_remarkable_athlete(actor, skill.ability, config) and skill.value < 0.5:
            skill.value = 0.5
            round_down = False
        elif flags.jack_of_all_trades and skill.value < 0.5:
            skill.value = 0.5

        if original_skills and skill_id in original_skills:
            skill.value = max(skill.value, original_skills[skill_id].value)

        ability_check_bonus = (
            simplify_bonus(ability.bonuses.check, bonus_data, evaluator) if ability else 0
        )
        skill.bonus = math.floor(
            base_bonus + global_check_bonus + ability_check_bonus + skill_bonus
        )
        skill.mod = ability.mod if ability else 0
        skill.prof = Proficiency(prof, skill.value, round_down, config.proficiency_dice)
        skill.proficient = skill.value
        skill.total = skill.mod + skill.bonus
        if skill.prof.is_numeric:
            skill.total += skill.prof.flat

        observant = flags.observant_feat and skill_id in observant_skills
        passive = OBSERVANT_PASSIVE_BONUS if observant else 0
        passive_bonus = simplify_bonus(skill.bonuses.passive, bonus_data, evaluator)
        skill.passive = math.floor(
            10 + skill.mod + skill.bonus + skill.prof.flat + passive + passive_bonus
        )


def resolve_initiative(
    actor: ActorDocument,
    config: EngineConfig,
    bonus_data: Mapping[str, Any],
    global_check_bonus: int | float,
    evaluator: FormulaEvaluator = DEFAULT_EVALUATOR,
) -> None:
    """Compute the initiative modifier from Dexterity, feats and check bonuses."""
    flags = actor.flags
    init = actor.system.attributes.init
    dex = actor.system.abilities.get("dex")

    athlete = flags.remarkable_athlete
    half = flags.jack_of_all_trades or athlete
    dex_check_bonus = simplify_bonus(dex.bonuses.check, bonus_data, evaluator) if dex else 0

    init.mod = dex.mod if dex else 0
    init.prof = Proficiency(
        actor.system.attributes.prof, 0.5 if half else 0, not athlete, config.proficiency_dice
    )
    init.value = init.value or 0
    init.bonus = init.value + (5 if flags.initiative_alert else 0)
    init.total = math.floor(init.mod + init.bonus + dex_check_bonus + global_check_bonus)
    if init.prof.is_numeric:
        init.total += init.prof.flat


def prepare_base_skills(actor: ActorDocument, config: EngineConfig) -> list[str]:
    """
    Add configured skills missing from a character or NPC.

    Returns:
        Ids of the skills that were added
    """
    if actor.type == ActorType.VEHICLE:
        return []

    added = []
    for key, definition in config.rules.skills.items():
        if key not in actor.system.skills:
            actor.system.skills[key] = Skill(ability=definition.ability)
            added.append(key)
    return added
