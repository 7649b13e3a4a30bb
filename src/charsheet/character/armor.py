"""
Armor class resolution.

The calculation mode (``calc``) selects how the base AC is produced:

- ``flat``: the stored flat value is the final AC; shields and bonuses do not apply
- ``natural``: the stored flat value is the base, shields and bonuses are added
- any formula mode (``default``, ``mage``, ``custom`` ...): a formula is
  evaluated against roll data, falling back to the default formula on error
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog

from charsheet.documents import ActorDocument, ItemDocument, ItemType
from charsheet.formula import DEFAULT_EVALUATOR, FormulaError, FormulaEvaluator, is_numeric
from charsheet.rules import EngineConfig

logger = structlog.get_logger(__name__)


class WarningCode(StrEnum):
    """Non-fatal problems found while preparing derived data."""

    MULTIPLE_ARMOR = "WarnMultipleArmor"
    MULTIPLE_SHIELDS = "WarnMultipleShields"
    BAD_AC_FORMULA = "WarnBadACFormula"


@dataclass
class EquippedArmor:
    """Equipped armor and shields in encounter order."""

    armors: list[ItemDocument] = field(default_factory=list)
    shields: list[ItemDocument] = field(default_factory=list)


@dataclass
class ArmorClassResult:
    """Outcome of an armor class resolution."""

    calc: str
    value: int
    equipped_armor: ItemDocument | None = None
    equipped_shield: ItemDocument | None = None
    warnings: list[WarningCode] = field(default_factory=list)


def prepare_base_armor_class(actor: ActorDocument) -> None:
    """Reset the derived AC components before effects and resolution."""
    ac = actor.system.attributes.ac
    ac.armor = 10
    ac.shield = ac.bonus = ac.cover = 0
    ac.equipped_armor = ac.equipped_shield = None


def find_equipped_armor(actor: ActorDocument, config: EngineConfig) -> EquippedArmor:
    """Collect equipped armor and shields, preserving stable item order."""
    armor_types = set(config.rules.armor_types)
    equipped = EquippedArmor()
    for item in actor.items_of_type(ItemType.EQUIPMENT):
        armor = item.system.armor
        if not item.system.equipped or armor is None or armor.type not in armor_types:
            continue
        if armor.type == "shield":
            equipped.shields.append(item)
        else:
            equipped.armors.append(item)
    return equipped


def resolve_armor_class(
    actor: ActorDocument,
    config: EngineConfig,
    roll_data_factory: Callable[[], dict[str, Any]],
    evaluator: FormulaEvaluator = DEFAULT_EVALUATOR,
) -> ArmorClassResult:
    """
    Determine the actor's AC from its calculation mode, equipped armor and shield.

    Args:
        actor: The actor document (``system.attributes.ac`` is mutated in place)
        config: Engine configuration
        roll_data_factory: Builds deterministic roll data for formula modes
        evaluator: Formula evaluator

    Returns:
        The resolved AC with equipped items and warnings
    """
    ac = actor.system.attributes.ac
    dex = actor.system.abilities.get("dex")
    dex_mod = dex.mod if dex else 0
    modes = config.rules.armor_classes
    warnings: list[WarningCode] = []

    # Migrate unknown calculation modes to flat
    mode = modes.get(ac.calc)
    if mode is None:
        logger.info("armor_class_calc_migrated", actor_id=actor.id, calc=ac.calc)
        ac.calc = "flat"
        if is_numeric(ac.value):
            ac.flat = int(float(ac.value))

    equipped = find_equipped_armor(actor, config)
    result = ArmorClassResult(calc=ac.calc, value=0, warnings=warnings)

    if ac.calc == "flat":
        ac.value = int(ac.flat or 0)
        ac.warnings = []
        result.value = ac.value
        return result

    if ac.calc == "natural":
        ac.base = int(ac.flat or 0)
    else:
        formula = ac.formula if ac.calc == "custom" else modes[ac.calc].formula
        if equipped.armors:
            if len(equipped.armors) > 1:
                warnings.append(WarningCode.MULTIPLE_ARMOR)
                logger.info(
                    "multiple_armor_equipped",
                    actor_id=actor.id,
                    count=len(equipped.armors),
                )
            armor_item = equipped.armors[0]
            armor = armor_item.system.armor
            if armor.value is not None:
                ac.armor = armor.value
            if armor.type == "heavy":
                ac.dex = 0
            else:
                ac.dex = dex_mod if armor.dex is None else min(armor.dex, dex_mod)
            ac.equipped_armor = armor_item.id
            result.equipped_armor = armor_item
        else:
            ac.dex = dex_mod

        roll_data = roll_data_factory()
        roll_data["attributes"]["ac"] = ac.model_dump(mode="python")
        try:
            ac.base = int(evaluator.evaluate(formula, roll_data))
        except FormulaError as e:
            warnings.append(WarningCode.BAD_AC_FORMULA)
            logger.warning(
                "armor_class_formula_invalid",
                actor_id=actor.id,
                calc=ac.calc,
                formula=formula,
                error=str(e),
            )
            ac.base = int(evaluator.evaluate(modes["default"].formula, roll_data))

    if equipped.shields:
        if len(equipped.shields) > 1:
            warnings.append(WarningCode.MULTIPLE_SHIELDS)
            logger.info(
                "multiple_shields_equipped",
                actor_id=actor.id,
                count=len(equipped.shields),
            )
        shield_item = equipped.shields[0]
        ac.shield = shield_item.system.armor.value or 0
        ac.equipped_shield = shield_item.id
        result.equipped_shield = shield_item

    ac.value = ac.base + ac.shield + ac.bonus + ac.cover
    ac.warnings = [str(code) for code in warnings]
    result.value = ac.value
    return result
