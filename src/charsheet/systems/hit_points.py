"""
Hit points, hit dice and death saving throws.

Damage consumes temporary hit points first. Hit dice heal by one class hit die
plus the Constitution modifier. Death saves are only rolled at 0 HP while the
actor is neither stable nor dead.
"""

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from charsheet.character import Proficiency, build_roll_data, find_class_with_hit_die
from charsheet.documents import ActorDocument, ItemDocument, ItemType
from charsheet.formula import DEFAULT_EVALUATOR, FormulaEvaluator, simplify_bonus
from charsheet.rules import EngineConfig

from .dice import DiceResult, DiceRoller
from .updates import commit_updates

if TYPE_CHECKING:
    from charsheet.database.store import ActorStore

logger = structlog.get_logger(__name__)

DEATH_SAVE_TARGET = 10
DEATH_SAVE_LIMIT = 3


class ActorError(Exception):
    """Raised when a workflow is used with the wrong kind of document."""

    pass


@dataclass
class HitDieSpend:
    """
    One hit die spent on an actor.

    Attributes:
        item_id: Class item the die was taken from
        denomination: Die rolled ("d8")
        roll: The roll including the Constitution modifier
        hp_recovered: Hit points actually regained
    """

    item_id: str
    denomination: str
    roll: DiceResult
    hp_recovered: int


def calculate_damage(actor: ActorDocument, amount: int, multiplier: float = 1) -> dict[str, Any]:
    """
    Field changes for taking damage (positive) or healing (negative).

    Damage is taken from temporary hit points first. Hit points are clamped to
    [0, max + temporary max].

    Examples:
        hp 10/20, temp 5, 8 damage -> temp 0, hp 7
    """
    amount = math.floor(int(amount) * multiplier)
    hp = actor.system.attributes.hp

    temp = int(hp.temp or 0)
    absorbed = min(temp, amount) if amount > 0 else 0

    temp_max = int(hp.tempmax or 0)
    value = min(max(hp.value - (amount - absorbed), 0), hp.max + temp_max)
    return {
        "system.attributes.hp.temp": temp - absorbed,
        "system.attributes.hp.value": value,
    }


async def apply_damage(
    actor: ActorDocument,
    store: "ActorStore",
    amount: int,
    multiplier: float = 1,
) -> ActorDocument:
    """
    Apply damage or healing and persist it.

    Args:
        actor: The actor document (updated in place)
        store: Persistence collaborator
        amount: Damage to take; negative values heal
        multiplier: Resistance, vulnerability or healing multiplier

    Returns:
        The prepared actor as stored
    """
    changes = calculate_damage(actor, amount, multiplier)
    logger.info(
        "damage_applied",
        actor_id=actor.id,
        amount=amount,
        multiplier=multiplier,
        hp=changes["system.attributes.hp.value"],
    )
    return await commit_updates(actor, store, changes)


def spend_hit_die(
    actor: ActorDocument,
    roller: DiceRoller,
    denomination: str | None = None,
) -> HitDieSpend | None:
    """
    Spend one hit die on an in-memory actor.

    The class's used hit dice, the actor's remaining hit dice and current hit
    points are updated on the document; nothing is persisted.

    Args:
        actor: The actor document (mutated in place)
        roller: Dice collaborator
        denomination: Die to spend ("d8"); the first class with an unspent die
            when None

    Returns:
        The spend, or None when no matching hit die is available
    """
    cls = find_class_with_hit_die(actor, denomination)
    if cls is None:
        logger.warning(
            "no_hit_die_available",
            actor_id=actor.id,
            denomination=denomination,
        )
        return None

    con = actor.system.abilities.get("con")
    roll = roller.roll_hit_die(cls.system.hit_dice, con.mod if con else 0)

    hp = actor.system.attributes.hp
    recovered = max(min(hp.max + (hp.tempmax or 0) - hp.value, roll.total), 0)
    hp.value += recovered
    cls.system.hit_dice_used = int(cls.system.hit_dice_used or 0) + 1
    actor.system.attributes.hd -= 1

    return HitDieSpend(
        item_id=cls.id,
        denomination=cls.system.hit_dice,
        roll=roll,
        hp_recovered=recovered,
    )


async def roll_hit_die(
    actor: ActorDocument,
    store: "ActorStore",
    roller: DiceRoller,
    denomination: str | None = None,
) -> DiceResult | None:
    """
    Roll a hit die outside of a rest and persist the healing.

    Returns:
        The roll, or None when no hit die could be spent
    """
    working = actor.model_copy(deep=True)
    spend = spend_hit_die(working, roller, denomination)
    if spend is None:
        return None

    cls = working.get_item(spend.item_id)
    await commit_updates(
        actor,
        store,
        {"system.attributes.hp.value": working.system.attributes.hp.value},
        [cls.to_patch(**{"system.hit_dice_used": cls.system.hit_dice_used})],
    )
    actor.system.attributes.hd = working.system.attributes.hd
    logger.info(
        "hit_die_spent",
        actor_id=actor.id,
        denomination=spend.denomination,
        roll=spend.roll.total,
        hp_recovered=spend.hp_recovered,
    )
    return spend.roll


def roll_class_hit_points(item: ItemDocument, roller: DiceRoller) -> DiceResult:
    """
    Roll hit points for a class while leveling up.

    Raises:
        ActorError: If the item is not a class
    """
    if item.type != ItemType.CLASS:
        raise ActorError(f"Hit points can only be rolled for a class item, not {item.type.value}")
    return roller.roll_hit_die(item.system.hit_dice)


def death_save_modifier(
    actor: ActorDocument,
    config: EngineConfig,
    evaluator: FormulaEvaluator = DEFAULT_EVALUATOR,
) -> int:
    """Proficiency (with diamond soul) plus the global save bonus."""
    modifier = 0
    if actor.flags.diamond_soul:
        modifier += Proficiency(actor.system.attributes.prof, 1).flat

    data = build_roll_data(actor, config, deterministic=True)
    modifier += simplify_bonus(actor.system.bonuses.abilities.save, data, evaluator)
    return int(modifier)


async def roll_death_save(
    actor: ActorDocument,
    store: "ActorStore",
    roller: DiceRoller,
    config: EngineConfig,
    evaluator: FormulaEvaluator = DEFAULT_EVALUATOR,
) -> DiceResult | None:
    """
    Roll a death saving throw and record the outcome.

    A natural 20 revives the actor at 1 HP. The third success stabilizes and
    clears the counters. A natural 1 counts as two failures.

    Returns:
        The roll, or None when the actor is not making death saves
    """
    death = actor.system.attributes.death
    if (
        actor.system.attributes.hp.value > 0
        or death.failure >= DEATH_SAVE_LIMIT
        or death.success >= DEATH_SAVE_LIMIT
    ):
        logger.warning(
            "death_save_unnecessary",
            actor_id=actor.id,
            hp=actor.system.attributes.hp.value,
            successes=death.success,
            failures=death.failure,
        )
        return None

    roll = roller.roll_d20(death_save_modifier(actor, config, evaluator))
    outcome = "failure"

    if roll.total >= DEATH_SAVE_TARGET:
        successes = (death.success or 0) + 1
        if roll.natural == 20:
            changes = {
                "system.attributes.death.success": 0,
                "system.attributes.death.failure": 0,
                "system.attributes.hp.value": 1,
            }
            outcome = "revived"
        elif successes == DEATH_SAVE_LIMIT:
            changes = {
                "system.attributes.death.success": 0,
                "system.attributes.death.failure": 0,
            }
            outcome = "stabilized"
        else:
            changes = {"system.attributes.death.success": min(max(successes, 0), DEATH_SAVE_LIMIT)}
            outcome = "success"
    else:
        failures = (death.failure or 0) + (2 if roll.natural == 1 else 1)
        changes = {"system.attributes.death.failure": min(max(failures, 0), DEATH_SAVE_LIMIT)}
        if failures >= DEATH_SAVE_LIMIT:
            outcome = "dead"

    await commit_updates(actor, store, changes)
    logger.info(
        "death_save_rolled",
        actor_id=actor.id,
        roll=roll.total,
        natural=roll.natural,
        outcome=outcome,
    )
    return roll
