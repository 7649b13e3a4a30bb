"""
Short and long rests.

Both rests funnel into one recovery routine. Every recovery step is a pure
function of the prepared actor that returns dotted-path changes or item
patches; the workflow batches them into a single store update and returns a
``RestResult`` describing what changed.

A rest may be confirmed through a ``RestPrompt``. Hit dice chosen during a
short rest are spent on a working copy and only persisted together with the
rest of the recovery, so a cancelled prompt leaves the actor untouched.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

from charsheet.character import collect_classes, prepare_actor
from charsheet.database.store import ActorNotFoundError, ActorStore
from charsheet.documents import ActorDocument
from charsheet.formula import is_numeric
from charsheet.rules import EngineConfig

from .dice import DiceRoller
from .hit_points import HitDieSpend, spend_hit_die
from .updates import commit_updates

logger = structlog.get_logger(__name__)

AUTO_HIT_DICE_THRESHOLD = 3


@dataclass
class RestResult:
    """
    Results of a rest.

    Attributes:
        dhd: Hit dice recovered (positive) or spent (negative)
        dhp: Hit points recovered
        update_data: Field changes applied to the actor
        update_items: Patches applied to the actor's items
        long_rest: Whether this was a long rest
        new_day: Whether a new day began during the rest
    """

    dhd: int = 0
    dhp: int = 0
    update_data: dict[str, Any] = field(default_factory=dict)
    update_items: list[dict[str, Any]] = field(default_factory=list)
    long_rest: bool = False
    new_day: bool = False


@dataclass(frozen=True)
class RestSummary:
    """Message keys and values describing a completed rest."""

    flavor: str
    message: str
    dice: int
    health: int


class RestCancelledError(Exception):
    """Raised by a rest prompt when the user backs out."""

    pass


@dataclass
class ShortRestChoice:
    """
    Choices confirmed for a short rest.

    Attributes:
        new_day: Whether a new day begins during the rest
        hit_dice: Further hit dice to spend after the prompt closes, in order
            ("d8"); an empty string spends the first available die
    """

    new_day: bool = False
    hit_dice: list[str] = field(default_factory=list)


@dataclass
class LongRestChoice:
    """Choices confirmed for a long rest."""

    new_day: bool = True


HitDieCallback = Callable[[str | None], HitDieSpend | None]


class RestPrompt(Protocol):
    """
    Asks the user to confirm a rest; raises RestCancelledError on cancel.

    During a short rest the prompt receives the rest's working copy of the
    actor and a ``roll_hit_die`` callback. Each call spends one hit die of the
    given denomination (or the first available) on that copy and returns the
    spend, or None when no such die is left, so results can be shown before
    the next die is picked.
    """

    async def short_rest(
        self,
        actor: ActorDocument,
        can_roll: bool,
        roll_hit_die: HitDieCallback,
    ) -> ShortRestChoice: ...

    async def long_rest(self, actor: ActorDocument) -> LongRestChoice: ...


def get_rest_hit_point_recovery(
    actor: ActorDocument,
    recover_temp: bool = True,
    recover_temp_max: bool = True,
) -> tuple[dict[str, Any], int]:
    """
    Restore hit points to maximum and clear temporary hit points.

    Args:
        actor: The prepared actor
        recover_temp: Reset temporary HP to 0
        recover_temp_max: Reset temporary max HP to 0; when False the
            temporary max counts toward the restored total

    Returns:
        Tuple of (field changes, hit points recovered)
    """
    hp = actor.system.attributes.hp
    maximum = hp.max
    updates: dict[str, Any] = {}

    if recover_temp_max:
        updates["system.attributes.hp.tempmax"] = 0
    else:
        maximum += hp.tempmax or 0
    updates["system.attributes.hp.value"] = maximum
    if recover_temp:
        updates["system.attributes.hp.temp"] = 0

    return updates, max(maximum - hp.value, 0)


def get_rest_resource_recovery(
    actor: ActorDocument,
    recover_short_rest: bool = True,
    recover_long_rest: bool = True,
) -> dict[str, Any]:
    """Refill resources with a numeric maximum that recover on this kind of rest."""
    updates: dict[str, Any] = {}
    for key, resource in actor.system.resources.items():
        if not is_numeric(resource.max):
            continue
        if (recover_short_rest and resource.sr) or (recover_long_rest and resource.lr):
            updates[f"system.resources.{key}.value"] = int(float(resource.max))
    return updates


def get_rest_spell_recovery(
    actor: ActorDocument,
    recover_pact: bool = True,
    recover_spells: bool = True,
) -> dict[str, Any]:
    """Refill pact slots and (optionally) every spell slot to its override or maximum."""
    spells = actor.system.spells
    updates: dict[str, Any] = {}

    if recover_pact and "pact" in spells:
        pact = spells["pact"]
        updates["system.spells.pact.value"] = pact.override or pact.max

    if recover_spells:
        for key, slot in spells.items():
            value = slot.override if is_numeric(slot.override) else (slot.max or 0)
            updates[f"system.spells.{key}.value"] = int(value)

    return updates


def get_rest_hit_dice_recovery(
    actor: ActorDocument,
    max_hit_dice: int | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """
    Recover spent hit dice, largest denomination first.

    Args:
        actor: The prepared actor
        max_hit_dice: Recovery budget; half the character level (minimum 1)
            when None

    Returns:
        Tuple of (item patches, hit dice recovered)
    """
    if max_hit_dice is None:
        max_hit_dice = max(actor.system.details.level // 2, 1)

    classes = sorted(
        collect_classes(actor).values(),
        key=lambda item: item.hit_die_faces,
        reverse=True,
    )

    patches: list[dict[str, Any]] = []
    recovered = 0
    for item in classes:
        used = int(item.system.hit_dice_used or 0)
        if recovered < max_hit_dice and used > 0:
            delta = min(used, max_hit_dice - recovered)
            recovered += delta
            patches.append(item.to_patch(**{"system.hit_dice_used": used - delta}))

    return patches, recovered


def get_rest_item_uses_recovery(
    actor: ActorDocument,
    recover_short_rest: bool = True,
    recover_long_rest: bool = True,
    recover_daily: bool = True,
) -> list[dict[str, Any]]:
    """Refill item uses for the recovery periods that apply and recharge items on a long rest."""
    periods = set()
    if recover_short_rest:
        periods.add("sr")
    if recover_long_rest:
        periods.add("lr")
    if recover_daily:
        periods.add("day")

    patches: list[dict[str, Any]] = []
    for item in actor.items:
        uses = item.system.uses
        if uses is not None and uses.per in periods and uses.max is not None:
            patches.append(item.to_patch(**{"system.uses.value": uses.max}))

        recharge = item.system.recharge
        if recover_long_rest and recharge is not None and recharge.value:
            patches.append(item.to_patch(**{"system.recharge.charged": True}))

    return patches


def auto_spend_hit_dice(
    actor: ActorDocument,
    roller: DiceRoller,
    threshold: int = AUTO_HIT_DICE_THRESHOLD,
) -> list[HitDieSpend]:
    """
    Spend hit dice while at least ``threshold`` hit points are missing.

    Stops when no hit die remains. Mutates the in-memory actor only.
    """
    hp = actor.system.attributes.hp
    maximum = hp.max + (hp.tempmax or 0)
    spent: list[HitDieSpend] = []
    while hp.value + threshold <= maximum:
        spend = spend_hit_die(actor, roller)
        if spend is None:
            break
        spent.append(spend)
    return spent


def describe_rest(result: RestResult, rest_variant: str = "normal") -> RestSummary:
    """
    Pick the flavor and message keys summarizing a rest.

    Examples:
        A normal long rest into a new day -> flavor "long_rest_overnight"
        A gritty short rest -> flavor "short_rest_gritty"
    """
    length = "long" if result.long_rest else "short"
    dice_restored = result.dhd != 0
    health_restored = result.dhp != 0

    match rest_variant:
        case "gritty":
            if not result.long_rest and result.new_day:
                flavor = "short_rest_overnight"
            else:
                flavor = f"{length}_rest_gritty"
        case "epic":
            flavor = f"{length}_rest_epic"
        case _:
            if result.long_rest and result.new_day:
                flavor = "long_rest_overnight"
            else:
                flavor = f"{length}_rest_normal"

    if dice_restored and health_restored:
        message = f"{length}_rest_result"
    elif result.long_rest and not dice_restored and health_restored:
        message = "long_rest_result_hit_points"
    elif result.long_rest and dice_restored and not health_restored:
        message = "long_rest_result_hit_dice"
    else:
        message = f"{length}_rest_result_short"

    return RestSummary(
        flavor=flavor,
        message=message,
        dice=result.dhd if result.long_rest else -result.dhd,
        health=result.dhp,
    )


def _hit_die_patches(actor: ActorDocument, spent: list[HitDieSpend]) -> list[dict[str, Any]]:
    """One patch per class that spent hit dice, with its final usage."""
    patches = []
    for item_id in dict.fromkeys(spend.item_id for spend in spent):
        item = actor.get_item(item_id)
        patches.append(item.to_patch(**{"system.hit_dice_used": item.system.hit_dice_used}))
    return patches


class RestWorkflow:
    """
    Runs short and long rests for prepared actors.

    Args:
        store: Persistence collaborator
        roller: Dice collaborator for hit dice
        config: Engine configuration
        prompt: Confirmation prompt; rests are not confirmed when None
    """

    def __init__(
        self,
        store: ActorStore,
        roller: DiceRoller,
        config: EngineConfig,
        prompt: RestPrompt | None = None,
    ) -> None:
        self.store = store
        self.roller = roller
        self.config = config
        self.prompt = prompt

    async def short_rest(
        self,
        actor: ActorDocument,
        dialog: bool = True,
        auto_hd: bool = False,
        auto_hd_threshold: int = AUTO_HIT_DICE_THRESHOLD,
    ) -> RestResult | None:
        """
        Take a short rest, optionally spending hit dice first.

        Args:
            actor: The prepared actor (updated in place once the rest commits)
            dialog: Ask the prompt for confirmation and hit dice to spend
            auto_hd: Without a dialog, spend hit dice automatically
            auto_hd_threshold: Missing hit points that trigger an automatic spend

        Returns:
            The rest result, or None if the rest was cancelled
        """
        working = actor.model_copy(deep=True)
        hd0 = working.system.attributes.hd
        hp0 = working.system.attributes.hp.value
        new_day = False
        spent: list[HitDieSpend] = []

        def roll_hit_die(denomination: str | None = None) -> HitDieSpend | None:
            spend = spend_hit_die(working, self.roller, denomination or None)
            if spend is not None:
                spent.append(spend)
            return spend

        if dialog and self.prompt is not None:
            try:
                choice = await self.prompt.short_rest(
                    working, can_roll=hd0 > 0, roll_hit_die=roll_hit_die
                )
            except RestCancelledError:
                logger.info("rest_cancelled", actor_id=actor.id, long_rest=False)
                return None
            new_day = choice.new_day
            for denomination in choice.hit_dice:
                roll_hit_die(denomination)
        elif auto_hd:
            spent = auto_spend_hit_dice(working, self.roller, auto_hd_threshold)

        changes: dict[str, Any] = {}
        if spent:
            changes["system.attributes.hp.value"] = working.system.attributes.hp.value

        return await self._rest(
            actor,
            working,
            new_day=new_day,
            long_rest=False,
            dhd=working.system.attributes.hd - hd0,
            dhp=working.system.attributes.hp.value - hp0,
            changes=changes,
            patches=_hit_die_patches(working, spent),
        )

    async def long_rest(
        self,
        actor: ActorDocument,
        dialog: bool = True,
        new_day: bool = True,
    ) -> RestResult | None:
        """
        Take a long rest, recovering hit points, hit dice, resources, slots and item uses.

        Returns:
            The rest result, or None if the rest was cancelled
        """
        if dialog and self.prompt is not None:
            try:
                choice = await self.prompt.long_rest(actor)
            except RestCancelledError:
                logger.info("rest_cancelled", actor_id=actor.id, long_rest=True)
                return None
            new_day = choice.new_day

        return await self._rest(actor, actor.model_copy(deep=True), new_day=new_day, long_rest=True)

    async def _load_original(self, actor: ActorDocument) -> ActorDocument | None:
        """The prepared original of a polymorphed actor, if the store has it."""
        original_id = actor.flags.original_actor
        if not actor.flags.is_polymorphed or not original_id:
            return None
        try:
            return await self.store.get(original_id)
        except ActorNotFoundError:
            logger.warning("original_actor_missing", actor_id=actor.id, original_actor=original_id)
            return None

    async def _rest(
        self,
        actor: ActorDocument,
        working: ActorDocument,
        new_day: bool,
        long_rest: bool,
        dhd: int = 0,
        dhp: int = 0,
        changes: dict[str, Any] | None = None,
        patches: list[dict[str, Any]] | None = None,
    ) -> RestResult:
        """Gather every recovery step into one update and persist it."""
        hit_point_updates: dict[str, Any] = {}
        hit_dice_updates: list[dict[str, Any]] = []
        hit_points_recovered = 0
        hit_dice_recovered = 0

        if long_rest:
            hit_point_updates, hit_points_recovered = get_rest_hit_point_recovery(working)
            hit_dice_updates, hit_dice_recovered = get_rest_hit_dice_recovery(working)

        result = RestResult(
            dhd=dhd + hit_dice_recovered,
            dhp=dhp + hit_points_recovered,
            update_data={
                **(changes or {}),
                **hit_point_updates,
                **get_rest_resource_recovery(
                    working,
                    recover_short_rest=not long_rest,
                    recover_long_rest=long_rest,
                ),
                **get_rest_spell_recovery(working, recover_spells=long_rest),
            },
            update_items=[
                *(patches or []),
                *hit_dice_updates,
                *get_rest_item_uses_recovery(
                    working,
                    recover_long_rest=long_rest,
                    recover_daily=new_day,
                ),
            ],
            long_rest=long_rest,
            new_day=new_day,
        )

        await commit_updates(actor, self.store, result.update_data, result.update_items)
        prepare_actor(actor, self.config, await self._load_original(actor))

        summary = describe_rest(result, self.config.rest_variant)
        logger.info(
            "rest_completed",
            actor_id=actor.id,
            long_rest=long_rest,
            new_day=new_day,
            dhd=result.dhd,
            dhp=result.dhp,
            flavor=summary.flavor,
            message=summary.message,
        )
        return result
