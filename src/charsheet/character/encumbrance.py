"""Encumbrance: carried weight against strength-based carrying capacity."""

import math

from charsheet.documents import ActorDocument, Encumbrance
from charsheet.rules import EngineConfig

ENCUMBERED_THRESHOLD = 200 / 3
POWERFUL_BUILD_MAX_MULTIPLIER = 8


def to_nearest(value: float, interval: float = 0.1) -> float:
    """
    Round to the nearest multiple of an interval, halves rounding up.

    Examples:
        >>> to_nearest(12.34)
        12.3
        >>> to_nearest(12.36)
        12.4
    """
    steps = math.floor(value / interval + 0.5)
    return round(steps * interval, 10)


def calculate_item_weight(actor: ActorDocument, config: EngineConfig) -> float:
    """Sum quantity times weight over physically carried item types."""
    physical = set(config.rules.physical_item_types)
    return sum(
        (item.system.quantity or 0) * (item.system.weight or 0)
        for item in actor.items
        if item.type in physical
    )


def calculate_currency_weight(actor: ActorDocument, config: EngineConfig) -> float:
    """Weight of carried coins; negative coin counts weigh nothing."""
    currency = actor.system.currency.model_dump()
    coins = sum(max(int(count or 0), 0) for count in currency.values())
    per_weight = config.rules.encumbrance.currency_per_weight[config.units]
    return coins / per_weight


def size_multiplier(actor: ActorDocument, config: EngineConfig) -> float:
    """Carrying capacity multiplier for the actor's size, doubled by powerful build."""
    multiplier = config.rules.size_multipliers.get(actor.system.traits.size, 1)
    if actor.flags.powerful_build:
        multiplier = min(multiplier * 2, POWERFUL_BUILD_MAX_MULTIPLIER)
    return multiplier


def calculate_carry_capacity(strength: int, multiplier: float, config: EngineConfig) -> float:
    """
    Calculate carrying capacity from strength.

    Args:
        strength: Strength score
        multiplier: Size multiplier
        config: Engine configuration (selects imperial or metric)

    Returns:
        Capacity rounded to the nearest 0.1
    """
    per_strength = config.rules.encumbrance.str_multiplier[config.units]
    return to_nearest(strength * per_strength * multiplier)


def resolve_encumbrance(actor: ActorDocument, config: EngineConfig) -> Encumbrance:
    """
    Compute the actor's encumbrance.

    An actor is encumbered when carrying more than two thirds of capacity.

    Returns:
        The encumbrance block (also stored on the actor)
    """
    weight = calculate_item_weight(actor, config)
    if config.currency_weight:
        weight += calculate_currency_weight(actor, config)

    strength = actor.system.abilities.get("str")
    weight = to_nearest(weight)
    maximum = calculate_carry_capacity(
        strength.value if strength else 10, size_multiplier(actor, config), config
    )
    if maximum > 0:
        pct = min(max(weight * 100 / maximum, 0), 100)
    else:
        pct = 100 if weight > 0 else 0

    encumbrance = Encumbrance(
        value=weight,
        max=maximum,
        pct=pct,
        encumbered=pct > ENCUMBERED_THRESHOLD,
    )
    actor.system.attributes.encumbrance = encumbrance
    return encumbrance
