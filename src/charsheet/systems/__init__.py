"""Workflows that change actors: rests, hit points, death saves and currency."""

from .currency import calculate_currency_conversion, convert_currency
from .dice import DiceResult, DiceRoller, RandomDiceRoller
from .hit_points import (
    ActorError,
    HitDieSpend,
    apply_damage,
    calculate_damage,
    roll_class_hit_points,
    roll_death_save,
    roll_hit_die,
    spend_hit_die,
)
from .rest import (
    LongRestChoice,
    RestCancelledError,
    RestPrompt,
    RestResult,
    RestSummary,
    RestWorkflow,
    ShortRestChoice,
    describe_rest,
)
from .updates import assign_primary_class, commit_updates

__all__ = [
    "ActorError",
    "DiceResult",
    "DiceRoller",
    "HitDieSpend",
    "LongRestChoice",
    "RandomDiceRoller",
    "RestCancelledError",
    "RestPrompt",
    "RestResult",
    "RestSummary",
    "RestWorkflow",
    "ShortRestChoice",
    "apply_damage",
    "assign_primary_class",
    "calculate_currency_conversion",
    "calculate_damage",
    "commit_updates",
    "convert_currency",
    "describe_rest",
    "roll_class_hit_points",
    "roll_death_save",
    "roll_hit_die",
    "spend_hit_die",
]
