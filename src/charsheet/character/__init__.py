"""Derived data resolvers and the preparation pass that sequences them."""

from .abilities import get_modifier, resolve_abilities
from .armor import ArmorClassResult, WarningCode, resolve_armor_class
from .classes import (
    ClassLevels,
    calculate_class_levels,
    collect_classes,
    collect_subclasses,
    find_class_with_hit_die,
    get_primary_class,
)
from .encumbrance import resolve_encumbrance
from .experience import get_cr_exp, get_level_exp
from .preparation import PreparedActor, prepare_actor, proficiency_for_level
from .proficiency import Proficiency
from .roll_data import build_roll_data
from .skills import normalize_proficiency, resolve_initiative, resolve_skills
from .spellcasting import (
    SpellcastingProgression,
    calculate_pact_slots,
    calculate_progression,
    lookup_spell_slots,
    resolve_spellcasting,
)

__all__ = [
    "ArmorClassResult",
    "ClassLevels",
    "PreparedActor",
    "Proficiency",
    "SpellcastingProgression",
    "WarningCode",
    "build_roll_data",
    "calculate_class_levels",
    "calculate_pact_slots",
    "calculate_progression",
    "collect_classes",
    "collect_subclasses",
    "find_class_with_hit_die",
    "get_cr_exp",
    "get_level_exp",
    "get_modifier",
    "get_primary_class",
    "lookup_spell_slots",
    "normalize_proficiency",
    "prepare_actor",
    "proficiency_for_level",
    "resolve_abilities",
    "resolve_armor_class",
    "resolve_encumbrance",
    "resolve_initiative",
    "resolve_skills",
    "resolve_spellcasting",
]
