"""
Derived data preparation for actors.

A preparation pass recomputes every derived block of an actor from its authored
inputs. Base data is seeded first (abilities, skills, armor class, then a per-type
step for characters, NPCs and vehicles), after which the resolvers run in
dependency order: abilities before skills, initiative and armor class; class
aggregation before spellcasting. Nothing is cached between passes.
"""

import math
from dataclasses import dataclass, field

import structlog

from charsheet.documents import ActorDocument, ActorType, ItemDocument
from charsheet.formula import DEFAULT_EVALUATOR, FormulaEvaluator, is_numeric, simplify_bonus
from charsheet.rules import EngineConfig

from .abilities import compute_ability_modifiers, prepare_base_abilities, resolve_abilities
from .armor import WarningCode, prepare_base_armor_class, resolve_armor_class
from .classes import calculate_class_levels, collect_classes, collect_subclasses
from .encumbrance import resolve_encumbrance
from .experience import calculate_character_xp, calculate_npc_xp
from .roll_data import build_roll_data
from .skills import prepare_base_skills, resolve_initiative, resolve_skills
from .spellcasting import SpellcastingProgression, resolve_spellcasting

logger = structlog.get_logger(__name__)


@dataclass
class PreparedActor:
    """
    Snapshot of one preparation pass.

    Attributes:
        actor: The prepared actor document
        classes: Class items keyed by identifier
        subclasses: Subclass items keyed by class identifier
        armor: The equipped armor that counted toward AC
        shield: The equipped shield that counted toward AC
        warnings: Preparation warnings for the caller to surface
        progression: Spellcasting progression (None for vehicles)
    """

    actor: ActorDocument
    classes: dict[str, ItemDocument] = field(default_factory=dict)
    subclasses: dict[str, ItemDocument] = field(default_factory=dict)
    armor: ItemDocument | None = None
    shield: ItemDocument | None = None
    warnings: list[WarningCode] = field(default_factory=list)
    progression: SpellcastingProgression | None = None


def proficiency_for_level(level: float) -> int:
    """
    Proficiency bonus for a character level or challenge rating.

    Examples:
        >>> proficiency_for_level(1)
        2
        >>> proficiency_for_level(17)
        6
    """
    return math.floor((level + 7) / 4)


def prepare_character_data(actor: ActorDocument, config: EngineConfig) -> None:
    """Level, hit dice, proficiency and experience of a player character."""
    levels = calculate_class_levels(actor)
    details = actor.system.details
    attributes = actor.system.attributes

    details.level = levels.level
    attributes.hd = levels.hit_dice
    attributes.prof = proficiency_for_level(details.level)
    calculate_character_xp(actor, config)


def prepare_npc_data(actor: ActorDocument, config: EngineConfig) -> None:
    """Experience, proficiency and default spellcaster level of an NPC."""
    details = actor.system.details
    cr = details.cr or 0

    calculate_npc_xp(actor, config)
    actor.system.attributes.prof = proficiency_for_level(max(cr, 1))

    if actor.system.attributes.spellcasting and not is_numeric(details.spell_level):
        details.spell_level = int(max(cr, 1))


def prepare_vehicle_data(actor: ActorDocument, config: EngineConfig) -> None:
    """Vehicles have no proficiency."""
    actor.system.attributes.prof = 0


def prepare_base_data(actor: ActorDocument, config: EngineConfig) -> None:
    """Seed base abilities and skills, base armor class and the per-type base data."""
    prepare_base_abilities(actor, config)
    prepare_base_skills(actor, config)
    prepare_base_armor_class(actor)

    match actor.type:
        case ActorType.CHARACTER:
            prepare_character_data(actor, config)
        case ActorType.NPC:
            prepare_npc_data(actor, config)
        case ActorType.VEHICLE:
            prepare_vehicle_data(actor, config)


def count_attuned_items(actor: ActorDocument, config: EngineConfig) -> int:
    """Number of owned items the actor is attuned to."""
    return sum(
        1 for item in actor.items if item.system.attunement == config.rules.attunement_attuned
    )


def prepare_actor(
    actor: ActorDocument,
    config: EngineConfig,
    original: ActorDocument | None = None,
    evaluator: FormulaEvaluator = DEFAULT_EVALUATOR,
) -> PreparedActor:
    """
    Recompute all derived data of an actor in place.

    Args:
        actor: The actor document
        config: Engine configuration
        original: The prepared original actor when this actor is transformed;
            its saves and skills are merged according to the transform options
        evaluator: Formula evaluator

    Returns:
        The preparation snapshot
    """
    prepare_base_data(actor, config)

    flags = actor.flags
    original_abilities = None
    original_skills = None
    if flags.is_polymorphed and original is not None:
        options = flags.transform_options
        if options.merge_saves:
            original_abilities = original.system.abilities
        if options.merge_skills:
            original_skills = original.system.skills

    compute_ability_modifiers(actor)
    classes = collect_classes(actor)
    subclasses = collect_subclasses(actor)
    bonus_data = build_roll_data(actor, config, classes, subclasses)

    resolve_abilities(actor, config, bonus_data, original_abilities, evaluator)

    if actor.type != ActorType.VEHICLE:
        actor.system.attributes.attunement.value = count_attuned_items(actor, config)

    resolve_encumbrance(actor, config)

    check_bonus = simplify_bonus(actor.system.bonuses.abilities.check, bonus_data, evaluator)
    resolve_skills(actor, config, bonus_data, check_bonus, original_skills, evaluator)
    resolve_initiative(actor, config, bonus_data, check_bonus, evaluator)

    progression = resolve_spellcasting(actor, config, classes, subclasses)

    ac = resolve_armor_class(
        actor,
        config,
        lambda: build_roll_data(actor, config, classes, subclasses, deterministic=True),
        evaluator,
    )

    prepared = PreparedActor(
        actor=actor,
        classes=classes,
        subclasses=subclasses,
        armor=ac.equipped_armor,
        shield=ac.equipped_shield,
        warnings=list(ac.warnings),
        progression=progression,
    )
    logger.debug(
        "actor_prepared",
        actor_id=actor.id,
        actor_type=actor.type.value,
        level=actor.system.details.level,
        ac=actor.system.attributes.ac.value,
        warnings=[str(code) for code in prepared.warnings],
    )
    return prepared
