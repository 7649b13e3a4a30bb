"""
Rules loader module for charsheet.

Handles loading and validating rules tables (abilities, skills, armor class
calculations, spell slots, encumbrance constants) from YAML files.
"""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = structlog.get_logger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent.parent / "data" / "rules.yaml"

SPELL_LEVELS = 9


class RulesLoadError(Exception):
    """Raised when there's an error loading rules data."""

    pass


class RulesValidationError(Exception):
    """Raised when rules validation fails."""

    pass


class AbilityDefinition(BaseModel):
    """A configured ability score."""

    label: str
    physical: bool = False


class SkillDefinition(BaseModel):
    """A configured skill and the ability it keys off."""

    label: str
    ability: str


class ArmorClassDefinition(BaseModel):
    """
    An armor class calculation mode.

    Attributes:
        label: Display name of the calculation
        formula: Formula evaluated against roll data; empty for custom mode
    """

    label: str
    formula: str = ""


class EncumbranceRules(BaseModel):
    """Encumbrance constants keyed by unit system (imperial or metric)."""

    currency_per_weight: dict[str, float] = Field(
        default_factory=lambda: {"imperial": 50, "metric": 110}
    )
    str_multiplier: dict[str, float] = Field(
        default_factory=lambda: {"imperial": 15, "metric": 6.8}
    )


class CurrencyConversion(BaseModel):
    """How many coins of one denomination make up one of the next."""

    into: str
    each: int = Field(..., ge=1)


class CurrencyDefinition(BaseModel):
    """A coin denomination."""

    label: str
    conversion: CurrencyConversion | None = None


class RemarkableAthleteRules(BaseModel):
    """Abilities that benefit from the remarkable athlete feature."""

    abilities: list[str] = Field(default_factory=list)


class ObservantRules(BaseModel):
    """Skills whose passive score benefits from the observant feat."""

    skills: list[str] = Field(default_factory=list)


class CharacterFlagRules(BaseModel):
    """Metadata for character feature flags."""

    remarkable_athlete: RemarkableAthleteRules = Field(default_factory=RemarkableAthleteRules)
    observant_feat: ObservantRules = Field(default_factory=ObservantRules)


class RulesConfig(BaseModel):
    """
    Complete rules content for the derived data engine.

    Attributes:
        max_level: Highest character or caster level
        abilities: Core abilities always present on an actor
        optional_abilities: Abilities enabled by settings (honor, sanity)
        skills: Skill definitions
        armor_classes: Armor class calculation modes
        armor_types: Armor types which count as worn armor or shields
        spell_progression: Known spellcasting progression categories
        spell_slot_table: Slots per spell level, one row per caster level
        encumbrance: Coin weight and strength multipliers
        size_multipliers: Carrying capacity multiplier per creature size
        physical_item_types: Item types that have weight
        character_exp_levels: XP required to reach each level
        cr_exp_levels: XP granted per challenge rating
        currencies: Coin denominations, most valuable first
        character_flags: Feature flag metadata
        attunement_attuned: Attunement value meaning "attuned"
    """

    max_level: int = Field(default=20, ge=1)
    abilities: dict[str, AbilityDefinition]
    optional_abilities: dict[str, AbilityDefinition] = Field(default_factory=dict)
    skills: dict[str, SkillDefinition] = Field(default_factory=dict)
    armor_classes: dict[str, ArmorClassDefinition]
    armor_types: list[str] = Field(default_factory=list)
    spell_progression: list[str] = Field(default_factory=list)
    spell_slot_table: list[list[int]]
    encumbrance: EncumbranceRules = Field(default_factory=EncumbranceRules)
    size_multipliers: dict[str, float] = Field(default_factory=dict)
    physical_item_types: list[str] = Field(default_factory=list)
    character_exp_levels: list[int] = Field(default_factory=list)
    cr_exp_levels: list[int] = Field(default_factory=list)
    currencies: dict[str, CurrencyDefinition] = Field(default_factory=dict)
    character_flags: CharacterFlagRules = Field(default_factory=CharacterFlagRules)
    attunement_attuned: int = 2

    model_config = ConfigDict(frozen=True)

    @field_validator("spell_slot_table")
    @classmethod
    def pad_slot_rows(cls, rows: list[list[int]]) -> list[list[int]]:
        """Pad every slot row to one entry per spell level."""
        padded = []
        for row in rows:
            if len(row) > SPELL_LEVELS:
                raise ValueError(f"Slot row has more than {SPELL_LEVELS} entries: {row}")
            padded.append(list(row) + [0] * (SPELL_LEVELS - len(row)))
        return padded

    @field_validator("armor_classes")
    @classmethod
    def require_builtin_modes(
        cls, modes: dict[str, ArmorClassDefinition]
    ) -> dict[str, ArmorClassDefinition]:
        """The flat and default calculations are required fallbacks."""
        for required in ("flat", "default"):
            if required not in modes:
                raise ValueError(f"Missing required armor class calculation: {required}")
        return modes


def load_yaml_file(file_path: Path) -> dict[str, Any]:
    """
    Load a YAML file containing rules tables.

    Args:
        file_path: Path to the YAML file

    Returns:
        Raw rules dictionary

    Raises:
        RulesLoadError: If the file cannot be loaded or parsed
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not data:
            raise RulesLoadError(f"Empty YAML file: {file_path}")

        if not isinstance(data, dict):
            raise RulesLoadError(f"Rules file must contain a mapping: {file_path}")

        return data

    except yaml.YAMLError as e:
        raise RulesLoadError(f"YAML parsing error in {file_path}: {e}")
    except FileNotFoundError:
        raise RulesLoadError(f"File not found: {file_path}")


def validate_rules_data(rules_data: dict[str, Any], file_path: Path) -> None:
    """
    Validate cross references inside a raw rules dictionary.

    Args:
        rules_data: Dictionary containing rules data
        file_path: Path to the source file (for error messages)

    Raises:
        RulesValidationError: If required sections are missing or references are broken
    """
    required_sections = ["abilities", "armor_classes", "spell_slot_table"]

    for section in required_sections:
        if section not in rules_data:
            raise RulesValidationError(f"Rules in {file_path} missing required section: {section}")

    abilities = set(rules_data["abilities"]) | set(rules_data.get("optional_abilities") or {})
    for skill_id, skill in (rules_data.get("skills") or {}).items():
        if skill.get("ability") not in abilities:
            raise RulesValidationError(
                f"Skill '{skill_id}' in {file_path} references unknown ability "
                f"'{skill.get('ability')}'"
            )

    currencies = rules_data.get("currencies") or {}
    for denomination, currency in currencies.items():
        conversion = (currency or {}).get("conversion")
        if conversion and conversion.get("into") not in currencies:
            raise RulesValidationError(
                f"Currency '{denomination}' in {file_path} converts into unknown "
                f"denomination '{conversion.get('into')}'"
            )


def load_rules(file_path: Path | None = None) -> RulesConfig:
    """
    Load and validate the rules tables.

    Args:
        file_path: Path to a rules YAML file (defaults to the packaged rules)

    Returns:
        The validated RulesConfig

    Raises:
        RulesLoadError: If the file cannot be read
        RulesValidationError: If the content is invalid
    """
    path = file_path or DEFAULT_RULES_PATH
    data = load_yaml_file(path)
    validate_rules_data(data, path)

    try:
        rules = RulesConfig.model_validate(data)
    except ValidationError as e:
        raise RulesValidationError(f"Invalid rules in {path}: {e}")

    logger.debug(
        "rules_loaded",
        path=str(path),
        abilities=len(rules.abilities),
        skills=len(rules.skills),
        armor_classes=len(rules.armor_classes),
    )
    return rules
