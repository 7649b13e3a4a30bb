"""Immutable engine configuration threaded through every resolver."""

from dataclasses import dataclass
from functools import lru_cache

from charsheet.config import Settings, get_settings

from .loader import AbilityDefinition, RulesConfig, load_rules


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings toggles combined with rules tables.

    Resolvers receive this explicitly instead of reading global settings, so a
    preparation pass is fully determined by the document and this value.
    """

    rules: RulesConfig
    currency_weight: bool = True
    metric_weight_units: bool = False
    rest_variant: str = "normal"
    proficiency_dice: bool = False
    honor_score: bool = False
    sanity_score: bool = False

    @classmethod
    def from_settings(cls, settings: Settings, rules: RulesConfig | None = None) -> "EngineConfig":
        """Build a config from application settings and (optionally preloaded) rules."""
        return cls(
            rules=rules or load_rules(settings.rules_path),
            currency_weight=settings.currency_weight,
            metric_weight_units=settings.metric_weight_units,
            rest_variant=settings.rest_variant,
            proficiency_dice=settings.proficiency_variant == "dice",
            honor_score=settings.honor_score,
            sanity_score=settings.sanity_score,
        )

    @property
    def units(self) -> str:
        """Unit system key used by the encumbrance tables."""
        return "metric" if self.metric_weight_units else "imperial"

    @property
    def abilities(self) -> dict[str, AbilityDefinition]:
        """All abilities enabled for this configuration, in display order."""
        enabled = dict(self.rules.abilities)
        optional = self.rules.optional_abilities
        if self.honor_score and "hon" in optional:
            enabled["hon"] = optional["hon"]
        if self.sanity_score and "san" in optional:
            enabled["san"] = optional["san"]
        return enabled


@lru_cache
def get_engine_config() -> EngineConfig:
    """Get the cached engine config built from current settings."""
    return EngineConfig.from_settings(get_settings())
