"""Experience thresholds for characters and challenge rating XP for NPCs."""

from charsheet.documents import ActorDocument, Experience
from charsheet.rules import EngineConfig

# Minimum XP granted by a creature below challenge rating 1
MIN_CR_EXP = 10
FRACTIONAL_CR_EXP = 200


def get_level_exp(level: int, config: EngineConfig) -> int:
    """
    Total XP required to advance past a character level.

    Levels past the end of the table use its last entry.

    Args:
        level: Character level (0-based index into the XP table)
        config: Engine configuration

    Returns:
        XP threshold

    Examples:
        Level 1: 300 XP (reaching level 2)
        Level 4: 6500 XP (reaching level 5)
    """
    levels = config.rules.character_exp_levels
    if not levels:
        return 0
    return levels[min(max(level, 0), len(levels) - 1)]


def get_cr_exp(cr: float, config: EngineConfig) -> int:
    """
    XP granted for defeating a creature of a challenge rating.

    Fractional challenge ratings scale from 200 XP per CR, with a floor of 10.
    """
    if cr < 1:
        return int(max(FRACTIONAL_CR_EXP * cr, MIN_CR_EXP))
    levels = config.rules.cr_exp_levels
    if not levels:
        return 0
    return levels[min(int(cr), len(levels) - 1)]


def calculate_character_xp(actor: ActorDocument, config: EngineConfig) -> Experience:
    """
    Set the XP bounds and progress for a character's current level.

    Returns:
        The experience block (also stored on the actor)
    """
    xp = actor.system.details.xp
    level = actor.system.details.level
    xp.max = get_level_exp(level or 1, config)
    xp.min = get_level_exp(max(level - 1, 0), config)

    required = xp.max - xp.min
    if required > 0:
        pct = round((xp.value - xp.min) * 100 / required)
        xp.pct = min(max(pct, 0), 100)
    else:
        xp.pct = 0
    return xp


def calculate_npc_xp(actor: ActorDocument, config: EngineConfig) -> Experience:
    """Set an NPC's XP value from its challenge rating."""
    xp = actor.system.details.xp
    xp.value = get_cr_exp(actor.system.details.cr or 0, config)
    return xp
