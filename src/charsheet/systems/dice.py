"""Dice rolling collaborator used by hit dice, hit points and death saves."""

import random
import re
from dataclasses import dataclass, field
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)

DENOMINATION_PATTERN = re.compile(r"d(\d+)", re.IGNORECASE)


@dataclass
class DiceResult:
    """
    Outcome of a dice roll.

    Attributes:
        rolls: Face value of each die rolled
        modifier: Flat modifier added to the dice
        total: Sum of the dice and the modifier
    """

    rolls: list[int] = field(default_factory=list)
    modifier: int = 0
    total: int = 0

    @property
    def natural(self) -> int:
        """Face value of the first die."""
        return self.rolls[0] if self.rolls else 0


def parse_denomination(denomination: str) -> int:
    """
    Number of faces of a die denomination.

    Examples:
        >>> parse_denomination("d8")
        8

    Raises:
        ValueError: If the denomination is not of the form "dN"
    """
    match = DENOMINATION_PATTERN.fullmatch(denomination.strip())
    if not match:
        raise ValueError(f"Invalid die denomination: {denomination}")
    return int(match.group(1))


class DiceRoller(Protocol):
    """Anything that can roll hit dice and d20s."""

    def roll_hit_die(self, denomination: str, modifier: int = 0) -> DiceResult: ...

    def roll_d20(self, modifier: int = 0) -> DiceResult: ...


class RandomDiceRoller:
    """
    Dice roller backed by a private random generator.

    Pass a seed for reproducible rolls.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)

    def roll_die(self, faces: int) -> int:
        """Roll a single die."""
        return self._random.randint(1, faces)

    def roll_hit_die(self, denomination: str, modifier: int = 0) -> DiceResult:
        """Roll one hit die ("d10") plus a modifier."""
        roll = self.roll_die(parse_denomination(denomination))
        result = DiceResult(rolls=[roll], modifier=modifier, total=roll + modifier)
        logger.debug("hit_die_rolled", denomination=denomination, roll=roll, total=result.total)
        return result

    def roll_d20(self, modifier: int = 0) -> DiceResult:
        """Roll a d20 plus a modifier."""
        roll = self.roll_die(20)
        result = DiceResult(rolls=[roll], modifier=modifier, total=roll + modifier)
        logger.debug("d20_rolled", roll=roll, total=result.total)
        return result
