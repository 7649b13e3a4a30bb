"""Proficiency bonus scaled by a multiplier (none, half, full, expertise)."""

import math

from charsheet.formula import is_numeric


class Proficiency:
    """
    A proficiency bonus combined with a multiplier.

    ``flat`` is the rounded numeric contribution; ``term`` is the form that is
    substituted into formulas, which is numeric unless proficiency dice are in
    use.

    Examples:
        >>> Proficiency(3, 0.5).flat
        1
        >>> Proficiency(3, 0.5, round_down=False).flat
        2
        >>> Proficiency(2, 2).term
        '4'
    """

    __slots__ = ("base", "multiplier", "round_down", "dice")

    def __init__(
        self,
        proficiency: int | None,
        multiplier: float | None,
        round_down: bool = True,
        dice: bool = False,
    ) -> None:
        self.base = int(proficiency or 0)
        self.multiplier = float(multiplier or 0)
        self.round_down = round_down
        self.dice = dice

    @property
    def flat(self) -> int:
        """Rounded numeric contribution."""
        rounding = math.floor if self.round_down else math.ceil
        return int(rounding(self.multiplier * self.base))

    @property
    def dice_term(self) -> str:
        """The proficiency expressed as dice ("1d4", "floor(1d6 / 2)")."""
        if self.base == 0 or self.multiplier == 0:
            return "0"
        faces = self.base * 2
        if self.multiplier == 0.5:
            rounding = "floor" if self.round_down else "ceil"
            return f"{rounding}(1d{faces} / 2)"
        return f"{int(self.multiplier)}d{faces}"

    @property
    def term(self) -> str:
        """Formula term; numeric unless the dice variant is enabled."""
        return self.dice_term if self.dice else str(self.flat)

    @property
    def is_numeric(self) -> bool:
        """Whether the term can be added directly as a number."""
        return is_numeric(self.term)

    @property
    def has_proficiency(self) -> bool:
        """Whether any proficiency applies."""
        return self.multiplier > 0

    def __str__(self) -> str:
        return self.term

    def __repr__(self) -> str:
        return (
            f"<Proficiency(base={self.base}, multiplier={self.multiplier}, "
            f"round_down={self.round_down}, term='{self.term}')>"
        )
