"""
Deterministic formula evaluation for bonuses and armor class calculations.

Formulas reference actor data with ``@path`` tokens (``@abilities.dex.mod``),
which are substituted from roll data before the arithmetic is evaluated in a
sandbox by simpleeval. Formulas that still contain dice after substitution are
non-deterministic and cannot be reduced to a single number.
"""

import math
import re
from collections.abc import Mapping
from typing import Any

import structlog
from simpleeval import InvalidExpression, simple_eval

logger = structlog.get_logger(__name__)

FORMULA_DATA_PATTERN = re.compile(r"@([a-zA-Z0-9_.\-]+)")
DICE_PATTERN = re.compile(r"\d*d\d+", re.IGNORECASE)

SAFE_FUNCTIONS = {
    "floor": lambda x: int(math.floor(x)),
    "ceil": lambda x: int(math.ceil(x)),
    "max": max,
    "min": min,
    "abs": abs,
    "round": lambda x: int(math.floor(x + 0.5)),
}


class FormulaError(Exception):
    """Raised when a formula cannot be evaluated to a number."""

    pass


class NonDeterministicFormulaError(FormulaError):
    """Raised when a formula still contains dice terms after substitution."""

    pass


class MissingFormulaDataError(FormulaError):
    """Raised when a formula references data that does not exist."""

    pass


def is_numeric(value: Any) -> bool:
    """Check whether a value is a number or a string holding one."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, int | float):
        return not math.isnan(value)
    if isinstance(value, str):
        try:
            return not math.isnan(float(value.strip()))
        except ValueError:
            return False
    return False


def lookup_path(data: Mapping[str, Any], path: str) -> Any:
    """
    Resolve a dotted path inside nested roll data.

    Raises:
        MissingFormulaDataError: If any segment is missing
    """
    current: Any = data
    for key in path.split("."):
        if isinstance(current, Mapping) and key in current:
            current = current[key]
        else:
            raise MissingFormulaDataError(f"Unknown formula data '@{path}'")
    return current


def replace_formula_data(formula: str, data: Mapping[str, Any]) -> str:
    """
    Substitute ``@path`` references with values from roll data.

    Args:
        formula: Formula containing ``@`` references
        data: Nested roll data

    Returns:
        The formula with every reference replaced by its string value

    Raises:
        MissingFormulaDataError: If a reference is missing or is not a scalar
    """

    def _replace(match: re.Match[str]) -> str:
        path = match.group(1).rstrip(".")
        value = lookup_path(data, path)
        if value is None or isinstance(value, Mapping | list):
            raise MissingFormulaDataError(f"Formula data '@{path}' is not a scalar")
        if isinstance(value, bool):
            return "1" if value else "0"
        return str(value)

    return FORMULA_DATA_PATTERN.sub(_replace, formula)


def is_deterministic(expression: str) -> bool:
    """Check whether an expression contains no dice terms."""
    return DICE_PATTERN.search(expression) is None


def safe_eval(expression: str) -> int | float:
    """
    Evaluate a substituted arithmetic expression in a sandbox.

    Raises:
        FormulaError: If the expression is invalid or does not produce a number
    """
    if not expression.strip():
        raise FormulaError("Cannot evaluate an empty expression")

    try:
        result = simple_eval(expression, functions=SAFE_FUNCTIONS, names={})
    except (InvalidExpression, SyntaxError, TypeError, ValueError, ArithmeticError) as e:
        raise FormulaError(f"Cannot evaluate '{expression}': {e}") from e

    if isinstance(result, bool) or not isinstance(result, int | float):
        raise FormulaError(f"Expression '{expression}' did not produce a number")
    if isinstance(result, float) and result.is_integer():
        return int(result)
    return result


class FormulaEvaluator:
    """Reduces bonus formulas to numbers against a set of roll data."""

    def simplify(self, formula: str | int | float | None, data: Mapping[str, Any]) -> int | float:
        """
        Reduce a formula or number to a single value.

        Args:
            formula: A number, a numeric string, or a formula with ``@`` references
            data: Roll data used for substitution

        Returns:
            The evaluated value (0 for empty input)

        Raises:
            NonDeterministicFormulaError: If dice remain after substitution
            FormulaError: If the formula is malformed
        """
        if formula is None or formula == "":
            return 0
        if is_numeric(formula):
            value = float(formula)
            return int(value) if value.is_integer() else value

        replaced = replace_formula_data(str(formula), data)
        if not is_deterministic(replaced):
            raise NonDeterministicFormulaError(f"Formula '{formula}' is not deterministic")
        return safe_eval(replaced)

    def evaluate(self, formula: str, data: Mapping[str, Any]) -> int | float:
        """Substitute and evaluate a formula, treating dice like any other error."""
        replaced = replace_formula_data(formula, data)
        return safe_eval(replaced)


DEFAULT_EVALUATOR = FormulaEvaluator()


def simplify_bonus(
    bonus: str | int | float | None,
    data: Mapping[str, Any],
    evaluator: FormulaEvaluator = DEFAULT_EVALUATOR,
) -> int | float:
    """
    Convert a bonus value to a number, treating any failure as 0.

    Malformed or non-deterministic bonuses never abort data preparation; the
    failure is logged and the bonus contributes nothing.
    """
    try:
        return evaluator.simplify(bonus, data)
    except FormulaError as e:
        logger.warning("bonus_formula_ignored", formula=bonus, error=str(e))
        return 0
