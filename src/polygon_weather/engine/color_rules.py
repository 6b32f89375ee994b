"""Threshold color rules.

Rules are evaluated by threshold, not in the order they were added: upper-bound
and equality rules (``<``, ``<=``, ``=``, ``!=``) in ascending threshold order,
then lower-bound rules (``>``, ``>=``) from the highest threshold down, so the
tightest bound wins. The default rule set relies on this: under a plain
ascending scan ``>= 10`` would shadow ``>= 25``.

When upper and lower bounds both match, the upper bound wins: with
``> 0 -> A`` and ``< 100 -> B`` the value 50 resolves to B, not A as an
ascending scan would give.
"""
from __future__ import annotations
import secrets
import string
from typing import Callable, Dict, Iterable, List, Optional
from pydantic import ValidationError as PydanticValidationError
from polygon_weather.errors import ValidationError
from polygon_weather.models import ColorRule

DEFAULT_COLOR = "#808080"
RED = "#ef4444"
BLUE = "#3b82f6"
GREEN = "#22c55e"

# Equality tolerance of the generic resolver
RULE_TOLERANCE = 0.01
# Equality tolerance of the live polygon-color updater
LIVE_RULE_TOLERANCE = 0.1

LOWER_BOUND_OPERATORS = frozenset({">", ">="})

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 9

_COMPARATORS: Dict[str, Callable[[float, float, float], bool]] = {
    "<": lambda value, threshold, tol: value < threshold,
    "<=": lambda value, threshold, tol: value <= threshold,
    ">": lambda value, threshold, tol: value > threshold,
    ">=": lambda value, threshold, tol: value >= threshold,
    "=": lambda value, threshold, tol: abs(value - threshold) < tol,
    "!=": lambda value, threshold, tol: abs(value - threshold) >= tol,
}


def generate_id() -> str:
    """Short random identifier (9 lowercase alphanumerics)."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def rule_matches(rule: ColorRule, value: float, tolerance: float = RULE_TOLERANCE) -> bool:
    return _COMPARATORS[rule.operator](value, rule.value, tolerance)


def evaluation_order(rules: Iterable[ColorRule]) -> List[ColorRule]:
    """Rules in the order resolve_color tries them.

    Both passes use stable sorts, so rules with equal thresholds keep their
    input order and any permutation of distinct thresholds gives the same list.
    """
    rules = list(rules)
    upper = sorted(
        (rule for rule in rules if rule.operator not in LOWER_BOUND_OPERATORS),
        key=lambda r: r.value,
    )
    lower = sorted(
        (rule for rule in rules if rule.operator in LOWER_BOUND_OPERATORS),
        key=lambda r: -r.value,
    )
    return upper + lower


def resolve_color(
    value: float,
    rules: Iterable[ColorRule],
    *,
    tolerance: float = RULE_TOLERANCE,
) -> str:
    """Color of the first matching rule in evaluation order.

    Args:
        value: Weather value to classify.
        rules: Rules in any order; the input is not modified.
        tolerance: Half-width used by ``=`` and ``!=``.

    Returns:
        The matching rule's color, or DEFAULT_COLOR when nothing matches.
    """
    for rule in evaluation_order(rules):
        if rule_matches(rule, value, tolerance):
            return rule.color
    return DEFAULT_COLOR


def make_rule(
    operator: str,
    value: float,
    color: str,
    rule_id: Optional[str] = None,
) -> ColorRule:
    """Build a validated rule, generating an id when none is given.

    Raises:
        ValidationError: Unknown operator or non-numeric value.
    """
    try:
        return ColorRule(id=rule_id or generate_id(), operator=operator, value=value, color=color)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid color rule: {exc}") from exc


def default_color_rules() -> List[ColorRule]:
    """``< 10`` red, ``>= 10`` blue, ``>= 25`` green, with fresh ids."""
    return [
        make_rule("<", 10, RED),
        make_rule(">=", 10, BLUE),
        make_rule(">=", 25, GREEN),
    ]


__all__ = [
    "DEFAULT_COLOR",
    "RED",
    "BLUE",
    "GREEN",
    "RULE_TOLERANCE",
    "LIVE_RULE_TOLERANCE",
    "LOWER_BOUND_OPERATORS",
    "generate_id",
    "rule_matches",
    "evaluation_order",
    "resolve_color",
    "make_rule",
    "default_color_rules",
]
