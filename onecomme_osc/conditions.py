"""
Condition and condition-group evaluation.

Rules are authored in the browser control panel and were historically
evaluated with JavaScript semantics, so coercion and comparison here follow
those semantics (parseFloat, truthiness, String(), strict equality) rather
than Python's. Evaluation never raises: anything malformed is a non-match.
"""

import logging
import math
import re
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from .model import Condition, ConditionGroup, DataType, Logic, Operator
from .paths import MISSING, get_path
from .sources import detect_source, matches_message_type

logger = logging.getLogger(__name__)

_FLOAT_PREFIX = re.compile(r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


# =============================================================================
# JAVASCRIPT-COMPATIBLE COERCION
# =============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def js_string(value: Any) -> str:
    """String(value) as JavaScript renders it."""
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return "[object Object]"
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None or item is MISSING else js_string(item) for item in value)
    return str(value)


def js_parse_float(value: Any) -> float:
    """parseFloat(value): leading numeric prefix, NaN if there is none."""
    if _is_number(value):
        return float(value)
    match = _FLOAT_PREFIX.match(js_string(value).lstrip())
    if not match:
        return math.nan
    return float(match.group(0).replace("Infinity", "inf"))


def parse_float(value: Any) -> float:
    """parseFloat(value) || 0"""
    result = js_parse_float(value)
    if math.isnan(result) or result == 0:
        return 0.0
    return result


def truthy(value: Any) -> bool:
    """Boolean(value) with JavaScript truthiness."""
    if value is MISSING or value is None or value is False:
        return False
    if _is_number(value):
        return not (value == 0 or (isinstance(value, float) and math.isnan(value)))
    if isinstance(value, str):
        return value != ""
    return True


def to_number(value: Any) -> float:
    """Number(value), used by relational operators on mixed types."""
    if value is MISSING:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    if isinstance(value, Mapping):
        return math.nan
    text = js_string(value).strip()
    if text == "":
        return 0.0
    if not _FLOAT_PREFIX.fullmatch(text):
        return math.nan
    return float(text.replace("Infinity", "inf"))


def strict_equals(left: Any, right: Any) -> bool:
    """left === right"""
    if left is MISSING or right is MISSING:
        return left is right
    if left is None or right is None:
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return left is right


def _relational(left: Any, right: Any) -> Optional[Tuple[Any, Any]]:
    if isinstance(left, str) and isinstance(right, str):
        return left, right
    a, b = to_number(left), to_number(right)
    if math.isnan(a) or math.isnan(b):
        return None
    return a, b


def coerce(value: Any, data_type: str) -> Any:
    if data_type == DataType.NUMBER:
        return parse_float(value)
    if data_type == DataType.BOOLEAN:
        return truthy(value)
    return value


# =============================================================================
# OPERATORS
# =============================================================================

def _greater(a, b):
    pair = _relational(a, b)
    return pair is not None and pair[0] > pair[1]


def _greater_equal(a, b):
    pair = _relational(a, b)
    return pair is not None and pair[0] >= pair[1]


def _less(a, b):
    pair = _relational(a, b)
    return pair is not None and pair[0] < pair[1]


def _less_equal(a, b):
    pair = _relational(a, b)
    return pair is not None and pair[0] <= pair[1]


def _lowered(a, b):
    return js_string(a).lower(), js_string(b).lower()


def _contains(a, b):
    haystack, needle = _lowered(a, b)
    return needle in haystack


def _starts_with(a, b):
    text, prefix = _lowered(a, b)
    return text.startswith(prefix)


def _ends_with(a, b):
    text, suffix = _lowered(a, b)
    return text.endswith(suffix)


_JS_NAMED_GROUP = re.compile(r"(?<!\\)\(\?<(?![=!])")
_JS_NAMED_BACKREF = re.compile(r"\\k<(\w+)>")


def js_pattern(source: str) -> str:
    """
    Translate JavaScript-only regex syntax to Python ``re``.

    Handles named groups ``(?<name>...)``, named backreferences
    ``\\k<name>`` and the match-anything class ``[^]``. Everything else is
    passed through; patterns the two dialects read differently may still
    fail to compile, which the caller treats as a non-match.
    """
    source = _JS_NAMED_GROUP.sub("(?P<", source)
    source = _JS_NAMED_BACKREF.sub(r"(?P=\1)", source)
    return source.replace("[^]", r"[\s\S]")


def _regex(a, b):
    try:
        pattern = re.compile(js_pattern(js_string(b)), re.IGNORECASE)
    except re.error as exc:
        logger.debug(f"Invalid regex {b!r} in condition: {exc}")
        return False
    return pattern.search(js_string(a)) is not None


_OPERATORS = {
    Operator.EQUALS: strict_equals,
    Operator.NOT_EQUALS: lambda a, b: not strict_equals(a, b),
    Operator.GREATER_THAN: _greater,
    Operator.GREATER_THAN_OR_EQUAL: _greater_equal,
    Operator.LESS_THAN: _less,
    Operator.LESS_THAN_OR_EQUAL: _less_equal,
    Operator.CONTAINS: _contains,
    Operator.NOT_CONTAINS: lambda a, b: not _contains(a, b),
    Operator.STARTS_WITH: _starts_with,
    Operator.ENDS_WITH: _ends_with,
    Operator.REGEX: _regex,
}


# =============================================================================
# EVALUATION
# =============================================================================

def combine(results: Iterable[bool], logic: str) -> bool:
    """OR -> any, everything else -> all."""
    if Logic.is_or(logic):
        return any(results)
    return all(results)


def evaluate_condition(condition: Union[Condition, Mapping[str, Any]], message: Mapping[str, Any]) -> bool:
    """
    Evaluate one condition against a message.

    Args:
        condition: Condition model or its raw mapping
        message: Message record

    Returns:
        True if the coerced message value satisfies the operator.
        Unknown operators and malformed input yield False.
    """
    if not isinstance(condition, Condition):
        try:
            condition = Condition.model_validate(condition)
        except ValueError as exc:
            logger.debug(f"Malformed condition ignored: {exc}")
            return False

    try:
        operation = _OPERATORS[Operator(condition.operator)]
    except ValueError:
        return False

    message_value = get_path(message, condition.field)
    left = coerce(message_value, condition.data_type)
    right = coerce(condition.value, condition.data_type)
    try:
        return bool(operation(left, right))
    except Exception as exc:
        logger.debug(f"Condition on {condition.field!r} failed: {exc}")
        return False


def evaluate_group(group: Union[ConditionGroup, Mapping[str, Any]], message: Mapping[str, Any]) -> bool:
    """
    Evaluate a platform/kind selector plus its conditions.

    The selector short-circuits: a source or kind mismatch returns False
    without looking at the conditions. A matching selector with no
    conditions is a match.
    """
    if not isinstance(group, ConditionGroup):
        try:
            group = ConditionGroup.model_validate(group)
        except ValueError as exc:
            logger.debug(f"Malformed condition group ignored: {exc}")
            return False

    if group.source and detect_source(message) != group.source:
        return False

    if group.message_type and not matches_message_type(group.message_type, message):
        return False

    if not group.conditions:
        return True

    results = [evaluate_condition(condition, message) for condition in group.conditions]
    return combine(results, group.condition_logic)
