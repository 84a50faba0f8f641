"""
Rule Data Model

Pydantic models for conditions, condition groups, actions and rules.

A rule comes in one of two shapes:
- GroupedRule: platform-aware condition groups combined by groupLogic (default OR)
- LegacyRule:  flat conditions combined by conditionLogic (default AND)

The shape is resolved once by parse_rule(); evaluation never re-inspects
the raw keys. Field names are camelCase on the wire (the control panel
speaks JSON) and snake_case in Python.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class Operator(str, Enum):
    """Comparison operators understood by the condition evaluator."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    REGEX = "regex"


class DataType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class Logic(str, Enum):
    AND = "AND"
    OR = "OR"

    @staticmethod
    def is_or(value: Any) -> bool:
        """Only the exact name "OR" is OR; anything else combines with AND."""
        return value == Logic.OR.value


ROUTE_TO_ENDPOINT = "route_to_endpoint"

# Default combinators differ between the two rule shapes.
DEFAULT_GROUP_LOGIC = Logic.OR.value
DEFAULT_CONDITION_LOGIC = Logic.AND.value


def _logic_or_default(value: Any, default: str) -> str:
    # null, "" and other falsy values fall back to the shape's default
    if not value:
        return default
    return value if isinstance(value, str) else str(value)


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python, unknown keys preserved."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# CONDITIONS
# =============================================================================

class Condition(_WireModel):
    """
    Single field comparison.

    operator is kept as a plain string: unknown operators are legal in
    stored rules and simply never match.
    """
    field: str
    operator: str = Operator.EQUALS.value
    value: Any = None
    data_type: str = DataType.STRING.value

    @field_validator("data_type", mode="before")
    @classmethod
    def default_data_type(cls, value: Any) -> Any:
        return value or DataType.STRING.value


class ConditionGroup(_WireModel):
    """Platform / message-kind selector bundled with its conditions."""
    source: Optional[str] = None
    message_type: Optional[str] = None
    conditions: List[Condition] = Field(default_factory=list)
    condition_logic: str = DEFAULT_CONDITION_LOGIC

    @field_validator("conditions", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return value or []

    @field_validator("condition_logic", mode="before")
    @classmethod
    def default_condition_logic(cls, value: Any) -> Any:
        return _logic_or_default(value, DEFAULT_CONDITION_LOGIC)


# =============================================================================
# ACTIONS
# =============================================================================

class FieldSpec(_WireModel):
    """Output field selection for a projected message."""
    path: str
    enabled: bool = True


class Action(_WireModel):
    """Route the (projected) message to an OSC endpoint."""
    type: str = ROUTE_TO_ENDPOINT
    endpoint: str = ""
    fields: List[FieldSpec] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def accept_plain_paths(cls, value: Any) -> Any:
        if not value:
            return []
        return [{"path": item} if isinstance(item, str) else item for item in value]


# =============================================================================
# RULES
# =============================================================================

class _RuleBase(_WireModel):
    id: Optional[str] = None
    name: str = ""
    enabled: bool = True
    block_default: bool = False
    actions: List[Action] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("name", mode="before")
    @classmethod
    def null_name_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("actions", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return value or []

    # Only an explicit false disables a rule.
    @field_validator("enabled", mode="before")
    @classmethod
    def null_is_enabled(cls, value: Any) -> Any:
        return True if value is None else value

    @field_validator("block_default", mode="before")
    @classmethod
    def null_is_not_blocking(cls, value: Any) -> Any:
        return False if value is None else value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.pop("shape", None)
        return data


class GroupedRule(_RuleBase):
    """Rule made of platform-aware condition groups."""
    shape: Literal["grouped"] = "grouped"
    condition_groups: List[ConditionGroup]
    group_logic: str = DEFAULT_GROUP_LOGIC

    @field_validator("group_logic", mode="before")
    @classmethod
    def default_group_logic(cls, value: Any) -> Any:
        return _logic_or_default(value, DEFAULT_GROUP_LOGIC)


class LegacyRule(_RuleBase):
    """Rule made of flat conditions. No conditions means always match."""
    shape: Literal["legacy"] = "legacy"
    conditions: List[Condition] = Field(default_factory=list)
    condition_logic: str = DEFAULT_CONDITION_LOGIC

    @field_validator("conditions", mode="before")
    @classmethod
    def conditions_none_is_empty(cls, value: Any) -> Any:
        return value or []

    @field_validator("condition_logic", mode="before")
    @classmethod
    def default_condition_logic(cls, value: Any) -> Any:
        return _logic_or_default(value, DEFAULT_CONDITION_LOGIC)


Rule = Union[GroupedRule, LegacyRule]


def parse_rule(data: Union[Rule, Mapping[str, Any]]) -> Rule:
    """
    Resolve a raw rule mapping into its shape.

    Non-empty conditionGroups take precedence; anything else is a legacy
    rule (including one with neither key, which matches vacuously).

    Raises:
        pydantic.ValidationError: if the mapping is not a valid rule
    """
    if isinstance(data, (GroupedRule, LegacyRule)):
        return data
    if not isinstance(data, Mapping):
        raise TypeError(f"rule must be a mapping, got {type(data).__name__}")
    raw = dict(data)
    raw.pop("shape", None)
    groups = raw.get("conditionGroups", raw.get("condition_groups"))
    if groups:
        return GroupedRule.model_validate(raw)
    raw.pop("conditionGroups", None)
    raw.pop("condition_groups", None)
    return LegacyRule.model_validate(raw)


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class RuleSetResult:
    """
    Outcome of one evaluation pass over the rule set.

    Attributes:
        matched_rules: Rules that matched, in stored order
        actions: Their actions, flattened in order
        should_process: True if default routing should still happen
    """
    matched_rules: List[Rule] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    should_process: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matchedRules": [rule.to_dict() for rule in self.matched_rules],
            "actions": [action.to_dict() for action in self.actions],
            "shouldProcess": self.should_process,
        }
