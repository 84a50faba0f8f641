"""
Source Schemas

Per-platform catalogs of the message fields a rule can test, with the
operators that make sense for each, plus starter rule templates.
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .conditions import js_parse_float, js_string
from .model import Operator
from .platforms import Kind, VARIANTS
from .sources import Platform

STRING_OPERATORS = (
    Operator.EQUALS, Operator.NOT_EQUALS, Operator.CONTAINS, Operator.NOT_CONTAINS,
    Operator.STARTS_WITH, Operator.ENDS_WITH, Operator.REGEX,
)
NUMBER_OPERATORS = (
    Operator.EQUALS, Operator.NOT_EQUALS, Operator.GREATER_THAN,
    Operator.GREATER_THAN_OR_EQUAL, Operator.LESS_THAN, Operator.LESS_THAN_OR_EQUAL,
)
BOOLEAN_OPERATORS = (Operator.EQUALS,)

_OPERATORS_BY_TYPE = {
    "string": STRING_OPERATORS,
    "number": NUMBER_OPERATORS,
    "boolean": BOOLEAN_OPERATORS,
}

OPERATOR_LABELS = {
    Operator.EQUALS.value: "Equals (=)",
    Operator.NOT_EQUALS.value: "Not Equals (≠)",
    Operator.GREATER_THAN.value: "Greater Than (>)",
    Operator.GREATER_THAN_OR_EQUAL.value: "Greater Than or Equal (≥)",
    Operator.LESS_THAN.value: "Less Than (<)",
    Operator.LESS_THAN_OR_EQUAL.value: "Less Than or Equal (≤)",
    Operator.CONTAINS.value: "Contains",
    Operator.NOT_CONTAINS.value: "Does Not Contain",
    Operator.STARTS_WITH.value: "Starts With",
    Operator.ENDS_WITH.value: "Ends With",
    Operator.REGEX.value: "Regular Expression",
}


@dataclass(frozen=True)
class FieldInfo:
    name: str
    label: str
    type: str
    operators: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["operators"] = list(self.operators)
        return data


def _field(name: str, label: str, type_: str = "string", operators: Optional[Tuple] = None) -> FieldInfo:
    ops = operators if operators is not None else _OPERATORS_BY_TYPE[type_]
    return FieldInfo(name, label, type_, tuple(op.value for op in ops))


@dataclass(frozen=True)
class SourceSchema:
    name: str
    color: str
    message_types: Tuple[str, ...]
    common_fields: Tuple[FieldInfo, ...]
    specific_fields: Dict[str, Tuple[FieldInfo, ...]] = field(default_factory=dict)
    default_endpoints: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "color": self.color,
            "messageTypes": list(self.message_types),
            "commonFields": [f.to_dict() for f in self.common_fields],
            "specificFields": {
                kind: [f.to_dict() for f in fields] for kind, fields in self.specific_fields.items()
            },
            "defaultEndpoints": list(self.default_endpoints),
        }


def _endpoints(platform: Platform) -> Tuple[str, ...]:
    return tuple(v.endpoint for (p, _), v in VARIANTS.items() if p == platform)


_NAME = _field("name", "User Name")
_COMMENT = _field("comment", "Message Text")
_DISPLAY_NAME = _field("displayName", "Display Name")
_IS_OWNER = _field("isOwner", "Is Channel Owner", "boolean")


# =============================================================================
# SCHEMAS
# =============================================================================

SOURCE_SCHEMAS: Dict[str, SourceSchema] = {
    Platform.YOUTUBE.value: SourceSchema(
        name="YouTube",
        color="#ff0000",
        message_types=(Kind.COMMENT.value, Kind.SUPERCHAT.value),
        common_fields=(
            _NAME, _COMMENT, _DISPLAY_NAME, _IS_OWNER,
            _field("isModerator", "Is Moderator", "boolean"),
            _field("isMember", "Is Channel Member", "boolean"),
            _field("hasGift", "Has Gift/SuperChat", "boolean"),
        ),
        specific_fields={
            Kind.SUPERCHAT.value: (
                _field("price", "SuperChat Amount", "number"),
                _field("unit", "Currency", "string", (Operator.EQUALS, Operator.NOT_EQUALS)),
                _field("tier", "SuperChat Tier", "number"),
                _field("paidText", "Paid Amount Text"),
            ),
        },
        default_endpoints=_endpoints(Platform.YOUTUBE),
    ),
    Platform.BILIBILI.value: SourceSchema(
        name="Bilibili",
        color="#00a1d6",
        message_types=(Kind.COMMENT.value, Kind.GIFT.value),
        common_fields=(
            _NAME, _COMMENT, _DISPLAY_NAME,
            _field("userLevel", "User Level", "number"),
            _field("medalLevel", "Medal Level", "number"),
            _field("medalName", "Medal Name"),
            _field("isVip", "Is VIP", "boolean"),
            _field("isSvip", "Is SVIP", "boolean"),
            _field("guardLevel", "Guard Level (0=none, 1=总督, 2=提督, 3=舰长)", "number"),
            _IS_OWNER,
            _field("hasGift", "Has Gift", "boolean"),
        ),
        specific_fields={
            Kind.GIFT.value: (
                _field("price", "Gift Price (CNY)", "number"),
                _field("giftName", "Gift Name"),
                _field("num", "Gift Quantity", "number"),
                _field("totalCoin", "Total Coin", "number"),
            ),
        },
        default_endpoints=_endpoints(Platform.BILIBILI),
    ),
    Platform.NICONICO.value: SourceSchema(
        name="Niconico",
        color="#252525",
        message_types=(Kind.COMMENT.value, Kind.GIFT.value),
        common_fields=(
            _NAME, _COMMENT, _IS_OWNER,
            _field("premium", "Premium Member", "number"),
            _field("hasGift", "Has Gift", "boolean"),
        ),
        specific_fields={
            Kind.GIFT.value: (
                _field("price", "Gift Price (JPY)", "number"),
            ),
        },
        default_endpoints=_endpoints(Platform.NICONICO),
    ),
    Platform.TWITCH.value: SourceSchema(
        name="Twitch",
        color="#9146ff",
        message_types=(Kind.COMMENT.value, Kind.GIFT.value),
        common_fields=(
            _NAME, _COMMENT, _DISPLAY_NAME, _IS_OWNER,
            _field("isModerator", "Is Moderator", "boolean"),
            _field("isSubscriber", "Is Subscriber", "boolean"),
            _field("isVip", "Is VIP", "boolean"),
            _field("firstMsg", "First Time Chatter", "boolean"),
            _field("type", "Message Type (twitch, twitch-bits, ...)"),
            _field("hasGift", "Has Gift (bits, subscription, raid)", "boolean"),
        ),
        specific_fields={
            Kind.GIFT.value: (
                _field("bits", "Bits Amount", "number"),
                _field("cheerTier", "Cheer Tier"),
                _field("tierNumber", "Subscription Tier (1-3)", "number"),
                _field("months", "Subscription Months", "number"),
                _field("isGift", "Is Gifted Subscription", "boolean"),
                _field("viewerCount", "Raid Viewer Count", "number"),
                _field("raidSize", "Raid Size"),
            ),
        },
        default_endpoints=_endpoints(Platform.TWITCH),
    ),
}


def get_all_sources() -> List[str]:
    return list(SOURCE_SCHEMAS)


def get_source_schema(source: str) -> Optional[SourceSchema]:
    return SOURCE_SCHEMAS.get(source)


def available_fields(source: str, message_type: Optional[str] = None) -> List[FieldInfo]:
    """Common fields of a source, plus the kind-specific ones if message_type is given."""
    schema = SOURCE_SCHEMAS.get(source)
    if schema is None:
        return []
    fields = list(schema.common_fields)
    if message_type:
        fields.extend(schema.specific_fields.get(message_type, ()))
    return fields


def get_field(source: str, name: str, message_type: Optional[str] = None) -> Optional[FieldInfo]:
    return next((f for f in available_fields(source, message_type) if f.name == name), None)


def validate_condition(
    source: str,
    message_type: Optional[str],
    field_name: str,
    operator: str,
    value: Any,
) -> Tuple[bool, Optional[str]]:
    """
    Check a condition against the source's field catalog.

    Returns:
        (True, None) if valid, otherwise (False, reason)
    """
    info = get_field(source, field_name, message_type)
    if info is None:
        return False, "Field not found"
    if operator not in info.operators:
        return False, "Operator not supported for this field"
    if info.type == "number" and math.isnan(js_parse_float(value)):
        return False, "Value must be a number"
    if info.type == "boolean" and js_string(value).lower() not in ("true", "false"):
        return False, "Value must be true or false"
    return True, None


def schemas_to_dict() -> Dict[str, Any]:
    return {source: schema.to_dict() for source, schema in SOURCE_SCHEMAS.items()}


# =============================================================================
# TEMPLATES
# =============================================================================

RULE_TEMPLATES: List[Dict[str, Any]] = [
    {
        "name": "Large Super Chats",
        "description": "Send YouTube super chats above 20 to a dedicated endpoint",
        "rule": {
            "name": "Large Super Chats",
            "enabled": True,
            "conditionGroups": [{
                "source": Platform.YOUTUBE.value,
                "messageType": Kind.SUPERCHAT.value,
                "conditions": [
                    {"field": "price", "operator": "greater_than", "value": 20, "dataType": "number"},
                ],
                "conditionLogic": "AND",
            }],
            "groupLogic": "OR",
            "actions": [{
                "type": "route_to_endpoint",
                "endpoint": "/onecomme/youtube/super/large",
                "fields": [
                    {"path": "name", "enabled": True},
                    {"path": "price", "enabled": True},
                    {"path": "unit", "enabled": True},
                    {"path": "comment", "enabled": True},
                ],
            }],
            "blockDefault": False,
        },
    },
    {
        "name": "Members Only",
        "description": "Forward comments from channel members",
        "rule": {
            "name": "Members Only",
            "enabled": True,
            "conditionGroups": [{
                "source": Platform.YOUTUBE.value,
                "messageType": Kind.COMMENT.value,
                "conditions": [
                    {"field": "isMember", "operator": "equals", "value": True, "dataType": "boolean"},
                ],
            }],
            "actions": [{
                "type": "route_to_endpoint",
                "endpoint": "/onecomme/members",
                "fields": [{"path": "name", "enabled": True}, {"path": "comment", "enabled": True}],
            }],
            "blockDefault": False,
        },
    },
    {
        "name": "Bilibili Guard Members",
        "description": "Route messages from guard members (any guard level)",
        "rule": {
            "name": "Bilibili Guard Members",
            "enabled": True,
            "conditionGroups": [{
                "source": Platform.BILIBILI.value,
                "conditions": [
                    {"field": "guardLevel", "operator": "greater_than", "value": 0, "dataType": "number"},
                ],
            }],
            "actions": [{"type": "route_to_endpoint", "endpoint": "/onecomme/bilibili/guard", "fields": []}],
            "blockDefault": False,
        },
    },
    {
        "name": "Big Twitch Cheers",
        "description": "Route cheers of 1000 bits or more",
        "rule": {
            "name": "Big Twitch Cheers",
            "enabled": True,
            "conditionGroups": [{
                "source": Platform.TWITCH.value,
                "messageType": Kind.GIFT.value,
                "conditions": [
                    {"field": "bits", "operator": "greater_than_or_equal", "value": 1000, "dataType": "number"},
                ],
            }],
            "actions": [{
                "type": "route_to_endpoint",
                "endpoint": "/onecomme/twitch/bits/big",
                "fields": [{"path": "displayName", "enabled": True}, {"path": "bits", "enabled": True}],
            }],
            "blockDefault": False,
        },
    },
    {
        "name": "Keyword Filter",
        "description": "Block default routing for messages containing a keyword",
        "rule": {
            "name": "Keyword Filter",
            "enabled": True,
            "conditions": [
                {"field": "comment", "operator": "contains", "value": "spam", "dataType": "string"},
            ],
            "conditionLogic": "AND",
            "actions": [],
            "blockDefault": True,
        },
    },
]
