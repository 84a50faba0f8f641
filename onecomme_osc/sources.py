"""
Source / message-kind detection.

Infers which streaming platform a message came from and whether it counts
as a comment or a gift, from explicit tags first and structural hints last.
"""

from enum import Enum
from typing import Any, Mapping, Optional


class Platform(str, Enum):
    """Streaming platforms the router understands."""
    YOUTUBE = "youtube"
    BILIBILI = "bilibili"
    NICONICO = "niconico"
    TWITCH = "twitch"


UNKNOWN_SOURCE = "unknown"

# Checked in order; first prefix hit wins.
_TYPE_PREFIXES = (
    ("youtube", Platform.YOUTUBE),
    ("bilibili", Platform.BILIBILI),
    ("niconico", Platform.NICONICO),
)

# Checked after service: normalized Twitch payloads carry no service tag.
_TWITCH_TYPE_PREFIX = "twitch"

_NICONAMA_TYPE = "niconama"

GIFT_KINDS = frozenset({"gift", "superchat"})
COMMENT_KIND = "comment"


def _type_source(message_type: Any) -> Optional[str]:
    if not isinstance(message_type, str) or not message_type:
        return None
    for prefix, platform in _TYPE_PREFIXES:
        if message_type.startswith(prefix):
            return platform.value
    if message_type == _NICONAMA_TYPE:
        return Platform.NICONICO.value
    return None


def detect_source(message: Mapping[str, Any]) -> str:
    """
    Detect the platform tag of a message.

    Priority:
        1. ``type`` prefix (youtube*, bilibili*, niconico* / niconama)
        2. ``service`` lower-cased
        3. ``type`` prefix twitch*
        4. structural hints: userLevel/guardLevel -> bilibili, isMember -> youtube
        5. "unknown"
    """
    if not isinstance(message, Mapping):
        return UNKNOWN_SOURCE

    source = _type_source(message.get("type"))
    if source:
        return source

    service = message.get("service")
    if service:
        return str(service).lower()

    message_type = message.get("type")
    if isinstance(message_type, str) and message_type.startswith(_TWITCH_TYPE_PREFIX):
        return Platform.TWITCH.value

    if "userLevel" in message or "guardLevel" in message:
        return Platform.BILIBILI.value
    if "isMember" in message:
        return Platform.YOUTUBE.value

    return UNKNOWN_SOURCE


def matches_message_type(message_type: str, message: Mapping[str, Any]) -> bool:
    """
    Check a message against a kind selector.

    'gift' and 'superchat' need ``hasGift`` to be exactly True, 'comment'
    needs it to be anything else. Other kinds always match.
    """
    has_gift = message.get("hasGift") is True
    if message_type in GIFT_KINDS:
        return has_gift
    if message_type == COMMENT_KIND:
        return not has_gift
    return True
