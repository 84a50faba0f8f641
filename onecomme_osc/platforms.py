"""
Platform Normalization

Turns a raw OneComme comment ({service, data}) into a Message for one of a
closed set of variants. Each variant fixes the message's ``type`` tag and
its default OSC endpoint:

    youtube   comment       youtube               /onecomme/youtube/comment
    youtube   superchat     youtube-super         /onecomme/youtube/super
    bilibili  comment       bilibili              /onecomme/bilibili/comment
    bilibili  gift          bilibili-gift         /onecomme/bilibili/gift
    niconico  comment       niconico              /onecomme/niconico/comment
    niconico  gift          niconico-gift         /onecomme/niconico/gift
    twitch    comment       twitch                /onecomme/twitch/comment
    twitch    bits          twitch-bits           /onecomme/twitch/bits
    twitch    subscription  twitch-subscription   /onecomme/twitch/subscription
    twitch    raid          twitch-raid           /onecomme/twitch/raid
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .conditions import js_string, truthy
from .paths import MISSING
from .sources import Platform

logger = logging.getLogger(__name__)

COMMON_ENDPOINT = "/onecomme/common"


class Kind(str, Enum):
    COMMENT = "comment"
    SUPERCHAT = "superchat"
    GIFT = "gift"
    BITS = "bits"
    SUBSCRIPTION = "subscription"
    RAID = "raid"


@dataclass(frozen=True)
class Variant:
    platform: Platform
    kind: Kind
    type: str
    endpoint: str


def _variant(platform: Platform, kind: Kind, type_tag: str) -> Variant:
    suffix = "super" if kind == Kind.SUPERCHAT else kind.value
    return Variant(platform, kind, type_tag, f"/onecomme/{platform.value}/{suffix}")


VARIANTS: Dict[Tuple[Platform, Kind], Variant] = {
    (v.platform, v.kind): v for v in (
        _variant(Platform.YOUTUBE, Kind.COMMENT, "youtube"),
        _variant(Platform.YOUTUBE, Kind.SUPERCHAT, "youtube-super"),
        _variant(Platform.BILIBILI, Kind.COMMENT, "bilibili"),
        _variant(Platform.BILIBILI, Kind.GIFT, "bilibili-gift"),
        _variant(Platform.NICONICO, Kind.COMMENT, "niconico"),
        _variant(Platform.NICONICO, Kind.GIFT, "niconico-gift"),
        _variant(Platform.TWITCH, Kind.COMMENT, "twitch"),
        _variant(Platform.TWITCH, Kind.BITS, "twitch-bits"),
        _variant(Platform.TWITCH, Kind.SUBSCRIPTION, "twitch-subscription"),
        _variant(Platform.TWITCH, Kind.RAID, "twitch-raid"),
    )
}


# (summary key, payload key) shared by every variant
_POST_BASE = (
    ("author", "name"),
    ("comment", "comment"),
    ("timestamp", "timestamp"),
    ("iconUrl", "profileImageUrl"),
)

# Keys added to the common post summary, per variant type.
_POST_EXTRAS: Dict[str, Tuple[str, ...]] = {
    "youtube-super": ("paidText", "price", "tier", "unit", "colors"),
    "bilibili": ("userLevel", "medalLevel", "medalName", "isVip", "isSvip", "guardLevel"),
    "niconico-gift": ("price",),
}
_POST_EXTRAS["bilibili-gift"] = _POST_EXTRAS["bilibili"] + (
    "giftName", "giftId", "price", "num", "totalCoin", "coinType", "giftType",
    "action", "isSpecialGift", "specialGiftType",
)
_TWITCH_BASE = (
    "displayName", "isSubscriber", "isVip", "isModerator", "isPartner", "isAffiliate",
    "isTurbo", "isPrime", "isStaff", "isGlobalMod", "badges", "badgeInfo", "color",
    "emotes", "userType", "subscriptionTier", "subscriptionMonths", "channelName",
    "firstMsg", "returning", "rituals",
)
_POST_EXTRAS["twitch"] = _TWITCH_BASE + (
    "replyTo", "isReply", "replyParentDisplayName", "replyParentMsgBody",
    "isHighlight", "msgId", "isSystemMessage", "systemMessageType",
)
_POST_EXTRAS["twitch-bits"] = _TWITCH_BASE + (
    "bits", "totalBits", "bitsInDollars", "cheerBadge", "cheerBadgeTier",
    "isAnonymous", "cheerEmotes", "bitsMessage", "isPinned",
)
_POST_EXTRAS["twitch-subscription"] = _TWITCH_BASE + (
    "subscriptionType", "tier", "months", "streak", "isGift", "gifterId", "gifterName",
    "gifterDisplayName", "recipientId", "recipientName", "recipientDisplayName",
    "multiMonthGift", "multiMonthTenure", "massGiftCount", "senderCount", "plan",
    "planName", "subMessage",
)
_POST_EXTRAS["twitch-raid"] = _TWITCH_BASE + (
    "raiderName", "raiderDisplayName", "raiderId", "viewerCount", "targetChannelName",
    "targetChannelId", "targetDisplayName", "raidMessage", "isHosting", "raidType",
)


@dataclass
class NormalizedMessage:
    """
    A raw comment resolved to its variant.

    Attributes:
        variant: Platform/kind entry from VARIANTS
        payload: Message record (includes ``type`` and ``endpoint``)
    """
    variant: Variant
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        return self.variant.type

    @property
    def endpoint(self) -> str:
        return self.variant.endpoint

    @property
    def platform(self) -> Platform:
        return self.variant.platform

    def as_post(self) -> Dict[str, Any]:
        """Platform-independent summary sent to the common endpoint."""
        payload = self.payload
        post: Dict[str, Any] = {"type": self.type}
        for post_key, key in _POST_BASE:
            if key in payload:
                post[post_key] = payload[key]
        for key in _POST_EXTRAS.get(self.type, ()):
            if key in payload:
                post[key] = payload[key]
        return post


# =============================================================================
# TEXT, COLOR AND TIME HELPERS
# =============================================================================

_EMOJI = re.compile(r"<img[^>]*>")
_EMOJI_ALT = re.compile(r'<img [^>]*alt="([^>]*)"[^>]*>')
_PROFILE_IMAGE_SIZE = re.compile(r"=s(.+)-c-k-c0x00ffffff-no-rj")
_RGBA = re.compile(r"rgba\((\d+),(\d+),(\d+),(\d?\.?\d*)\)")

EMOJI_PLACEHOLDER = "▯"
DISABLED_COLOR = {"r": 255, "g": 0, "b": 255, "a": 1}


def _text(value: Any) -> str:
    if value is None or value is MISSING:
        return ""
    return js_string(value)


def decode_escape(text: str) -> str:
    return text.replace("&gt;", ">").replace("&lt;", "<").replace("&amp;", "&")


def normalize_emoji(comment: Any) -> str:
    """Replace emoji images with a placeholder glyph."""
    return decode_escape(_EMOJI.sub(EMOJI_PLACEHOLDER, _text(comment)))


def alternate_emoji(comment: Any) -> str:
    """Replace emoji images with their alt text (gift messages)."""
    result = _EMOJI_ALT.sub(r"\1", _text(comment))
    return decode_escape(_EMOJI.sub("", result))


def resize_profile_image_url(url: str) -> str:
    return _PROFILE_IMAGE_SIZE.sub("=s240-c-k-c0x00ffffff-no-rj", url, count=1)


def _number(text: str) -> Any:
    try:
        value = float(text)
    except ValueError:
        return None
    return int(value) if value.is_integer() else value


def parse_color(rgba: Any) -> Dict[str, Any]:
    """'rgba(230,33,23,1)' -> {r, g, b, a}; anything else -> magenta."""
    match = _RGBA.search(_text(rgba))
    if not match:
        return dict(DISABLED_COLOR)
    r, g, b, a = match.groups()
    return {"r": int(r), "g": int(g), "b": int(b), "a": _number(a)}


def parse_timestamp(value: Any) -> Optional[Dict[str, int]]:
    """
    ISO-8601 string (or epoch milliseconds) to UTC components.

    Returns None if the value cannot be parsed.
    """
    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str) and value:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
            moment = moment.astimezone(timezone.utc)
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None

    return {
        "year": moment.year,
        "month": moment.month,
        "day": moment.day,
        "hour": moment.hour,
        "minute": moment.minute,
        "second": moment.second,
        "ms": moment.microsecond // 1000,
    }


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# TWITCH HELPERS
# =============================================================================

def cheer_tier(bits: Any) -> str:
    amount = _as_float(bits)
    for threshold in (10000, 5000, 1000, 500, 100, 10):
        if amount >= threshold:
            return f"{threshold}+"
    return "1+"


def raid_size(viewer_count: Any) -> str:
    count = _as_float(viewer_count)
    for threshold, label in ((1000, "massive"), (500, "huge"), (100, "large"), (50, "medium"), (10, "small")):
        if count >= threshold:
            return label
    return "tiny"


_TIER_NUMBERS = {"1000": 1, "Prime": 1, "2000": 2, "3000": 3}
_TIER_VALUES = {"1000": 4.99, "2000": 9.99, "3000": 24.99, "Prime": 0.0}


def subscription_tier_number(tier: Any) -> int:
    return _TIER_NUMBERS.get(_text(tier), 1)


def subscription_value(tier: Any, multi_month_gift: Any = 1) -> float:
    """Approximate USD value of a subscription (Prime is free)."""
    base = _TIER_VALUES.get(_text(tier), _TIER_VALUES["1000"])
    months = multi_month_gift if truthy(multi_month_gift) else 1
    return round(base * _as_float(months), 2)


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(_text(value))
    except ValueError:
        return 0.0


# =============================================================================
# FIELD EXTRACTION
# =============================================================================

def _first(raw: Mapping[str, Any], *keys: str, default: Any = MISSING) -> Any:
    """First truthy value among keys (JavaScript ``a || b || default``)."""
    for key in keys:
        value = raw.get(key, MISSING)
        if truthy(value):
            return value
    return default


def _copy(raw: Mapping[str, Any], *keys: str) -> Dict[str, Any]:
    return {key: raw[key] for key in keys if key in raw}


def _finish(variant: Variant, fields: Dict[str, Any]) -> NormalizedMessage:
    payload = {key: value for key, value in fields.items() if value is not MISSING}
    payload["type"] = variant.type
    payload["endpoint"] = variant.endpoint
    return NormalizedMessage(variant=variant, payload=payload)


# -----------------------------------------------------------------------------
# YouTube
# -----------------------------------------------------------------------------

_COLOR_KEYS = ("headerBackgroundColor", "headerTextColor", "bodyBackgroundColor", "bodyTextColor")
_OPTIONAL_COLOR_KEYS = ("authorNameTextColor", "timestampColor")


def _youtube_common(raw: Mapping[str, Any]) -> Dict[str, Any]:
    fields = _copy(raw, "id", "liveId", "userId", "name", "isOwner", "isModerator",
                   "isMember", "autoModerated", "hasGift", "displayName")
    fields["timestamp"] = parse_timestamp(raw.get("timestamp"))
    fields["comment"] = normalize_emoji(raw.get("comment"))
    profile = raw.get("profileImage")
    fields["profileImageUrl"] = resize_profile_image_url(_text(profile)) if truthy(profile) else ""
    return fields


def _superchat_fields(raw: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    # Super stickers, membership gifts and milestone chats stay plain comments.
    if raw.get("giftType") != "superchat":
        return None
    required = ("paidText", "price", "unit", "colors", "tier")
    if not all(truthy(raw.get(key, MISSING)) for key in required):
        logger.warning("YouTube super chat is missing paidText/price/unit/colors/tier, routing as comment")
        return None

    source = raw["colors"] if isinstance(raw["colors"], Mapping) else {}
    colors = {key: parse_color(source.get(key)) for key in _COLOR_KEYS}
    for key in _OPTIONAL_COLOR_KEYS:
        if truthy(source.get(key, MISSING)):
            colors[key] = parse_color(source[key])

    fields = _copy(raw, *required)
    fields["colors"] = colors
    return fields


def _normalize_youtube(raw: Mapping[str, Any]) -> NormalizedMessage:
    fields = _youtube_common(raw)
    if truthy(raw.get("hasGift", MISSING)):
        extra = _superchat_fields(raw)
        if extra is not None:
            return _finish(VARIANTS[Platform.YOUTUBE, Kind.SUPERCHAT], {**fields, **extra})
    return _finish(VARIANTS[Platform.YOUTUBE, Kind.COMMENT], fields)


# -----------------------------------------------------------------------------
# Bilibili
# -----------------------------------------------------------------------------

def _bilibili_common(raw: Mapping[str, Any]) -> Dict[str, Any]:
    name = _first(raw, "name", "uname")
    return {
        "id": raw.get("id", MISSING),
        "liveId": _first(raw, "liveId", "roomId"),
        "userId": _first(raw, "userId", "uid"),
        "name": name,
        "isOwner": _first(raw, "isOwner", default=False),
        "timestamp": parse_timestamp(raw.get("timestamp")),
        "hasGift": _first(raw, "hasGift", default=False),
        "comment": normalize_emoji(_first(raw, "comment", "msg", default="")),
        "displayName": _first(raw, "displayName", "uname", default=name),
        "profileImageUrl": _first(raw, "profileImage", "face", default=""),
        "userLevel": _first(raw, "userLevel", default=0),
        "medalLevel": _first(raw, "medalLevel", default=0),
        "medalName": _first(raw, "medalName", default=""),
        "isVip": _first(raw, "isVip", default=False),
        "isSvip": _first(raw, "isSvip", default=False),
        # 0 none, 1 governor, 2 admiral, 3 captain
        "guardLevel": _first(raw, "guardLevel", default=0),
        "fansMedal": _first(raw, "fansMedal", default=None),
    }


def _normalize_bilibili(raw: Mapping[str, Any]) -> NormalizedMessage:
    fields = _bilibili_common(raw)
    if not truthy(raw.get("hasGift", MISSING)):
        return _finish(VARIANTS[Platform.BILIBILI, Kind.COMMENT], fields)

    price = _first(raw, "price", default=0)
    num = _first(raw, "num", default=1)
    fields.update({
        "giftName": _first(raw, "giftName", default=""),
        "giftId": _first(raw, "giftId", default=0),
        "price": price,
        "num": num,
        "totalCoin": _first(raw, "totalCoin", default=_product(price, num)),
        "coinType": _first(raw, "coinType", default="gold"),
        "giftType": _first(raw, "giftType", default=0),
        "action": _first(raw, "action", default="投喂"),
        "isSpecialGift": _first(raw, "isSpecialGift", default=False),
        "specialGiftType": _first(raw, "specialGiftType", default=""),
        "comment": alternate_emoji(_first(raw, "comment", "msg", default="")),
    })
    return _finish(VARIANTS[Platform.BILIBILI, Kind.GIFT], fields)


def _product(a: Any, b: Any) -> Any:
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (a, b)):
        return a * b
    return 0


# -----------------------------------------------------------------------------
# Niconico
# -----------------------------------------------------------------------------

def _normalize_niconico(raw: Mapping[str, Any]) -> NormalizedMessage:
    fields = _copy(raw, "id", "liveId", "userId", "name", "screenName", "isOwner",
                   "hasGift", "no", "premium", "anonymity", "displayName")
    fields["timestamp"] = parse_timestamp(raw.get("timestamp"))
    fields["profileImageUrl"] = raw.get("profileImage", MISSING)

    if truthy(raw.get("hasGift", MISSING)):
        fields["price"] = raw.get("price", MISSING)
        fields["comment"] = alternate_emoji(raw.get("comment"))
        return _finish(VARIANTS[Platform.NICONICO, Kind.GIFT], fields)

    fields["comment"] = normalize_emoji(raw.get("comment"))
    return _finish(VARIANTS[Platform.NICONICO, Kind.COMMENT], fields)


# -----------------------------------------------------------------------------
# Twitch
# -----------------------------------------------------------------------------

def _user(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    user = raw.get("user")
    return user if isinstance(user, Mapping) else {}


def classify_twitch(raw: Mapping[str, Any]) -> Kind:
    """Subscription, bits and raid are told apart by which fields are present."""
    if _first(raw, "subscriptionType", "tier", "isGift") is not MISSING:
        return Kind.SUBSCRIPTION
    if _first(raw, "bits", "bitsAmount", "cheerEmotes") is not MISSING:
        return Kind.BITS
    if "viewerCount" in raw or _first(raw, "raiderName", "raidType") is not MISSING:
        return Kind.RAID
    return Kind.COMMENT


def _twitch_common(raw: Mapping[str, Any]) -> Dict[str, Any]:
    user = _user(raw)
    name = _first(raw, "name", default=_first(user, "login", default=_first(raw, "username", default="")))
    return {
        "id": _first(raw, "id", "msgId", default=""),
        "liveId": _first(raw, "liveId", "channelId", default=""),
        "userId": _first(raw, "userId", default=_first(user, "id", default="")),
        "name": name,
        "displayName": _first(raw, "displayName", default=_first(user, "displayName", default=name)),
        "isOwner": _first(raw, "isOwner", "isBroadcaster", default=False),
        "isModerator": _first(raw, "isModerator", "isMod", default=False),
        "timestamp": parse_timestamp(_first(raw, "timestamp", default=_now_iso())),
        "hasGift": _first(raw, "hasGift", default=False),
        "comment": normalize_emoji(_first(raw, "comment", "message", default="")),
        "profileImageUrl": _first(raw, "profileImage", default=_first(user, "profileImageUrl", default="")),
        "isSubscriber": _first(raw, "isSubscriber", "isSubscribed", default=False),
        "isVip": _first(raw, "isVip", default=False),
        "isPartner": _first(raw, "isPartner", default=False),
        "isAffiliate": _first(raw, "isAffiliate", default=False),
        "isTurbo": _first(raw, "isTurbo", default=False),
        "isPrime": _first(raw, "isPrime", default=False),
        "isStaff": _first(raw, "isStaff", default=False),
        "isGlobalMod": _first(raw, "isGlobalMod", default=False),
        "badges": _first(raw, "badges", default=[]),
        "badgeInfo": _first(raw, "badgeInfo", default={}),
        "color": _first(raw, "color", default="#FFFFFF"),
        "emotes": _first(raw, "emotes", default={}),
        "userType": _first(raw, "userType", default=""),
        "subscriptionTier": _first(raw, "subscriptionTier", default=0),
        "subscriptionMonths": _first(raw, "subscriptionMonths", default=0),
        "channelName": _first(raw, "channelName", "channel", default=""),
        "roomId": _first(raw, "roomId", default=""),
        "firstMsg": _first(raw, "firstMsg", default=False),
        "returning": _first(raw, "returning", default=False),
        "rituals": _first(raw, "rituals", default={}),
    }


def _twitch_comment(raw: Mapping[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    fields.update({
        "replyTo": _first(raw, "replyTo", default=None),
        "isReply": _first(raw, "isReply", default=False),
        "replyParentDisplayName": _first(raw, "replyParentDisplayName", default=""),
        "replyParentMsgBody": _first(raw, "replyParentMsgBody", default=""),
        "isHighlight": _first(raw, "isHighlight", default=False),
        "msgId": _first(raw, "msgId", default=fields["id"]),
        "isSystemMessage": _first(raw, "isSystemMessage", default=False),
        "systemMessageType": _first(raw, "systemMessageType", default=""),
    })
    return fields


def _twitch_bits(raw: Mapping[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    bits = _first(raw, "bits", "bitsAmount", default=0)
    bits_message = _first(raw, "bitsMessage", "message", default=fields["comment"])
    fields.update({
        "hasGift": True,
        "bits": bits,
        "totalBits": _first(raw, "totalBits", default=bits),
        # Streamer share is roughly $0.014 per bit.
        "bitsInDollars": _first(raw, "bitsInDollars", default=round(_as_float(bits) * 0.014, 2)),
        "cheerTier": cheer_tier(bits),
        "cheerBadge": _first(raw, "cheerBadge", default=None),
        "cheerBadgeTier": _first(raw, "cheerBadgeTier", default=0),
        "isAnonymous": _first(raw, "isAnonymous", default=False),
        "cheerEmotes": _first(raw, "cheerEmotes", default=[]),
        "bitsMessage": bits_message,
        "comment": bits_message or "",
        "isPinned": _first(raw, "isPinned", default=False),
    })
    return fields


def _twitch_subscription(raw: Mapping[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    tier = _first(raw, "tier", "subscriptionTier", default="1000")
    multi_month = _first(raw, "multiMonthGift", default=1)
    plan = _first(raw, "plan", default=f"Tier {subscription_tier_number(tier)}")
    sub_message = _first(raw, "subMessage", "message", default=fields["comment"])
    fields.update({
        "hasGift": True,
        "subscriptionType": _first(raw, "subscriptionType", default=""),
        "tier": tier,
        "tierNumber": subscription_tier_number(tier),
        "months": _first(raw, "months", "cumulativeMonths", default=0),
        "streak": _first(raw, "streak", "streakMonths", default=0),
        "isGift": _first(raw, "isGift", default=False),
        "gifterId": _first(raw, "gifterId", default=""),
        "gifterName": _first(raw, "gifterName", default=""),
        "gifterDisplayName": _first(raw, "gifterDisplayName", default=""),
        "recipientId": _first(raw, "recipientId", default=""),
        "recipientName": _first(raw, "recipientName", default=""),
        "recipientDisplayName": _first(raw, "recipientDisplayName", default=""),
        "multiMonthGift": multi_month,
        "multiMonthTenure": _first(raw, "multiMonthTenure", default=0),
        "massGiftCount": _first(raw, "massGiftCount", default=0),
        "senderCount": _first(raw, "senderCount", default=0),
        "isPrime": _first(raw, "isPrime", default=False),
        "plan": plan,
        "planName": _first(raw, "planName", default=plan),
        "approximateValue": subscription_value(tier, multi_month),
        "subMessage": sub_message,
        "comment": sub_message or "",
    })
    return fields


def _twitch_raid(raw: Mapping[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    viewer_count = _first(raw, "viewerCount", "raiderCount", default=0)
    raid_message = _first(raw, "raidMessage", "message", default="")
    raider_name = _first(raw, "raiderName", "fromChannel", default=fields["name"])
    raider_display = _first(raw, "raiderDisplayName", "fromDisplayName", default=fields["displayName"])
    raider_id = _first(raw, "raiderId", "fromChannelId", default=fields["userId"])
    fields.update({
        "hasGift": True,
        "raiderName": raider_name,
        "raiderDisplayName": raider_display,
        "raiderId": raider_id,
        "viewerCount": viewer_count,
        "raidSize": raid_size(viewer_count),
        "targetChannelName": _first(raw, "targetChannelName", "toChannel", default=""),
        "targetChannelId": _first(raw, "targetChannelId", "toChannelId", default=""),
        "targetDisplayName": _first(raw, "targetDisplayName", "toDisplayName", default=""),
        "raidMessage": raid_message,
        "name": raider_name,
        "displayName": raider_display,
        "userId": raider_id,
        "comment": f"Raided with {js_string(viewer_count)} viewers! {_text(raid_message)}".strip(),
        "isHosting": _first(raw, "isHosting", default=False),
        "raidType": _first(raw, "raidType", default="raid"),
    })
    return fields


_TWITCH_BUILDERS: Dict[Kind, Callable[[Mapping[str, Any], Dict[str, Any]], Dict[str, Any]]] = {
    Kind.COMMENT: _twitch_comment,
    Kind.BITS: _twitch_bits,
    Kind.SUBSCRIPTION: _twitch_subscription,
    Kind.RAID: _twitch_raid,
}


def _normalize_twitch(raw: Mapping[str, Any]) -> NormalizedMessage:
    kind = classify_twitch(raw)
    fields = _TWITCH_BUILDERS[kind](raw, _twitch_common(raw))
    return _finish(VARIANTS[Platform.TWITCH, kind], fields)


# =============================================================================
# ENTRY POINT
# =============================================================================

_NORMALIZERS: Dict[str, Callable[[Mapping[str, Any]], NormalizedMessage]] = {
    "youtube": _normalize_youtube,
    "bilibili": _normalize_bilibili,
    "niconama": _normalize_niconico,
    "niconico": _normalize_niconico,
    "twitch": _normalize_twitch,
}

SUPPORTED_SERVICES = tuple(_NORMALIZERS)


def normalize(comment: Mapping[str, Any]) -> Optional[NormalizedMessage]:
    """
    Normalize a raw OneComme comment.

    Args:
        comment: {"service": ..., "data": {...}}

    Returns:
        NormalizedMessage, or None for unsupported services or missing data
    """
    if not isinstance(comment, Mapping):
        return None
    service = comment.get("service")
    data = comment.get("data")
    normalizer = _NORMALIZERS.get(service) if isinstance(service, str) else None
    if normalizer is None:
        logger.debug(f"Unsupported service: {service!r}")
        return None
    if not isinstance(data, Mapping):
        logger.debug(f"Comment from {service} has no data")
        return None
    return normalizer(data)
