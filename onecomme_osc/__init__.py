"""
OneComme OSC Router - rule-based routing of live-stream comments to OSC

Public API:
    Rules:
        RuleEngine - Ordered rule set: process(message) plus CRUD
        evaluate_rule / evaluate_group / evaluate_condition - Pure evaluators
        parse_rule - Resolve a raw rule mapping into GroupedRule or LegacyRule
        RuleSetResult - matchedRules, actions, shouldProcess

    Messages:
        normalize - Raw OneComme comment -> NormalizedMessage (or None)
        detect_source - Platform tag of a message
        project - Reduced copy of a message for an action's field list
        get_path / set_path / MISSING - Dotted-path access

    Plumbing:
        OscSender - UDP OSC sender (JSON as blob or string)
        MessageLog - Bounded log of incoming/outgoing traffic
        ConfigManager / RuleStore - YAML persistence
        CommentRouter - normalize -> rules -> OSC
        ControlServer - aiohttp control API

Usage:
    from onecomme_osc import (
        CommentRouter, ConfigManager, MessageLog, OscSender, RuleEngine, RuleStore,
    )

    config = ConfigManager()
    settings = config.load()
    engine = RuleEngine(store=RuleStore())
    sender = OscSender(settings.osc_host, settings.osc_port, settings.osc_message_format)
    router = CommentRouter(engine, sender, config, MessageLog(settings.max_log_messages))

    router.handle_comments([{"service": "youtube", "data": {...}}])
"""

from .conditions import evaluate_condition, evaluate_group
from .config import ConfigManager, RouterConfig, RuleStore
from .engine import RuleEngine, evaluate_rule
from .model import (
    Action,
    Condition,
    ConditionGroup,
    FieldSpec,
    GroupedRule,
    LegacyRule,
    Rule,
    RuleSetResult,
    parse_rule,
)
from .monitor import LoggedMessage, MessageLog
from .paths import MISSING, get_path, set_path
from .platforms import NormalizedMessage, Variant, VARIANTS, normalize
from .projection import project
from .router import CommentRouter
from .server import ControlServer
from .sources import Platform, detect_source, matches_message_type
from .transport import OscSender

__version__ = "1.0.0"

__all__ = [
    # Rules
    "RuleEngine",
    "evaluate_rule",
    "evaluate_group",
    "evaluate_condition",
    "parse_rule",
    "Rule",
    "GroupedRule",
    "LegacyRule",
    "Condition",
    "ConditionGroup",
    "Action",
    "FieldSpec",
    "RuleSetResult",
    # Messages
    "normalize",
    "NormalizedMessage",
    "Variant",
    "VARIANTS",
    "Platform",
    "detect_source",
    "matches_message_type",
    "project",
    "get_path",
    "set_path",
    "MISSING",
    # Plumbing
    "OscSender",
    "MessageLog",
    "LoggedMessage",
    "ConfigManager",
    "RouterConfig",
    "RuleStore",
    "CommentRouter",
    "ControlServer",
]
