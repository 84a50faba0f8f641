"""
Configuration Persistence

Router settings and the rule set, each saved to its own YAML file.
Loading never fails: a missing or unreadable file yields defaults.
"""

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .model import Rule, parse_rule

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "onecomme_osc"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_RULES_PATH = DEFAULT_CONFIG_DIR / "rules.yaml"

CONFIG_VERSION = "1.0.0"


# =============================================================================
# ROUTER CONFIG
# =============================================================================

class RouterConfig(BaseModel):
    """
    Router settings.

    Attributes:
        osc_host: Destination host for OSC messages
        osc_port: Destination UDP port
        enable_default_endpoints: Send every message to its platform endpoint
            unless a blocking rule matched
        osc_message_format: "binary" (JSON as blob) or "string" (JSON as OSC string)
        web_host: Bind address of the control API
        web_port: Port of the control API
        max_log_messages: Capacity of the in-memory message log
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    osc_host: str = "127.0.0.1"
    osc_port: int = Field(default=19100, ge=1024, le=65535)
    enable_default_endpoints: bool = True
    osc_message_format: Literal["binary", "string"] = "binary"
    web_host: str = "127.0.0.1"
    web_port: int = Field(default=19101, ge=1, le=65535)
    max_log_messages: int = Field(default=100, ge=1)
    version: str = CONFIG_VERSION
    last_updated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def _field_names(model: type) -> Dict[str, str]:
    """Map both python names and camelCase aliases to python names."""
    names = {}
    for name, info in model.model_fields.items():
        names[name] = name
        if info.alias:
            names[info.alias] = name
    return names


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConfigManager:
    """
    Loads, updates and saves the router configuration.

    Usage:
        manager = ConfigManager()
        config = manager.load()
        manager.update(oscPort=9000)
        manager.save()
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_CONFIG_PATH
        self.config = RouterConfig()

    def load(self) -> RouterConfig:
        """
        Load config from disk.

        Returns:
            The loaded config, or defaults if the file is missing or corrupt
        """
        if not self.path.exists():
            logger.info(f"No config file at {self.path}, using defaults")
            self.config = RouterConfig()
            return self.config

        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"expected a mapping, got {type(data).__name__}")
            self.config = RouterConfig.model_validate(data)
            logger.info(f"Loaded config from {self.path}")
        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.error(f"Failed to load config from {self.path}: {e}")
            self.config = RouterConfig()
        return self.config

    def save(self) -> bool:
        """
        Save the current config.

        Returns:
            True if saved successfully
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.config = self.config.model_copy(update={"last_updated": _now_iso()})
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(self.config.to_dict(), f, default_flow_style=False, sort_keys=False)
            logger.info(f"Saved config to {self.path}")
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save config: {e}")
            return False

    def update(self, **changes: Any) -> RouterConfig:
        """
        Apply changes (python names or camelCase keys) and validate.

        Unknown keys are ignored.

        Raises:
            pydantic.ValidationError: if a value is out of range or of the wrong kind
        """
        names = _field_names(RouterConfig)
        data = self.config.model_dump()
        for key, value in changes.items():
            name = names.get(key)
            if name is None:
                logger.debug(f"Ignoring unknown config key: {key}")
                continue
            data[name] = value
        self.config = RouterConfig.model_validate(data)
        return self.config

    def get_osc_message_format(self) -> str:
        return self.config.osc_message_format


# =============================================================================
# RULE STORE
# =============================================================================

class RuleStore:
    """YAML-backed rule persistence with a one-deep backup."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_RULES_PATH

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".backup")

    def load(self) -> List[Rule]:
        """
        Load rules in stored order.

        Returns:
            Parsed rules; [] if the file is missing or corrupt.
            Individually malformed entries are skipped.
        """
        if not self.path.exists():
            logger.info(f"No rules file at {self.path}")
            return []

        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load rules from {self.path}: {e}")
            return []

        if isinstance(data, dict):
            data = data.get("rules")
        if data is None:
            return []
        if not isinstance(data, list):
            logger.error(f"Rules file {self.path} does not hold a list of rules")
            return []

        rules: List[Rule] = []
        for index, entry in enumerate(data):
            if not isinstance(entry, dict):
                logger.warning(f"Skipping rule #{index}: not a mapping")
                continue
            try:
                rules.append(parse_rule(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed rule #{index} ({entry.get('name', '?')}): {e}")

        logger.info(f"Loaded {len(rules)} rules from {self.path}")
        return rules

    def save(self, rules: List[Rule]) -> bool:
        """
        Save rules, keeping the previous file as a .backup sibling.

        Returns:
            True if saved successfully
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.path.exists():
                shutil.copy2(self.path, self.backup_path)

            data = {
                "version": CONFIG_VERSION,
                "lastUpdated": _now_iso(),
                "rules": [rule.to_dict() for rule in rules],
            }
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

            logger.info(f"Saved {len(rules)} rules to {self.path}")
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save rules: {e}")
            return False
