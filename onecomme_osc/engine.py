"""
Rule Engine

Decides, per message, which rules match and therefore which endpoints
receive which projection of the message.

    engine = RuleEngine(store=RuleStore())
    result = engine.process(message)
    for action in result.actions:
        ...
    if result.should_process:
        ...  # default routing
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from .conditions import combine, evaluate_condition, evaluate_group
from .model import GroupedRule, LegacyRule, Rule, RuleSetResult, parse_rule

logger = logging.getLogger(__name__)

RuleLike = Union[Rule, Mapping[str, Any]]


# =============================================================================
# RULE EVALUATION
# =============================================================================

def _evaluate_grouped(rule: GroupedRule, message: Mapping[str, Any]) -> bool:
    results = [evaluate_group(group, message) for group in rule.condition_groups]
    return combine(results, rule.group_logic)


def _evaluate_legacy(rule: LegacyRule, message: Mapping[str, Any]) -> bool:
    if not rule.conditions:
        return True
    results = [evaluate_condition(condition, message) for condition in rule.conditions]
    return combine(results, rule.condition_logic)


_EVALUATORS: Dict[str, Callable[[Any, Mapping[str, Any]], bool]] = {
    "grouped": _evaluate_grouped,
    "legacy": _evaluate_legacy,
}


def evaluate_rule(rule: RuleLike, message: Mapping[str, Any]) -> bool:
    """
    Check whether a rule matches a message.

    Args:
        rule: Parsed rule or raw rule mapping
        message: Message record

    Returns:
        False for disabled or unparsable rules, otherwise the combined
        result of its condition groups (grouped) or conditions (legacy).
    """
    if not isinstance(rule, (GroupedRule, LegacyRule)):
        try:
            rule = parse_rule(rule)
        except (ValidationError, TypeError, ValueError) as e:
            logger.debug(f"Unparsable rule ignored: {e}")
            return False

    if not rule.enabled:
        return False
    return _EVALUATORS[rule.shape](rule, message)


def summarize(matched: List[Rule]) -> RuleSetResult:
    actions = [action for rule in matched for action in rule.actions]
    should_process = not matched or any(not rule.block_default for rule in matched)
    return RuleSetResult(matched_rules=list(matched), actions=actions, should_process=should_process)


# =============================================================================
# RULE ENGINE
# =============================================================================

class RuleEngine:
    """
    Ordered rule set with evaluation and CRUD.

    Evaluation passes and mutations are serialized by one lock. Changes are
    written through the store (if any) after the lock is released.
    """

    def __init__(self, store: Optional[Any] = None, rules: Optional[Iterable[RuleLike]] = None):
        self._store = store
        self._lock = threading.Lock()
        self._last_id = 0
        if rules is not None:
            self._rules: List[Rule] = [parse_rule(rule) for rule in rules]
        elif store is not None:
            self._rules = store.load()
        else:
            self._rules = []

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def process(self, message: Mapping[str, Any]) -> RuleSetResult:
        """
        Evaluate every rule in stored order.

        There is no early exit: all matching rules contribute their actions.
        """
        with self._lock:
            matched = [rule for rule in self._rules if evaluate_rule(rule, message)]
        result = summarize(matched)
        if matched:
            names = ", ".join(rule.name or str(rule.id) for rule in matched)
            logger.debug(f"{len(matched)} rule(s) matched: {names} (shouldProcess={result.should_process})")
        return result

    def test_rule(self, rule: RuleLike, message: Mapping[str, Any]) -> bool:
        """
        Evaluate a rule that is not part of the rule set.

        Raises:
            pydantic.ValidationError: if the rule mapping is malformed
        """
        return evaluate_rule(parse_rule(rule), message)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def list_rules(self) -> List[Rule]:
        with self._lock:
            return list(self._rules)

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        rule_id = str(rule_id)
        with self._lock:
            return next((rule for rule in self._rules if rule.id == rule_id), None)

    def _next_id(self) -> str:
        # Millisecond timestamp, bumped past the last issued and any stored id.
        candidate = max(int(time.time() * 1000), self._last_id + 1)
        taken = {rule.id for rule in self._rules}
        while str(candidate) in taken:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    def add_rule(self, data: RuleLike) -> Rule:
        """
        Append a rule, assigning an id if it has none.

        Raises:
            pydantic.ValidationError: if the rule mapping is malformed
        """
        rule = parse_rule(data)
        with self._lock:
            if not rule.id or any(existing.id == rule.id for existing in self._rules):
                rule = rule.model_copy(update={"id": self._next_id()})
            self._rules.append(rule)
            snapshot = list(self._rules)
        logger.info(f"Added rule {rule.id} ({rule.name})")
        self._persist(snapshot)
        return rule

    def update_rule(self, rule_id: str, changes: Mapping[str, Any]) -> Optional[Rule]:
        """
        Merge changes into an existing rule; the id never changes.

        Returns:
            The updated rule, or None if no rule has this id

        Raises:
            pydantic.ValidationError: if the merged rule is malformed
        """
        rule_id = str(rule_id)
        with self._lock:
            for index, existing in enumerate(self._rules):
                if existing.id == rule_id:
                    merged = {**existing.to_dict(), **dict(changes), "id": rule_id}
                    updated = parse_rule(merged)
                    self._rules[index] = updated
                    snapshot = list(self._rules)
                    break
            else:
                return None
        logger.info(f"Updated rule {rule_id}")
        self._persist(snapshot)
        return updated

    def delete_rule(self, rule_id: str) -> bool:
        rule_id = str(rule_id)
        with self._lock:
            remaining = [rule for rule in self._rules if rule.id != rule_id]
            if len(remaining) == len(self._rules):
                return False
            self._rules = remaining
            snapshot = list(remaining)
        logger.info(f"Deleted rule {rule_id}")
        self._persist(snapshot)
        return True

    def reload(self) -> int:
        """Re-read rules from the store. Returns the number loaded."""
        if self._store is None:
            return len(self.list_rules())
        rules = self._store.load()
        with self._lock:
            self._rules = rules
        return len(rules)

    def _persist(self, rules: List[Rule]):
        if self._store is None:
            return
        if not self._store.save(rules):
            logger.warning("Rule change kept in memory but not saved")
