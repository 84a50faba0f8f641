"""
Comment Router

Normalizes raw OneComme comments, runs them through the rule engine and
sends the results over OSC:

    comment ─→ normalize ─→ RuleEngine.process ─┬─→ each action: project ─→ endpoint
                                               └─→ shouldProcess: full message ─→ default endpoint
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from .config import ConfigManager
from .engine import RuleEngine
from .model import ROUTE_TO_ENDPOINT, Action, RuleSetResult
from .monitor import MessageLog
from .platforms import COMMON_ENDPOINT, NormalizedMessage, normalize
from .projection import project
from .transport import OscSender

logger = logging.getLogger(__name__)

TEST_ENDPOINTS = (
    "/onecomme/test",
    "/onecomme/connection-test",
    "/test/osc-router",
    "/onecomme/test/ping",
)


@dataclass
class RouteOutcome:
    """What happened to one comment."""
    message: NormalizedMessage
    result: RuleSetResult
    sent: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class CommentRouter:
    """
    Ties normalization, rules, transport and the message log together.

    Usage:
        router = CommentRouter(engine, sender, config_manager, MessageLog())
        router.handle_comments(batch)
    """

    def __init__(
        self,
        engine: RuleEngine,
        sender: OscSender,
        config: ConfigManager,
        log: Optional[MessageLog] = None,
    ):
        self.engine = engine
        self.sender = sender
        self.config = config
        self.log = log or MessageLog(config.config.max_log_messages)

    def handle_comments(self, comments: Iterable[Mapping[str, Any]]) -> int:
        """
        Route a batch, one comment at a time.

        A failing comment is logged and skipped; the rest of the batch
        still goes out.

        Returns:
            Number of comments that were normalized and routed
        """
        routed = 0
        for comment in comments:
            service = comment.get("service") if isinstance(comment, Mapping) else None
            try:
                if self.route(comment) is not None:
                    routed += 1
            except Exception as e:
                logger.error(f"Failed to process comment from {service}: {e}")
        return routed

    def route(self, comment: Mapping[str, Any]) -> Optional[RouteOutcome]:
        """
        Route one raw comment.

        Returns:
            RouteOutcome, or None if the comment could not be normalized
        """
        message = normalize(comment)
        service = comment.get("service") if isinstance(comment, Mapping) else None
        data = comment.get("data") if isinstance(comment, Mapping) else None
        self.log.record_incoming(service, data, processed=message is not None)
        if message is None:
            return None

        result = self.engine.process(message.payload)
        outcome = RouteOutcome(message=message, result=result)

        for action in result.actions:
            self._dispatch(action, message, outcome)

        if result.should_process and self.config.config.enable_default_endpoints:
            self._send(message.endpoint, message.payload, outcome)
            self._send(COMMON_ENDPOINT, message.as_post(), outcome)
        elif not result.should_process:
            logger.debug(f"Default routing blocked for {message.type}")

        return outcome

    def _dispatch(self, action: Action, message: NormalizedMessage, outcome: RouteOutcome):
        if action.type != ROUTE_TO_ENDPOINT:
            logger.debug(f"Skipping unsupported action type: {action.type}")
            return
        if not action.endpoint.startswith("/"):
            logger.warning(f"Skipping action with invalid OSC endpoint: {action.endpoint!r}")
            return
        self._send(action.endpoint, project(message.payload, action.fields), outcome)

    def _send(self, endpoint: str, payload: Any, outcome: RouteOutcome):
        success = self.sender.send(endpoint, payload)
        self.log.record_outgoing(endpoint, payload, success=success)
        (outcome.sent if success else outcome.failed).append(endpoint)

    def send_test_messages(self, host: Optional[str] = None, port: Optional[int] = None) -> dict:
        """
        Ping the test endpoints on the given (or configured) target.

        Returns:
            {"target", "endpoints", "timestamp", "results"}
        """
        config = self.config.config
        host = host or config.osc_host
        port = port or config.osc_port
        sender = self.sender
        if (host, port) != (sender.host, sender.port):
            sender = sender.for_target(host, port)

        timestamp = datetime.now(timezone.utc).isoformat()
        payload = {
            "type": "test",
            "message": "OSC connection test",
            "timestamp": timestamp,
            "source": "onecomme-osc-router",
        }
        results = {}
        for endpoint in TEST_ENDPOINTS:
            results[endpoint] = sender.send(endpoint, payload)
            self.log.record_outgoing(endpoint, payload, success=results[endpoint], test=True)

        if sender is not self.sender:
            sender.stop()
        logger.info(f"Sent {sum(results.values())}/{len(TEST_ENDPOINTS)} test messages to {host}:{port}")
        return {
            "target": f"{host}:{port}",
            "endpoints": list(TEST_ENDPOINTS),
            "timestamp": timestamp,
            "results": results,
        }
