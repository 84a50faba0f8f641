"""
Control API

JSON-over-HTTP interface used by the control panel to manage rules and
settings, feed comments in, and inspect the message log. Every response
carries {"success": bool}.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from aiohttp import web

from .config import CONFIG_VERSION, ConfigManager
from .engine import RuleEngine
from .monitor import MessageLog
from .router import CommentRouter
from .schemas import OPERATOR_LABELS, RULE_TEMPLATES, schemas_to_dict, validate_condition

logger = logging.getLogger(__name__)


def _ok(status: int = 200, **data: Any) -> web.Response:
    return web.json_response({"success": True, **data}, status=status, dumps=_dumps)


def _error(message: str, status: int = 400) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status, dumps=_dumps)


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


async def _read_json(request: web.Request, default: Any = None) -> Any:
    """Request body as JSON; an empty body gives default."""
    if not request.can_read_body:
        return default
    text = await request.text()
    if not text.strip():
        return default
    return json.loads(text)


class ControlServer:
    """
    aiohttp application around a CommentRouter.

    Usage:
        server = ControlServer(router)
        await server.start()
        ...
        await server.stop()
    """

    def __init__(self, router: CommentRouter):
        self.router = router
        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    @property
    def engine(self) -> RuleEngine:
        return self.router.engine

    @property
    def config(self) -> ConfigManager:
        return self.router.config

    @property
    def log(self) -> MessageLog:
        return self.router.log

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/rules", self.list_rules)
        app.router.add_post("/api/rules", self.add_rule)
        app.router.add_post("/api/rules/test", self.test_rule)
        app.router.add_post("/api/rules/process", self.process_message)
        app.router.add_post("/api/rules/validate", self.validate_condition)
        app.router.add_put("/api/rules/{rule_id}", self.update_rule)
        app.router.add_delete("/api/rules/{rule_id}", self.delete_rule)
        app.router.add_get("/api/templates", self.templates)
        app.router.add_get("/api/schemas", self.schemas)
        app.router.add_get("/api/config", self.get_config)
        app.router.add_put("/api/config", self.update_config)
        app.router.add_post("/api/osc/test", self.osc_test)
        app.router.add_post("/api/comments", self.ingest_comments)
        app.router.add_get("/api/logs", self.get_logs)
        app.router.add_delete("/api/logs", self.clear_logs)
        app.router.add_get("/api/export", self.export)
        self.app = app
        return app

    async def start(self, host: Optional[str] = None, port: Optional[int] = None):
        host = host or self.config.config.web_host
        port = port or self.config.config.web_port
        self.runner = web.AppRunner(self.create_app())
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, host, port)
        await self.site.start()
        logger.info(f"Control API listening on http://{host}:{port}")

    async def stop(self):
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            self.site = None
        self.router.sender.stop()
        logger.info("Control API stopped")

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    async def _in_executor(self, func, *args):
        return await asyncio.get_running_loop().run_in_executor(None, func, *args)

    async def list_rules(self, request: web.Request) -> web.Response:
        return _ok(rules=[rule.to_dict() for rule in self.engine.list_rules()])

    async def add_rule(self, request: web.Request) -> web.Response:
        try:
            body = await _read_json(request)
            rule = await self._in_executor(self.engine.add_rule, body)
        except (TypeError, ValueError) as e:
            return _error(f"Invalid rule: {e}")
        return _ok(rule=rule.to_dict())

    async def update_rule(self, request: web.Request) -> web.Response:
        rule_id = request.match_info["rule_id"]
        try:
            body = await _read_json(request, {})
            if not isinstance(body, dict):
                raise TypeError("rule changes must be an object")
            rule = await self._in_executor(self.engine.update_rule, rule_id, body)
        except (TypeError, ValueError) as e:
            return _error(f"Invalid rule: {e}")
        if rule is None:
            return _error(f"Rule not found: {rule_id}", status=404)
        return _ok(rule=rule.to_dict())

    async def delete_rule(self, request: web.Request) -> web.Response:
        rule_id = request.match_info["rule_id"]
        if not await self._in_executor(self.engine.delete_rule, rule_id):
            return _error(f"Rule not found: {rule_id}", status=404)
        return _ok()

    async def validate_condition(self, request: web.Request) -> web.Response:
        """Check one condition against the field catalog of its source."""
        try:
            body = await _read_json(request, {})
            if not isinstance(body, dict):
                raise TypeError("expected {source, field, operator, value}")
            valid, error = validate_condition(
                body.get("source"),
                body.get("messageType"),
                body.get("field"),
                body.get("operator"),
                body.get("value"),
            )
        except (TypeError, ValueError) as e:
            return _error(f"Invalid condition: {e}")
        return _ok(valid=valid, error=error)

    async def test_rule(self, request: web.Request) -> web.Response:
        try:
            body = await _read_json(request, {})
            if not isinstance(body, dict) or "rule" not in body:
                raise TypeError("expected {rule, testMessage}")
            message = body.get("testMessage") or {}
            if not isinstance(message, dict):
                raise TypeError("testMessage must be an object")
            matches = self.engine.test_rule(body["rule"], message)
        except (TypeError, ValueError) as e:
            return _error(f"Invalid test request: {e}")
        return _ok(matches=matches)

    async def process_message(self, request: web.Request) -> web.Response:
        try:
            body = await _read_json(request, {})
            message = body.get("message") if isinstance(body, dict) else None
            if not isinstance(message, dict):
                raise TypeError("expected {message: {...}}")
        except (TypeError, ValueError) as e:
            return _error(f"Invalid message: {e}")
        return _ok(**self.engine.process(message).to_dict())

    async def templates(self, request: web.Request) -> web.Response:
        return _ok(templates=RULE_TEMPLATES)

    async def schemas(self, request: web.Request) -> web.Response:
        return _ok(schemas=schemas_to_dict(), operators=OPERATOR_LABELS)

    # -------------------------------------------------------------------------
    # Config
    # -------------------------------------------------------------------------

    async def get_config(self, request: web.Request) -> web.Response:
        return _ok(config=self.config.config.to_dict())

    async def update_config(self, request: web.Request) -> web.Response:
        try:
            body = await _read_json(request, {})
            if not isinstance(body, dict):
                raise TypeError("config must be an object")
            config = self.config.update(**body)
        except (TypeError, ValueError) as e:
            return _error(f"Invalid configuration: {e}")

        saved = self.config.save()
        self.router.sender.retarget(config.osc_host, config.osc_port, config.osc_message_format)
        self.log.resize(config.max_log_messages)
        return _ok(config=self.config.config.to_dict(), saved=saved)

    # -------------------------------------------------------------------------
    # OSC and comments
    # -------------------------------------------------------------------------

    async def osc_test(self, request: web.Request) -> web.Response:
        try:
            body = await _read_json(request, {}) or {}
            host = body.get("host") if isinstance(body, dict) else None
            port = int(body["port"]) if isinstance(body, dict) and body.get("port") else None
        except (TypeError, ValueError) as e:
            return _error(f"Invalid test target: {e}")
        result = await self._in_executor(self.router.send_test_messages, host, port)
        return _ok(**result)

    async def ingest_comments(self, request: web.Request) -> web.Response:
        try:
            body = await _read_json(request, {})
            comments = body.get("comments") if isinstance(body, dict) else None
            if not isinstance(comments, list):
                raise TypeError("expected {comments: [...]}")
        except (TypeError, ValueError) as e:
            return _error(f"Invalid comments: {e}")
        processed = await self._in_executor(self.router.handle_comments, comments)
        return _ok(processed=processed, received=len(comments))

    # -------------------------------------------------------------------------
    # Logs and export
    # -------------------------------------------------------------------------

    async def get_logs(self, request: web.Request) -> web.Response:
        direction = request.query.get("direction") or None
        try:
            limit = int(request.query["limit"]) if "limit" in request.query else None
        except ValueError:
            return _error("limit must be an integer")
        messages = self.log.get_messages(direction=direction, limit=limit)
        stats: Dict[str, Any] = self.log.get_stats()
        stats["osc"] = self.router.sender.get_stats()
        return _ok(messages=[m.to_dict() for m in messages], stats=stats)

    async def clear_logs(self, request: web.Request) -> web.Response:
        self.log.clear()
        return _ok()

    async def export(self, request: web.Request) -> web.Response:
        rules = self.engine.list_rules()
        return _ok(
            configuration=self.config.config.to_dict(),
            rules=[rule.to_dict() for rule in rules],
            exportInfo={
                "exportedAt": datetime.now(timezone.utc).isoformat(),
                "version": CONFIG_VERSION,
                "ruleCount": len(rules),
            },
        )
