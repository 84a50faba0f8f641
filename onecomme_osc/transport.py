"""
OSC Transport

Fire-and-forget UDP sender. Payloads are JSON documents carried as a single
OSC argument: a blob ("binary" format) or an OSC string ("string" format).
Send failures are logged and reported as False, never raised.
"""

import json
import logging
import threading
from typing import Any, Callable, Optional

from pythonosc import udp_client

logger = logging.getLogger(__name__)

MESSAGE_FORMATS = ("binary", "string")
PREVIEW_LENGTH = 100


def serialize(payload: Any) -> str:
    """JSON text for a payload; strings pass through untouched."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def encode(payload: Any, message_format: str = "binary") -> Any:
    """
    Encode a payload as the single OSC argument.

    Args:
        payload: Mapping, list or string
        message_format: "binary" -> UTF-8 bytes (OSC blob), "string" -> str

    Raises:
        ValueError: for an unknown message format
    """
    if message_format not in MESSAGE_FORMATS:
        raise ValueError(f"Unknown OSC message format: {message_format!r}")
    text = serialize(payload)
    if message_format == "binary":
        return text.encode("utf-8")
    return text


class OscSender:
    """
    UDP client wrapper with lazy (re)connect.

    Usage:
        sender = OscSender("127.0.0.1", 19100)
        sender.send("/onecomme/youtube/comment", {"comment": "hi"})
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 19100,
        message_format: str = "binary",
        client_factory: Callable[[str, int], Any] = udp_client.SimpleUDPClient,
    ):
        self.host = host
        self.port = port
        self.message_format = message_format
        self._client_factory = client_factory
        self._client: Any = None
        self._lock = threading.Lock()
        self.sent_count = 0
        self.error_count = 0

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"

    def _connect(self) -> Any:
        if self._client is None:
            self._client = self._client_factory(self.host, self.port)
            logger.info(f"OSC client → {self.target}")
        return self._client

    def send(self, endpoint: str, payload: Any) -> bool:
        """
        Send a payload to an OSC address.

        Returns:
            True if the datagram was handed to the socket
        """
        try:
            data = encode(payload, self.message_format)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to encode OSC message for {endpoint}: {e}")
            with self._lock:
                self.error_count += 1
            return False

        with self._lock:
            for attempt in (1, 2):
                try:
                    self._connect().send_message(endpoint, data)
                    self.sent_count += 1
                    logger.debug(f"OSC sent: {endpoint} ({len(data)} {'bytes' if isinstance(data, bytes) else 'chars'})")
                    return True
                except Exception as e:
                    # Drop the client; the retry (or next send) reconnects.
                    self._client = None
                    if attempt == 1:
                        logger.debug(f"OSC send to {endpoint} failed, reconnecting: {e}")
                    else:
                        preview = serialize(payload)[:PREVIEW_LENGTH]
                        logger.error(f"Failed to send OSC message to {endpoint}: {e} | payload: {preview}")
                        self.error_count += 1
        return False

    def retarget(self, host: Optional[str] = None, port: Optional[int] = None, message_format: Optional[str] = None):
        """Point the sender at a new destination; reconnects on next send."""
        with self._lock:
            self.host = host or self.host
            self.port = port or self.port
            if message_format:
                self.message_format = message_format
            self._client = None
        logger.info(f"OSC target set to {self.target} ({self.message_format})")

    def for_target(self, host: str, port: int) -> "OscSender":
        """A separate sender with the same format and client factory."""
        return OscSender(host, port, self.message_format, self._client_factory)

    def stop(self):
        with self._lock:
            self._client = None
        logger.info("OSC sender stopped")

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "target": self.target,
                "format": self.message_format,
                "sent": self.sent_count,
                "errors": self.error_count,
            }
