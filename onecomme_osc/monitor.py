"""
Message Log - bounded history of routed traffic for the control panel

Keeps the last N incoming comments and outgoing OSC messages in one ring
buffer, newest last, with running totals that survive eviction.
"""

import logging
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

INCOMING = "incoming"
OUTGOING = "outgoing"

DEFAULT_MAX_MESSAGES = 100


@dataclass
class LoggedMessage:
    """
    One entry in the message log.

    Attributes:
        id: Monotonic sequence number
        timestamp: Unix time of recording
        direction: "incoming" or "outgoing"
        service: Source service (incoming) or platform of the payload (outgoing)
        endpoint: OSC address (outgoing only)
        data: Raw comment data (incoming) or sent payload (outgoing)
        processed: Incoming: normalized successfully. Outgoing: sent successfully
    """
    id: int
    timestamp: float
    direction: str
    data: Any
    service: Optional[str] = None
    endpoint: Optional[str] = None
    processed: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        entry = {
            "id": self.id,
            "timestamp": self.timestamp,
            "direction": self.direction,
            "data": self.data,
        }
        if self.direction == INCOMING:
            entry["service"] = self.service
            entry["processed"] = self.processed
        else:
            entry["endpoint"] = self.endpoint
            entry["success"] = self.processed
        entry.update(self.extra)
        return entry


class MessageLog:
    """
    Thread-safe ring buffer of LoggedMessage entries.

    Usage:
        log = MessageLog(max_messages=100)
        log.record_incoming("youtube", data, processed=True)
        log.record_outgoing("/onecomme/youtube/comment", payload, success=True)

        for entry in log.get_messages(direction="outgoing", limit=20):
            print(entry.endpoint, entry.processed)
    """

    def __init__(self, max_messages: int = DEFAULT_MAX_MESSAGES):
        self._messages: Deque[LoggedMessage] = deque(maxlen=max_messages)
        self._lock = threading.Lock()
        self._next_id = 1
        self._totals: Counter = Counter()
        self._endpoint_counts: Counter = Counter()
        self._service_counts: Counter = Counter()
        self._recent_timestamps: Deque[float] = deque()
        self._rate_window_sec = 2.0

    @property
    def max_messages(self) -> int:
        return self._messages.maxlen or DEFAULT_MAX_MESSAGES

    def resize(self, max_messages: int):
        """Change capacity, keeping the newest entries."""
        with self._lock:
            if max_messages == self._messages.maxlen:
                return
            self._messages = deque(self._messages, maxlen=max_messages)
        logger.info(f"Message log capacity set to {max_messages}")

    def record_incoming(self, service: Optional[str], data: Any, processed: bool = False, **extra) -> LoggedMessage:
        return self._record(INCOMING, data, service=service, processed=processed, extra=extra)

    def record_outgoing(self, endpoint: str, payload: Any, success: bool = True, **extra) -> LoggedMessage:
        return self._record(OUTGOING, payload, endpoint=endpoint, processed=success, extra=extra)

    def _record(self, direction: str, data: Any, **kwargs) -> LoggedMessage:
        now = time.time()
        with self._lock:
            entry = LoggedMessage(id=self._next_id, timestamp=now, direction=direction, data=data, **kwargs)
            self._next_id += 1
            self._messages.append(entry)

            self._totals[direction] += 1
            if direction == OUTGOING:
                self._endpoint_counts[entry.endpoint] += 1
                if not entry.processed:
                    self._totals["errors"] += 1
            elif entry.service:
                self._service_counts[entry.service] += 1

            self._recent_timestamps.append(now)
            cutoff = now - self._rate_window_sec
            while self._recent_timestamps and self._recent_timestamps[0] < cutoff:
                self._recent_timestamps.popleft()
        return entry

    def get_messages(self, direction: Optional[str] = None, limit: Optional[int] = None) -> List[LoggedMessage]:
        """
        Logged messages, oldest first.

        Args:
            direction: Only "incoming" or "outgoing" entries if given
            limit: Keep only the newest N entries
        """
        with self._lock:
            items = list(self._messages)
        if direction:
            items = [m for m in items if m.direction == direction]
        if limit is not None and limit >= 0:
            items = items[-limit:] if limit else []
        return items

    def get_stats(self) -> Dict[str, Any]:
        """Get current statistics snapshot."""
        with self._lock:
            return {
                "stored": len(self._messages),
                "capacity": self._messages.maxlen,
                "incoming": self._totals[INCOMING],
                "outgoing": self._totals[OUTGOING],
                "errors": self._totals["errors"],
                "rate": len(self._recent_timestamps) / self._rate_window_sec,
                "endpoints": dict(self._endpoint_counts),
                "services": dict(self._service_counts),
            }

    def clear(self):
        """Clear all logged messages and counters."""
        with self._lock:
            self._messages.clear()
            self._totals.clear()
            self._endpoint_counts.clear()
            self._service_counts.clear()
            self._recent_timestamps.clear()
        logger.info("Message log cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
