from __future__ import annotations

from dataclasses import dataclass
from time import time
from typing import Callable, Dict, Optional, Tuple
import threading

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class CachedMessage:
    text: str
    timestamp: float
    message_id: Optional[str] = None


class MessageCache:
    """In-memory store of the latest non-command message per (channel, user).

    - Last write wins; no history is kept for a key.
    - Entries older than the TTL read as absent and are dropped on read.
    - Thread-safe using a simple lock.
    - ``start()`` runs a daemon thread that sweeps expired entries every
      ``sweep_interval_seconds`` so write-only keys do not accumulate.

    Process-local only: several workers each hold their own cache.
    """

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        sweep_interval_seconds: float = 300.0,
        clock: Callable[[], float] = time,
    ) -> None:
        self._data: Dict[Tuple[str, str], CachedMessage] = {}
        self._ttl = float(ttl_seconds)
        self._sweep_interval = float(sweep_interval_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # Lifecycle

    def start(self) -> None:
        if self.running or self._sweep_interval <= 0:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop, name="message-cache-sweeper", daemon=True
        )
        self._thread.start()
        logger.info("Message cache sweeper started", interval_seconds=self._sweep_interval)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
            logger.info("Message cache sweeper stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _sweep_loop(self) -> None:
        # Event.wait returns True as soon as stop() is called
        while not self._stop_event.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception as e:
                logger.error("Message cache sweep failed", error=str(e), exc_info=True)

    # Operations

    def store(self, channel_id: str, user_id: str, text: str, message_id: Optional[str] = None) -> None:
        entry = CachedMessage(text=text, timestamp=self._clock(), message_id=message_id)
        with self._lock:
            self._data[(channel_id, user_id)] = entry
        logger.debug("Cached message", channel_id=channel_id, user_id=user_id)

    def fetch(self, channel_id: str, user_id: str) -> Optional[CachedMessage]:
        key = (channel_id, user_id)
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                self._data.pop(key, None)
                return None
            return entry

    def evict(self, channel_id: str, user_id: str) -> None:
        with self._lock:
            removed = self._data.pop((channel_id, user_id), None)
        if removed is not None:
            logger.debug("Evicted cached message", channel_id=channel_id, user_id=user_id)

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, entry in self._data.items() if self._is_expired(entry, now)]
            for k in expired:
                self._data.pop(k, None)
        if expired:
            logger.info("Swept expired cached messages", count=len(expired))
        return len(expired)

    def stats(self) -> Dict[str, float]:
        with self._lock:
            size = len(self._data)
        return {"size": size, "ttl_minutes": self._ttl / 60.0}

    def _is_expired(self, entry: CachedMessage, now: float) -> bool:
        return now - entry.timestamp > self._ttl
