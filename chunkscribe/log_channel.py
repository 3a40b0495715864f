"""Durable append-only log plus live fan-out to subscribers."""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set, Union

from chunkscribe.errors import LogWriteError
from chunkscribe.models import LogRecord

logger = logging.getLogger(__name__)

DEFAULT_SUBSCRIBER_BUFFER = 64


@dataclass(frozen=True)
class Lagged:
    """Delivered in place of records a slow subscriber could not buffer."""
    missed: int


class Subscription:
    """One live consumer of the fan-out stream.

    Holds a bounded buffer of serialized lines. When the buffer is full new lines
    are dropped and counted; the count is delivered as a `Lagged` marker ahead of
    the next line that fits.
    """

    def __init__(self, channel: "LogChannel", maxsize: int):
        self._channel = channel
        # One extra slot so a Lagged marker always fits next to a line
        self._queue: "asyncio.Queue[Union[str, Lagged]]" = asyncio.Queue(maxsize=maxsize + 1)
        self._capacity = maxsize
        self._missed = 0
        self.closed = False

    def offer(self, line: str) -> None:
        """Non-blocking delivery from the publisher."""
        if self.closed:
            return
        if self._missed:
            if self._queue.qsize() + 2 > self._capacity + 1:
                self._missed += 1
                return
            self._queue.put_nowait(Lagged(self._missed))
            self._missed = 0
            self._queue.put_nowait(line)
            return
        if self._queue.qsize() >= self._capacity:
            self._missed += 1
            return
        self._queue.put_nowait(line)

    async def get(self, timeout: Optional[float] = None) -> Union[str, Lagged]:
        """Next line or Lagged marker; raises asyncio.TimeoutError after `timeout`."""
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._channel._unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class LogChannel:
    """Append-only JSON-lines log file with multicast of every appended record."""

    def __init__(self, path: Union[str, Path], subscriber_buffer: int = DEFAULT_SUBSCRIBER_BUFFER):
        if subscriber_buffer < 1:
            raise ValueError(f"subscriber_buffer must be >= 1, got {subscriber_buffer}")
        self.path = Path(path)
        self.subscriber_buffer = subscriber_buffer
        self._subscribers: Set[Subscription] = set()
        # Serializes append+publish so broadcast order matches file order
        self._write_lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def append(self, record: LogRecord) -> str:
        """Write one record as a line and fsync it. Returns the serialized line."""
        line = record.to_line()
        try:
            await asyncio.to_thread(self._write_line, line)
        except OSError as e:
            raise LogWriteError(f"Failed to append to {self.path}: {e}") from e
        return line

    def _write_line(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
            f.flush()
            os.fsync(f.fileno())

    def publish(self, line: str) -> None:
        """Fire-and-forget delivery to every current subscriber."""
        for sub in list(self._subscribers):
            sub.offer(line)

    async def record(self, record: LogRecord) -> None:
        """Append durably, then broadcast. Nothing is broadcast if the append fails."""
        async with self._write_lock:
            line = await self.append(record)
            self.publish(line)
        logger.debug("[LOG] %s record appended (%d subscribers)", record.source, len(self._subscribers))

    def subscribe(self) -> Subscription:
        """Register a consumer for records published from now on (no replay)."""
        sub = Subscription(self, self.subscriber_buffer)
        self._subscribers.add(sub)
        logger.info("[LIVE] Subscriber connected (%d total)", len(self._subscribers))
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.discard(sub)
            logger.info("[LIVE] Subscriber disconnected (%d total)", len(self._subscribers))

    def read_all(self) -> str:
        """Full log contents; empty string if nothing was logged yet."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def read_records(self) -> List[LogRecord]:
        return [LogRecord.from_line(line) for line in self.read_all().splitlines() if line.strip()]
