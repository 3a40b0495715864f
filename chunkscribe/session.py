"""Start/stop/read operations exposed to the HTTP layer."""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, Set

from chunkscribe.models import StateSnapshot
from chunkscribe.pipeline import CapturePipeline
from chunkscribe.state import RecordingState

logger = logging.getLogger(__name__)


class StartResult(str, Enum):
    STARTED = "started"
    ALREADY_ACTIVE = "already active"


class SessionController:
    """The only writer of `RecordingState.active`.

    `start()` hands exactly one loop task to the event loop and returns without
    waiting for a cycle; `stop()` only flips the flag, and the running loop winds
    down at its next checkpoint.
    """

    def __init__(self, pipeline: CapturePipeline, reset_history_on_start: bool = False):
        self.pipeline = pipeline
        self.state: RecordingState = pipeline.state
        self.reset_history_on_start = reset_history_on_start
        self._task: Optional[asyncio.Task] = None
        # Loop tasks not yet finished, superseded ones included
        self._live_tasks: Set[asyncio.Task] = set()

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    async def start(self) -> StartResult:
        async with self.state.lock:
            if self.state.active:
                logger.info("[SESSION] Already recording. Returning early...")
                return StartResult.ALREADY_ACTIVE

            self.state.active = True
            self.state.generation += 1
            self.state.last_error = None
            generation = self.state.generation
            if self.reset_history_on_start:
                self.pipeline.history.clear()

            previous = self._task
            self._task = asyncio.create_task(
                self.pipeline.run(generation, previous=previous),
                name=f"capture-loop-{generation}",
            )
            self._live_tasks.add(self._task)
            self._task.add_done_callback(self._live_tasks.discard)
        logger.info("[SESSION] is_recording = true, capture loop %d spawned", generation)
        return StartResult.STARTED

    async def stop(self) -> None:
        async with self.state.lock:
            self.state.active = False
        logger.info("[SESSION] is_recording set to false.")

    async def read_state(self) -> StateSnapshot:
        async with self.state.lock:
            return self.state.snapshot()

    def status(self) -> Dict[str, Any]:
        status = self.state.status()
        status["history_entries"] = len(self.pipeline.history)
        status["subscribers"] = self.pipeline.channel.subscriber_count
        return status

    async def shutdown(self) -> None:
        """Stop and cancel every loop task; used on process exit only."""
        await self.stop()
        tasks = [t for t in self._live_tasks if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
