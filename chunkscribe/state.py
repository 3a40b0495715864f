import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from chunkscribe.models import StateSnapshot


@dataclass
class RecordingState:
    """Shared recording flag and last results.

    One instance per process, handed to both the HTTP layer and the capture loop.
    `lock` guards every read-modify-write of `active`.
    """
    active: bool = False
    last_transcript: str = ""
    last_response: str = ""
    generation: int = 0
    cycles: int = 0
    last_error: Optional[str] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def is_current(self, generation: int) -> bool:
        """True while the loop started as `generation` still owns the session."""
        return self.active and self.generation == generation

    async def publish_results(self, transcript: str, response: str) -> None:
        async with self.lock:
            self.last_transcript = transcript
            self.last_response = response
            self.cycles += 1

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(transcript=self.last_transcript, response=self.last_response)

    def status(self) -> Dict[str, Any]:
        return {
            "active": self.active,
            "cycles": self.cycles,
            "last_error": self.last_error,
        }
