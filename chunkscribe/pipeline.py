"""Capture → transcribe → summarize → log cycle and the loop that repeats it."""

import asyncio
import logging
from typing import Any, Optional

from chunkscribe.history import ConversationHistory
from chunkscribe.log_channel import LogChannel
from chunkscribe.models import LogRecord
from chunkscribe.errors import PipelineError
from chunkscribe.prompt import build_messages
from chunkscribe.state import RecordingState

logger = logging.getLogger(__name__)


def _preview(text: str, limit: int = 50) -> str:
    return f"{text[:limit]}{'...' if len(text) > limit else ''}"


class CapturePipeline:
    """Runs capture cycles for one process-wide session.

    Collaborators are duck-typed:
      capture.capture(seconds) -> bytes
      transcriber.transcribe(audio) -> str
      chat.complete(messages) -> str
    """

    def __init__(
        self,
        state: RecordingState,
        history: ConversationHistory,
        channel: LogChannel,
        capture: Any,
        transcriber: Any,
        chat: Any,
        chunk_seconds: int = 5,
        system_prompt: Optional[str] = None,
    ):
        self.state = state
        self.history = history
        self.channel = channel
        self.capture = capture
        self.transcriber = transcriber
        self.chat = chat
        self.chunk_seconds = chunk_seconds
        self.system_prompt = system_prompt

    async def run_cycle(self) -> None:
        """One capture → transcribe → summarize → log → publish → update iteration.

        Any stage failure propagates as a PipelineError subclass. Side effects happen
        strictly in order: both records are durable and broadcast before the state
        update.
        """
        audio = await self.capture.capture(self.chunk_seconds)

        transcript = await self.transcriber.transcribe(audio)
        transcript_record = LogRecord(source="capture", text=transcript)
        logger.info("[TRANSCRIBE] %s", _preview(transcript) or "(empty)")

        self.history.push("user", transcript)
        messages = build_messages(self.history, self.system_prompt)

        response = await self.chat.complete(messages)
        self.history.push("assistant", response)
        response_record = LogRecord(source="assistant", text=response)
        logger.info("[SUMMARIZE] %s", _preview(response, 80))

        await self.channel.record(transcript_record)
        await self.channel.record(response_record)

        await self.state.publish_results(transcript, response)

    async def run(self, generation: int, previous: Optional["asyncio.Task[None]"] = None) -> None:
        """Repeat cycles while `generation` owns the session.

        Waits for the previous session's loop first so cycles never overlap. A failed
        cycle ends the loop without clearing `active`; only stop() does that.
        """
        if previous is not None and not previous.done():
            logger.info("[LOOP] Waiting for previous session to finish its cycle...")
            await asyncio.wait([previous])
        previous = None

        logger.info("[LOOP] Session %d running (chunk=%ss)", generation, self.chunk_seconds)
        while self.state.is_current(generation):
            try:
                await self.run_cycle()
            except PipelineError as e:
                self._record_error(generation, f"{e.stage}: {e}")
                logger.error("[LOOP] Cycle failed at %s stage, ending session %d: %s", e.stage, generation, e)
                break
            except Exception as e:
                self._record_error(generation, f"unexpected: {type(e).__name__}: {e}")
                logger.exception("[LOOP] Unexpected error, ending session %d", generation)
                break

            if not self.state.is_current(generation):
                break

        logger.info("[LOOP] Session %d stopped after %d total cycles", generation, self.state.cycles)

    def _record_error(self, generation: int, message: str) -> None:
        # Only the current session owns last_error
        if self.state.generation == generation:
            self.state.last_error = message
