from __future__ import annotations

import asyncio
import logging
import shlex
from pathlib import Path
from typing import List, Optional, Sequence, Union

from chunkscribe.errors import CaptureError

logger = logging.getLogger(__name__)

DEFAULT_CAPTURE_COMMAND = "arecord -q -d {seconds} -f cd -t wav -"

# Extra time allowed for the recorder to start up and flush after `seconds`
TEARDOWN_GRACE_S = 10.0


class AudioCapture:
    """Records one fixed-length chunk by running a recorder subprocess.

    The command writes encoded audio to stdout; `{seconds}` in any argument is
    replaced by the requested duration.
    """

    def __init__(
        self,
        command: Union[str, Sequence[str], None] = None,
        save_path: Optional[str] = None,
    ) -> None:
        if command is None:
            from chunkscribe.config import Config
            command = Config.CAPTURE_COMMAND
            if save_path is None:
                save_path = Config.CAPTURE_SAVE_PATH
        self._command = command
        self._save_path = Path(save_path) if save_path else None

    def _build_command(self, seconds: int) -> List[str]:
        if isinstance(self._command, str):
            cmd = shlex.split(self._command)
        else:
            cmd = list(self._command)
        if not cmd:
            raise CaptureError("CAPTURE_COMMAND is empty")
        return [part.replace("{seconds}", str(int(seconds))) for part in cmd]

    async def capture(self, seconds: int) -> bytes:
        """Record `seconds` of audio and return the encoded bytes."""
        cmd = self._build_command(seconds)
        logger.info("[CAPTURE] Recording %ss with '%s'...", seconds, cmd[0])

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CaptureError(f"CAPTURE_SPAWN_FAILED: {type(e).__name__}: {e} | exe={cmd[0]}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=float(seconds) + TEARDOWN_GRACE_S
            )
        except asyncio.TimeoutError as e:
            await self._reap(proc)
            raise CaptureError(f"CAPTURE_TIMEOUT: recorder still running after {seconds}s + {TEARDOWN_GRACE_S}s") from e
        except OSError as e:
            await self._reap(proc)
            raise CaptureError(f"CAPTURE_READ_FAILED: {type(e).__name__}: {e}") from e
        except BaseException:
            # Cancelled mid-chunk; the recorder must not outlive the capture
            await self._reap(proc)
            raise

        if proc.returncode != 0:
            err = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise CaptureError(f"CAPTURE_EXIT: exit_code={proc.returncode} {err[-400:]}".strip())
        if not stdout:
            raise CaptureError("CAPTURE_EMPTY: recorder produced no audio")

        size_in_kb = len(stdout) / 1024.0
        logger.info("[CAPTURE] Chunk size: %.2f KB (%d bytes)", size_in_kb, len(stdout))

        if self._save_path is not None:
            self._save_chunk(stdout)
        return stdout

    @staticmethod
    async def _reap(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()

    def _save_chunk(self, audio: bytes) -> None:
        # Best-effort copy of the latest chunk
        try:
            self._save_path.write_bytes(audio)
        except OSError as e:
            logger.warning("[CAPTURE] Could not save chunk to %s: %s", self._save_path, e)
