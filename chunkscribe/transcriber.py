"""Transcriber abstraction for audio-to-text conversion."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

import httpx

from chunkscribe.errors import MissingCredentialError, TranscriptionError

logger = logging.getLogger(__name__)


class Transcriber(ABC):
    """Abstract interface for transcription providers."""

    @abstractmethod
    async def transcribe(self, audio: bytes) -> str:
        """Transcribe one encoded audio chunk.

        Args:
            audio: Encoded audio bytes (WAV from the capture subprocess)

        Returns:
            Recognized text; may be empty when nothing was said
        """
        pass

    async def _post(self, client: Optional[httpx.AsyncClient], url: str, **kwargs) -> Dict[str, Any]:
        """POST and decode JSON, mapping every transport/status/parse failure to TranscriptionError."""
        logger.debug("[TRANSCRIBE] POST %s", url)
        try:
            if client is not None:
                r = await client.post(url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as c:
                    r = await c.post(url, **kwargs)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPStatusError as e:
            raise TranscriptionError(
                f"HTTP Error {e.response.status_code} from {url}: {e.response.text[:400]}"
            ) from e
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Request to {url} failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise TranscriptionError(f"Unparsable response from {url}: {e}") from e


class DeepgramTranscriber(Transcriber):
    """Deepgram pre-recorded (REST) transcription implementation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        from chunkscribe.config import Config
        self.api_key = api_key if api_key is not None else Config.DEEPGRAM_API_KEY
        self.url = url or Config.DEEPGRAM_URL
        self.model = model or Config.DEEPGRAM_MODEL
        self.timeout = timeout if timeout is not None else Config.service_timeout()
        self._client = client

    async def transcribe(self, audio: bytes) -> str:
        if not self.api_key:
            raise MissingCredentialError("DEEPGRAM_API_KEY is not set.")

        data = await self._post(
            self._client,
            self.url,
            params={"model": self.model, "smart_format": "true", "punctuate": "true"},
            headers={
                "Authorization": f"Token {self.api_key}",
                "Content-Type": "audio/wav",
            },
            content=audio,
        )

        try:
            alternatives = data["results"]["channels"][0]["alternatives"]
            transcript = alternatives[0].get("transcript", "") if alternatives else ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise TranscriptionError(f"Unexpected Deepgram response shape: {str(data)[:400]}") from e

        return str(transcript or "").strip()


class OpenAITranscriber(Transcriber):
    """OpenAI-compatible /audio/transcriptions implementation (Whisper and friends)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        from chunkscribe.config import Config
        self.api_key = api_key if api_key is not None else Config.OPENAI_API_KEY
        self.base_url = (base_url or Config.OPENAI_BASE_URL).rstrip("/")
        self.model = model or Config.OPENAI_STT_MODEL
        self.timeout = timeout if timeout is not None else Config.service_timeout()
        self._client = client

    async def transcribe(self, audio: bytes) -> str:
        if not self.api_key:
            raise MissingCredentialError("OPENAI_API_KEY is not set.")

        data = await self._post(
            self._client,
            f"{self.base_url}/audio/transcriptions",
            headers={"Authorization": f"Bearer {self.api_key}"},
            data={"model": self.model},
            files={"file": ("chunk.wav", audio, "audio/wav")},
        )

        if not isinstance(data, dict) or "text" not in data:
            raise TranscriptionError(f"Unexpected transcription response shape: {str(data)[:400]}")
        return str(data["text"] or "").strip()


def create_transcriber(transcriber_type: str = "deepgram") -> Transcriber:
    """Factory function to create a transcriber based on type.

    Raises:
        ValueError: If transcriber_type is not supported
    """
    transcriber_type = transcriber_type.lower()

    if transcriber_type == "deepgram":
        return DeepgramTranscriber()
    elif transcriber_type == "openai":
        return OpenAITranscriber()
    else:
        raise ValueError(
            f"Unsupported transcriber type: '{transcriber_type}'. "
            f"Supported types are: 'deepgram', 'openai'"
        )
