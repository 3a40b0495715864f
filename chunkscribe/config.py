"""Configuration management for service endpoints, credentials and capture settings."""

import os
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

# config.py is in chunkscribe/, .env is in project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path, override=True)


DEFAULT_SYSTEM_PROMPT = """You are a live note-taker listening to a conversation in short audio chunks.
For each new chunk of transcript, write a brief running summary of what is being discussed.
- Keep it to 1-3 sentences.
- Mention new topics, decisions or questions as they come up.
- If the chunk is empty or unintelligible, say so in a few words.
Do not repeat earlier summaries word for word."""


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration from environment variables."""

    # HTTP server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _env_int("PORT", 8080)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Capture loop
    CHUNK_SECONDS: int = _env_int("CHUNK_SECONDS", 5)
    HISTORY_MAX_ENTRIES: int = _env_int("HISTORY_MAX_ENTRIES", 40)
    RESET_HISTORY_ON_START: bool = _env_bool("RESET_HISTORY_ON_START", False)
    CAPTURE_COMMAND: str = os.getenv("CAPTURE_COMMAND", "arecord -q -d {seconds} -f cd -t wav -")
    CAPTURE_SAVE_PATH: str = os.getenv("CAPTURE_SAVE_PATH", "")

    # Durable log + live fan-out
    LOG_PATH: str = os.getenv("LOG_PATH", "transcript_log.jsonl")
    SUBSCRIBER_BUFFER: int = _env_int("SUBSCRIBER_BUFFER", 64)
    SSE_HEARTBEAT_SECONDS: float = _env_float("SSE_HEARTBEAT_SECONDS", 15.0)

    # Per-call timeout for transcription and chat requests (0 = wait forever)
    SERVICE_TIMEOUT_SECONDS: float = _env_float("SERVICE_TIMEOUT_SECONDS", 90.0)

    # Transcription settings
    TRANSCRIBER_TYPE: str = os.getenv("TRANSCRIBER_TYPE", "deepgram")  # "deepgram" or "openai"
    DEEPGRAM_API_KEY: Optional[str] = os.getenv("DEEPGRAM_API_KEY")
    DEEPGRAM_URL: str = os.getenv("DEEPGRAM_URL", "https://api.deepgram.com/v1/listen")
    DEEPGRAM_MODEL: str = os.getenv("DEEPGRAM_MODEL", "nova-2")
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    OPENAI_STT_MODEL: str = os.getenv("OPENAI_STT_MODEL", "whisper-1")

    # Chat settings
    CHAT_PROVIDER: str = os.getenv("CHAT_PROVIDER", "ollama")  # "ollama" or "gemini"
    OLLAMA_URL: str = os.getenv("OLLAMA_URL", "http://127.0.0.1:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "gemma3:4b")
    GEMINI_API_KEY: Optional[str] = os.getenv("GEMINI_API_KEY")
    GEMINI_BASE_URL: str = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    SYSTEM_PROMPT: str = os.getenv("SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT)

    @classmethod
    def service_timeout(cls) -> Optional[float]:
        """Timeout for one external call, or None when disabled."""
        if cls.SERVICE_TIMEOUT_SECONDS <= 0:
            return None
        return cls.SERVICE_TIMEOUT_SECONDS

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration and return list of missing settings.

        Nothing here is fatal: every external call re-checks its own credential.
        """
        missing = []

        if cls.TRANSCRIBER_TYPE == "deepgram" and not cls.DEEPGRAM_API_KEY:
            missing.append("DEEPGRAM_API_KEY (required when TRANSCRIBER_TYPE=deepgram)")
        if cls.TRANSCRIBER_TYPE == "openai" and not cls.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY (required when TRANSCRIBER_TYPE=openai)")
        if cls.CHAT_PROVIDER == "gemini" and not cls.GEMINI_API_KEY:
            missing.append("GEMINI_API_KEY (required when CHAT_PROVIDER=gemini)")

        return missing
