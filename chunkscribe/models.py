"""Data models for chunkscribe."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

Role = Literal["user", "assistant"]
Source = Literal["capture", "assistant"]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ChatMessage:
    """One entry of the conversation history."""
    role: Role
    text: str

    def to_dict(self):
        return {
            "role": self.role,
            "content": self.text
        }


@dataclass(frozen=True)
class LogRecord:
    """A single line of the durable log: a transcript or an assistant response."""
    source: Source  # "capture" = transcript, "assistant" = chat response
    text: str
    timestamp: str = field(default_factory=utc_now_iso)  # ISO-8601, timezone-aware

    def to_dict(self):
        return {
            "timestamp": self.timestamp,
            "source": self.source,
            "text": self.text
        }

    def to_line(self) -> str:
        """Serialize as one JSON line (no trailing newline)."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_line(cls, line: str) -> "LogRecord":
        data = json.loads(line)
        return cls(
            source=data["source"],
            text=data["text"],
            timestamp=data["timestamp"]
        )


@dataclass(frozen=True)
class StateSnapshot:
    """Last completed cycle outputs as seen by readers."""
    transcript: str
    response: str

    def to_dict(self):
        return {
            "transcript": self.transcript,
            "response": self.response
        }
