"""Bounded conversation history used as chat context."""

from typing import Dict, List

from chunkscribe.models import ChatMessage

# 20 exchanges of one transcript + one response
MAX_HISTORY_ENTRIES = 40

VALID_ROLES = ("user", "assistant")


class ConversationHistory:
    """Ordered (role, text) entries, trimmed from the front once over the cap.

    "user" entries are transcripts, "assistant" entries are chat responses.
    Only the capture loop writes to it; cycles are serialized, so no lock.
    """

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._entries: List[ChatMessage] = []

    def push(self, role: str, text: str) -> None:
        """Append an entry, then drop the oldest entries until the cap holds.

        Args:
            role: "user" or "assistant"
            text: Entry text (may be empty)
        """
        if role not in VALID_ROLES:
            raise ValueError(f"Unsupported role: '{role}'. Supported roles are: 'user', 'assistant'")
        self._entries.append(ChatMessage(role=role, text=text))
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            del self._entries[:overflow]

    def entries(self) -> List[ChatMessage]:
        return list(self._entries)

    def to_messages(self) -> List[Dict[str, str]]:
        return [entry.to_dict() for entry in self._entries]

    def clear(self) -> None:
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)
