from __future__ import annotations
from typing import Dict, List, Optional

from chunkscribe.history import ConversationHistory


def build_messages(history: ConversationHistory, system_prompt: Optional[str] = None) -> List[Dict[str, str]]:
    """
    Single context builder shared by all chat providers.

    The newest transcript is already the last "user" entry of `history`,
    so it is not appended a second time.
    """
    if system_prompt is None:
        from chunkscribe.config import Config
        system_prompt = Config.SYSTEM_PROMPT

    return [{"role": "system", "content": system_prompt}] + history.to_messages()
