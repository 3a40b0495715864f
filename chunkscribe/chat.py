from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, List, Optional

from chunkscribe.providers import gemini as gemini_provider
from chunkscribe.providers import ollama as ollama_provider

logger = logging.getLogger(__name__)

ProviderFn = Callable[..., Awaitable[str]]

# Provider registry
PROVIDERS: Dict[str, ProviderFn] = {
    "ollama": ollama_provider.generate,
    "gemini": gemini_provider.generate,
}


class ChatClient:
    """Dispatches role-tagged messages to the configured chat provider."""

    def __init__(self, provider_name: Optional[str] = None, timeout: Optional[float] = None):
        from chunkscribe.config import Config
        self.provider_name = (provider_name or Config.CHAT_PROVIDER).strip().lower()
        provider = PROVIDERS.get(self.provider_name)
        if provider is None:
            raise ValueError(
                f"Unknown provider '{self.provider_name}'. Valid: {', '.join(PROVIDERS.keys())}"
            )
        self._provider = provider
        self.timeout = timeout if timeout is not None else Config.service_timeout()

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """Generated text for `messages`; raises SummarizationError (or MissingCredentialError)."""
        logger.debug("[SUMMARIZE] %s: %d messages", self.provider_name, len(messages))
        return await self._provider(messages, timeout=self.timeout)
