from __future__ import annotations
import os
import httpx
from typing import Dict, List, Optional

from chunkscribe.errors import SummarizationError

DEFAULT_LOCAL_URL = "http://127.0.0.1:11434"
DEFAULT_LOCAL_MODEL = "gemma3:4b"


async def generate(
    messages: List[Dict[str, str]],
    *,
    timeout: Optional[float] = 90,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    base_url = os.getenv("OLLAMA_URL", DEFAULT_LOCAL_URL).rstrip("/")
    model = os.getenv("OLLAMA_MODEL", DEFAULT_LOCAL_MODEL)

    # Ollama /api/chat takes system/user/assistant roles as-is
    payload = {
        "model": model,
        "messages": messages,
        "stream": False,
    }

    url = f"{base_url}/api/chat"
    try:
        if client is not None:
            r = await client.post(url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=timeout) as c:
                r = await c.post(url, json=payload)
        r.raise_for_status()
        data = r.json()
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 404:
            raise SummarizationError(
                f"Model '{model}' not found. Check OLLAMA_MODEL or run: ollama pull {model}"
            ) from e
        raise SummarizationError(f"HTTP Error {e.response.status_code}: {e.response.text[:400]}") from e
    except httpx.HTTPError as e:
        raise SummarizationError(f"Cannot reach Ollama at {base_url}: {type(e).__name__}: {e}") from e
    except ValueError as e:
        raise SummarizationError(f"Unparsable Ollama response: {e}") from e

    message = data.get("message") if isinstance(data, dict) else None
    if not isinstance(message, dict) or "content" not in message:
        raise SummarizationError(f"Unexpected Ollama response shape: {str(data)[:400]}")
    return str(message.get("content") or "").strip()
