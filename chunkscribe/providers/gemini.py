from __future__ import annotations
import os
import httpx
from typing import Any, Dict, List, Optional

from chunkscribe.errors import MissingCredentialError, SummarizationError

# Gemini Developer API (AI Studio) REST base
DEFAULT_GEMINI_BASE = "https://generativelanguage.googleapis.com"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"  # safe default; override in env


def _to_gemini_body(messages: List[Dict[str, str]]) -> Dict[str, Any]:
    """
    Gemini has no "system" or "assistant" roles in `contents`:
    system text goes to systemInstruction, assistant turns become "model".
    """
    system_parts = []
    contents = []
    for m in messages:
        role = m.get("role")
        text = m.get("content", "")
        if role == "system":
            system_parts.append({"text": text})
        elif role == "assistant":
            contents.append({"role": "model", "parts": [{"text": text}]})
        else:
            contents.append({"role": "user", "parts": [{"text": text}]})

    body: Dict[str, Any] = {"contents": contents}
    if system_parts:
        body["systemInstruction"] = {"parts": system_parts}
    return body


async def generate(
    messages: List[Dict[str, str]],
    *,
    timeout: Optional[float] = 90,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Uses the Gemini Developer API generateContent endpoint.
    """
    api_key = os.getenv("GEMINI_API_KEY", "").strip()
    if not api_key:
        raise MissingCredentialError("GEMINI_API_KEY is not set. Add it to .env to use CHAT_PROVIDER=gemini.")

    base_url = os.getenv("GEMINI_BASE_URL", DEFAULT_GEMINI_BASE).rstrip("/")
    model = os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL).strip()

    # Gemini REST: POST /v1beta/models/{model}:generateContent
    url = f"{base_url}/v1beta/models/{model}:generateContent"

    headers = {
        "Content-Type": "application/json",
        # Recommended auth header for Gemini Developer API
        "x-goog-api-key": api_key,
    }

    try:
        if client is not None:
            r = await client.post(url, json=_to_gemini_body(messages), headers=headers)
        else:
            async with httpx.AsyncClient(timeout=timeout) as c:
                r = await c.post(url, json=_to_gemini_body(messages), headers=headers)
        r.raise_for_status()
        data = r.json()
    except httpx.HTTPStatusError as e:
        raise SummarizationError(f"HTTP Error {e.response.status_code}: {e.response.text[:400]}") from e
    except httpx.HTTPError as e:
        raise SummarizationError(f"Gemini request failed: {type(e).__name__}: {e}") from e
    except ValueError as e:
        raise SummarizationError(f"Unparsable Gemini response: {e}") from e

    # Extract text
    try:
        cand0 = (data.get("candidates") or [])[0]
        parts = ((cand0.get("content") or {}).get("parts") or [])
        text = "".join([p.get("text", "") for p in parts if isinstance(p, dict)])
    except (AttributeError, IndexError) as e:
        raise SummarizationError(f"Unexpected Gemini response shape: {str(data)[:400]}") from e

    return text.strip()
