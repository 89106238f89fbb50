import logging
from typing import Dict, List, Optional

import requests

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)


def chat(
    messages: List[Dict[str, str]],
    temperature: float = 0.7,
    max_tokens: int = 256,
    timeout: Optional[float] = None,
) -> str:
    """Send one chat/completions request (OpenAI compatible) and return the text."""
    payload = {
        "model": config.LLM_MODEL,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    headers = {}
    if config.LLM_API_KEY:
        headers["Authorization"] = f"Bearer {config.LLM_API_KEY}"

    url = f"{config.LLM_BASE}/chat/completions"
    try:
        r = requests.post(
            url,
            json=payload,
            headers=headers,
            timeout=timeout or config.HTTP_TIMEOUT,
        )
        r.raise_for_status()
        reply_text = r.json()["choices"][0]["message"]["content"]
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        details = e.response.text[:300] if e.response is not None else ""
        logger.error(f"[llm] {url} returned {status}: {details}")
        raise UpstreamError(f"LLM returned {status}", status=status, details=details) from e
    except requests.RequestException as e:
        logger.error(f"[llm] request failed: {e!r}")
        raise UpstreamError(f"LLM request failed: {e}") from e
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"[llm] unexpected reply body: {e!r}")
        raise UpstreamError("LLM reply could not be parsed") from e

    return reply_text or ""
