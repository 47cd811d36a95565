"""
LiteLLM chat completion helper used by the theme brainstorming assistant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, MutableMapping, Sequence

from litellm import completion

ChatMessage = Mapping[str, Any]

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """
    Reply text plus the raw LiteLLM response it was extracted from.
    """

    text: str
    raw: Any
    model: str | None = None


CompletionCallable = Callable[..., ChatResult]


def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Send ``messages`` to ``model`` through LiteLLM and return the first choice's text.

    Optional knobs are only forwarded when set so that provider defaults apply.
    """
    payload: MutableMapping[str, Any] = {
        "model": model,
        "messages": list(messages),
    }
    optional = {"temperature": temperature, "max_tokens": max_tokens, "api_key": api_key}
    payload.update({key: value for key, value in optional.items() if value is not None})
    payload.update(extra_kwargs)

    logger.debug("Requesting chat completion from %s (%d messages)", model, len(payload["messages"]))
    response = completion(**payload)

    try:
        content = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RuntimeError("Unexpected LiteLLM response format.") from exc

    return ChatResult(
        text=str(content or "").strip(),
        raw=response,
        model=getattr(response, "model", None) or model,
    )
