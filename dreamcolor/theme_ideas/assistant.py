"""
Chat assistant that helps parents and kids brainstorm coloring book themes.
"""

from __future__ import annotations

import os
from typing import Any

from dreamcolor.common import ChatResult, CompletionCallable, call_chat_completion

SYSTEM_PROMPT = (
    "You are DreamColor, a creative assistant for a children's coloring book generator. "
    "Help parents and kids brainstorm fun, imaginative themes (like 'astronaut kittens' "
    "or 'underwater castles'). Keep suggestions short, magical, and friendly."
)


class ThemeIdeaAssistant:
    """
    Keeps one brainstorming conversation and forwards it to a LiteLLM-compatible model.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        completion_fn: CompletionCallable | None = None,
        temperature: float = 0.9,
        max_output_tokens: int = 400,
    ) -> None:
        self._api_key = api_key or os.getenv("OPENAI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._model = (
            model
            or os.getenv("DREAMCOLOR_CHAT_MODEL")
            or os.getenv("LITELLM_MODEL")
            or "gpt-4.1-mini"
        )
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._history: list[dict[str, str]] = []

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    @property
    def history(self) -> list[dict[str, str]]:
        return list(self._history)

    def ask(self, message: str, **response_kwargs: Any) -> str:
        """
        Send ``message`` with the conversation so far and return the assistant's reply.
        """
        if not message or not message.strip():
            raise ValueError("message must be a non-empty string.")

        user_turn = {"role": "user", "content": message.strip()}
        messages = [{"role": "system", "content": SYSTEM_PROMPT}, *self._history, user_turn]

        result: ChatResult = self._completion_fn(
            model=self._model,
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_output_tokens,
            api_key=self._api_key,
            **response_kwargs,
        )

        if not result.text:
            raise RuntimeError("LLM response did not contain any text content.")

        self._history.extend([user_turn, {"role": "assistant", "content": result.text}])
        return result.text

    def reset(self) -> None:
        self._history.clear()
