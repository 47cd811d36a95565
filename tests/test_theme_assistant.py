"""Tests for the theme brainstorming assistant and the LiteLLM helper."""

from __future__ import annotations

import pytest

from dreamcolor.common import ChatResult
from dreamcolor.common import llm
from dreamcolor.theme_ideas import SYSTEM_PROMPT, ThemeIdeaAssistant


class FakeCompletion:
    def __init__(self, replies: list[str]) -> None:
        self.replies = list(replies)
        self.calls: list[dict] = []

    def __call__(self, **kwargs) -> ChatResult:
        self.calls.append(kwargs)
        return ChatResult(text=self.replies.pop(0), raw={})


def test_ask_sends_system_prompt_and_records_history():
    completion = FakeCompletion(["Try astronaut kittens!", "Add jetpacks to the kittens."])
    assistant = ThemeIdeaAssistant(model="test-model", api_key="sk-test", completion_fn=completion)

    assert assistant.ask("Ideas for a 5 year old?") == "Try astronaut kittens!"
    assert assistant.ask("Make it sillier") == "Add jetpacks to the kittens."

    second_messages = completion.calls[1]["messages"]
    assert second_messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert [message["role"] for message in second_messages[1:]] == ["user", "assistant", "user"]
    assert completion.calls[1]["model"] == "test-model"
    assert completion.calls[1]["api_key"] == "sk-test"
    assert len(assistant.history) == 4


def test_reset_clears_history():
    assistant = ThemeIdeaAssistant(model="test-model", completion_fn=FakeCompletion(["Dragons!"]))
    assistant.ask("Ideas?")

    assistant.reset()

    assert assistant.history == []


def test_empty_reply_raises():
    assistant = ThemeIdeaAssistant(model="test-model", completion_fn=FakeCompletion([""]))

    with pytest.raises(RuntimeError):
        assistant.ask("Ideas?")
    assert assistant.history == []


def test_blank_message_is_rejected():
    assistant = ThemeIdeaAssistant(model="test-model", completion_fn=FakeCompletion([]))

    with pytest.raises(ValueError):
        assistant.ask("   ")


def test_model_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("DREAMCOLOR_CHAT_MODEL", "gemini/gemini-2.5-flash")
    assert ThemeIdeaAssistant(completion_fn=FakeCompletion([])).model == "gemini/gemini-2.5-flash"


def test_call_chat_completion_extracts_text(monkeypatch):
    captured: dict = {}

    def fake_completion(**payload):
        captured.update(payload)
        return {"choices": [{"message": {"content": "  Underwater castles  "}}]}

    monkeypatch.setattr(llm, "completion", fake_completion)

    result = llm.call_chat_completion(
        model="test-model",
        messages=[{"role": "user", "content": "hi"}],
        temperature=0.5,
    )

    assert result.text == "Underwater castles"
    assert result.model == "test-model"
    assert captured["temperature"] == 0.5
    assert "max_tokens" not in captured


def test_call_chat_completion_rejects_malformed_response(monkeypatch):
    monkeypatch.setattr(llm, "completion", lambda **payload: {"choices": []})

    with pytest.raises(RuntimeError, match="Unexpected LiteLLM response format"):
        llm.call_chat_completion(model="test-model", messages=[])
