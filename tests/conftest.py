"""Shared fixtures for the DreamColor test suite.

Nothing here talks to Replicate or LiteLLM: the image service and the credential
selector are replaced by scripted fakes.
"""

from __future__ import annotations

import io
import os
from typing import Any, Callable

# Keep litellm from fetching its model cost map over the network at import time.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest
from PIL import Image

from dreamcolor.ai_generation import CredentialGate, ImagePayload, QualityTier


def create_test_image(width: int = 300, height: int = 400, format: str = "PNG") -> bytes:
    """Create a small line-art style image in memory."""
    img = Image.new("RGB", (width, height), color="white")
    for x in range(20, width - 20):
        img.putpixel((x, height // 2), (0, 0, 0))
    output = io.BytesIO()
    img.save(output, format=format)
    return output.getvalue()


class ScriptedImageService:
    """Stands in for ReplicateImageGenerator; ``failures`` maps call number to an exception."""

    def __init__(
        self,
        failures: dict[int, BaseException] | None = None,
        *,
        on_request: Callable[[int], None] | None = None,
    ) -> None:
        self.failures = failures or {}
        self.on_request = on_request
        self.calls: list[tuple[str, QualityTier]] = []
        self.image_data = create_test_image()

    def request_image(self, prompt: str, tier: QualityTier) -> ImagePayload:
        call_number = len(self.calls)
        self.calls.append((prompt, tier))
        if self.on_request is not None:
            self.on_request(call_number)
        failure = self.failures.get(call_number)
        if failure is not None:
            raise failure
        return ImagePayload(image_data=self.image_data, media_type="image/png")


class RecordingSelector:
    """Credential selector returning a fixed answer and counting invocations."""

    def __init__(self, answer: str | None = "r8_selected") -> None:
        self.answer = answer
        self.calls = 0

    def __call__(self) -> str | None:
        self.calls += 1
        return self.answer


class ProgressRecorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, stage: str, payload: dict[str, Any]) -> None:
        self.events.append((stage, payload))

    def stages(self) -> list[str]:
        return [stage for stage, _ in self.events]


@pytest.fixture
def png_bytes() -> bytes:
    return create_test_image()


@pytest.fixture
def selector() -> RecordingSelector:
    return RecordingSelector()


@pytest.fixture
def gate(selector: RecordingSelector) -> CredentialGate:
    return CredentialGate(token="r8_existing", selector=selector, use_environment=False)


@pytest.fixture
def empty_gate(selector: RecordingSelector) -> CredentialGate:
    return CredentialGate(selector=selector, use_environment=False)


@pytest.fixture
def progress() -> ProgressRecorder:
    return ProgressRecorder()


@pytest.fixture
def make_image_service() -> Callable[..., ScriptedImageService]:
    return ScriptedImageService


@pytest.fixture
def make_selector() -> Callable[..., RecordingSelector]:
    return RecordingSelector
