"""
Integration with Replicate for coloring page image generation.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import re
from collections.abc import Iterable as IterableABC
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import replicate
import requests
from replicate.exceptions import ModelError, ReplicateError

from dreamcolor.common.errors import (
    ColoringBookError,
    CredentialRequired,
    NoImageReturned,
    TransientOrUnknown,
)

from .credentials import CredentialGate, default_credential_gate
from .prompting import ColoringPagePrompt, build_coloring_page_prompt
from .tiers import QualityTier

logger = logging.getLogger(__name__)

DEFAULT_MODEL_IDENTIFIERS: dict[QualityTier, str] = {
    QualityTier.STANDARD: "black-forest-labs/flux-schnell",
    QualityTier.HIGH: "black-forest-labs/flux-1.1-pro",
    QualityTier.ULTRA: "black-forest-labs/flux-1.1-pro-ultra",
}

_MODEL_ENV_VARS: dict[QualityTier, str] = {
    QualityTier.STANDARD: "DREAMCOLOR_STANDARD_MODEL",
    QualityTier.HIGH: "DREAMCOLOR_HIGH_MODEL",
    QualityTier.ULTRA: "DREAMCOLOR_ULTRA_MODEL",
}

COLORING_PAGE_ASPECT_RATIO = "3:4"

# HTTP statuses Replicate uses for a bad token, a token without access, or a model
# the token cannot see.
CREDENTIAL_FAILURE_STATUSES = frozenset({401, 403, 404})

# Fallback only: matching on message text breaks as soon as the service rewords an
# error, so structured statuses are checked first.
CREDENTIAL_FAILURE_SIGNATURES: tuple[str, ...] = (
    "requested entity was not found",
    "not found",
    "permission_denied",
    "permission denied",
    "forbidden",
    "unauthorized",
    "unauthenticated",
)

_CREDENTIAL_STATUS_PATTERN = re.compile(r"\b40[13]\b")

_IMAGE_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


@dataclass(frozen=True)
class ImagePayload:
    """Binary image returned by a single successful generation request."""

    image_data: bytes
    media_type: str


def _build_flux_schnell_input(*, prompt: ColoringPagePrompt, tier: QualityTier) -> dict[str, Any]:
    return {
        "prompt": f"{prompt.positive} Avoid: {prompt.negative}.",
        "aspect_ratio": COLORING_PAGE_ASPECT_RATIO,
        "output_format": "png",
        "num_outputs": 1,
    }


def _build_flux_pro_input(*, prompt: ColoringPagePrompt, tier: QualityTier) -> dict[str, Any]:
    return {
        "prompt": f"{prompt.positive} Avoid: {prompt.negative}.",
        "aspect_ratio": COLORING_PAGE_ASPECT_RATIO,
        "output_format": "png",
        "safety_tolerance": 2,
        "prompt_upsampling": False,
    }


def _build_flux_pro_ultra_input(*, prompt: ColoringPagePrompt, tier: QualityTier) -> dict[str, Any]:
    return {
        "prompt": f"{prompt.positive} Avoid: {prompt.negative}.",
        "aspect_ratio": COLORING_PAGE_ASPECT_RATIO,
        "output_format": "png",
        "safety_tolerance": 2,
        "raw": False,
    }


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-schnell": _build_flux_schnell_input,
    "black-forest-labs/flux-dev": _build_flux_schnell_input,
    "black-forest-labs/flux-1.1-pro": _build_flux_pro_input,
    "black-forest-labs/flux-pro": _build_flux_pro_input,
    "black-forest-labs/flux-1.1-pro-ultra": _build_flux_pro_ultra_input,
}


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: ColoringPagePrompt,
    tier: QualityTier,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(_MODEL_INPUT_BUILDERS))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt, tier=tier)


def looks_like_credential_failure(message: str) -> bool:
    """
    Heuristic classifier for authorization failures reported only as text.

    This is fragile by nature and only consulted when the error carries no HTTP status.
    """
    lowered = (message or "").lower()
    if _CREDENTIAL_STATUS_PATTERN.search(lowered):
        return True
    return any(signature in lowered for signature in CREDENTIAL_FAILURE_SIGNATURES)


def _status_of(exc: BaseException) -> int | None:
    status = getattr(exc, "status", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def classify_service_error(exc: BaseException) -> ColoringBookError:
    """
    Map an exception raised by the Replicate exchange onto the DreamColor taxonomy.
    """
    if isinstance(exc, ColoringBookError):
        return exc

    message = str(exc) or exc.__class__.__name__

    if isinstance(exc, ModelError):
        prediction = getattr(exc, "prediction", None)
        reason = getattr(prediction, "error", None) or message
        return NoImageReturned(detail=str(reason))

    status = _status_of(exc)
    if status is not None:
        if status in CREDENTIAL_FAILURE_STATUSES:
            return CredentialRequired(message)
        if isinstance(exc, ReplicateError):
            return TransientOrUnknown(message)

    if looks_like_credential_failure(message):
        return CredentialRequired(message)

    return TransientOrUnknown(message)


class ReplicateImageGenerator:
    """
    Runs one coloring page prompt through Replicate and returns the image bytes.

    Parameters
    ----------
    credential_gate:
        Source of the API token. Defaults to the process-wide gate.
    model_identifiers:
        Optional per-tier model overrides. Falls back to ``DREAMCOLOR_<TIER>_MODEL``
        environment variables, then to :data:`DEFAULT_MODEL_IDENTIFIERS`.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
        Without it a fresh client is created per request so that a token selected
        mid-session is picked up.
    request_timeout:
        Timeout in seconds for downloading image URLs returned by the model.
    """

    def __init__(
        self,
        *,
        credential_gate: CredentialGate | None = None,
        model_identifiers: Mapping[QualityTier, str] | None = None,
        client: replicate.Client | None = None,
        client_factory: Callable[[str | None], Any] | None = None,
        request_timeout: float = 30.0,
    ) -> None:
        self._credential_gate = credential_gate or default_credential_gate()
        self._client = client
        self._client_factory = client_factory or (lambda token: replicate.Client(api_token=token))
        self._request_timeout = request_timeout

        overrides = dict(model_identifiers or {})
        self._model_identifiers: dict[QualityTier, str] = {}
        for tier in QualityTier:
            self._model_identifiers[tier] = (
                overrides.get(tier)
                or os.getenv(_MODEL_ENV_VARS[tier])
                or DEFAULT_MODEL_IDENTIFIERS[tier]
            )

    def model_identifier_for(self, tier: QualityTier | str) -> str:
        """Return the model identifier used for ``tier``."""
        return self._model_identifiers[QualityTier.from_value(tier)]

    def request_image(self, prompt: str, tier: QualityTier | str) -> ImagePayload:
        """
        Generate a single coloring page.

        Raises
        ------
        CredentialRequired
            The service rejected the token or cannot see the model.
        NoImageReturned
            The service answered without image data. ``detail`` holds its explanation.
        TransientOrUnknown
            Any other failure, chained to the original exception.
        """
        resolved_tier = QualityTier.from_value(tier)
        model_identifier = self._model_identifiers[resolved_tier]
        page_prompt = build_coloring_page_prompt(prompt)
        replicate_input = _build_replicate_input_payload(
            model_identifier=model_identifier,
            prompt=page_prompt,
            tier=resolved_tier,
        )

        logger.debug(
            "Requesting %s image from %s for prompt %r",
            resolved_tier.size_hint,
            model_identifier,
            prompt,
        )
        try:
            raw_output = self._client_for_request().run(model_identifier, input=replicate_input)
        except Exception as exc:
            classified = classify_service_error(exc)
            logger.info(
                "Image request failed (%s): %s",
                classified.error_code,
                exc,
            )
            if classified is exc:
                raise
            raise classified from exc

        return self._read_image_output(raw_output)

    def _client_for_request(self) -> Any:
        if self._client is not None:
            return self._client
        token = self._credential_gate.token or os.getenv("REPLICATE_API_TOKEN")
        return self._client_factory(token)

    def _read_image_output(self, raw_output: Any) -> ImagePayload:
        reasons: list[str] = []
        for item in _flatten_outputs(raw_output):
            payload = self._payload_from_item(item, reasons)
            if payload is not None:
                return payload

        detail = " ".join(reasons).strip()
        raise NoImageReturned(detail=detail or None)

    def _payload_from_item(self, item: Any, reasons: list[str]) -> ImagePayload | None:
        if hasattr(item, "read"):
            return _image_payload(item.read(), reasons)

        if isinstance(item, (bytes, bytearray)):
            return _image_payload(bytes(item), reasons)

        text = str(item).strip()
        if text.startswith("data:"):
            return _image_payload(_decode_data_url(text), reasons)
        if text.lower().startswith(("http://", "https://")):
            return self._download(text, reasons)

        if text:
            reasons.append(text)
        return None

    def _download(self, url: str, reasons: list[str]) -> ImagePayload | None:
        try:
            response = requests.get(url, timeout=self._request_timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransientOrUnknown(f"Failed to download generated image from {url}: {exc}") from exc

        content_type = response.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
        if content_type and not content_type.startswith("image/"):
            logger.info("Image download from %s returned %s; skipping.", url, content_type)
            reasons.append(f"The image link returned {content_type} instead of an image.")
            return None
        return _image_payload(response.content, reasons)


def _flatten_outputs(raw: Any) -> list[Any]:
    if raw is None:
        return []

    if isinstance(raw, (str, bytes, bytearray)) or hasattr(raw, "read"):
        return [raw]

    if isinstance(raw, Mapping):
        return _flatten_outputs(raw.get("output") or raw.get("images") or list(raw.values()))

    if isinstance(raw, IterableABC):
        collected: list[Any] = []
        for item in raw:
            collected.extend(_flatten_outputs(item))
        return collected

    return [raw]


def _decode_data_url(data_url: str) -> bytes:
    _, _, encoded = data_url.partition(",")
    try:
        return base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise NoImageReturned(detail="The service returned a malformed image payload.") from exc


def sniff_media_type(data: bytes) -> str | None:
    """Media type from the leading bytes of an image, or ``None`` when no known format matches."""
    for signature, media_type in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return media_type
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def _image_payload(data: bytes | None, reasons: list[str]) -> ImagePayload | None:
    if not data:
        return None
    media_type = sniff_media_type(data)
    if media_type is None:
        reasons.append("The service returned data that is not a recognised image.")
        return None
    return ImagePayload(image_data=bytes(data), media_type=media_type)
