"""
AI image generation package for DreamColor.
"""

from .credentials import CredentialGate, default_credential_gate
from .prompting import (
    SCENE_VARIANTS,
    ColoringPagePrompt,
    PageRequest,
    build_coloring_page_prompt,
    build_page_requests,
)
from .replicate_service import (
    ImagePayload,
    ReplicateImageGenerator,
    classify_service_error,
    looks_like_credential_failure,
)
from .tiers import QualityTier

__all__ = [
    "SCENE_VARIANTS",
    "ColoringPagePrompt",
    "CredentialGate",
    "ImagePayload",
    "PageRequest",
    "QualityTier",
    "ReplicateImageGenerator",
    "build_coloring_page_prompt",
    "build_page_requests",
    "classify_service_error",
    "default_credential_gate",
    "looks_like_credential_failure",
]
