"""Tests for page request building and coloring page prompts."""

import pytest

from dreamcolor.ai_generation import (
    SCENE_VARIANTS,
    QualityTier,
    build_coloring_page_prompt,
    build_page_requests,
)
from dreamcolor.common.errors import InvalidInput


def test_build_page_requests_uses_variants_in_order():
    requests = build_page_requests("Space Dinosaurs", 5)

    assert [request.index for request in requests] == [0, 1, 2, 3, 4]
    assert [request.prompt for request in requests] == [
        "Space Dinosaurs, wide shot",
        "Space Dinosaurs, close up",
        "Space Dinosaurs, playful scene",
        "Space Dinosaurs, magical background",
        "Space Dinosaurs, action pose",
    ]


def test_build_page_requests_is_deterministic():
    assert build_page_requests("Underwater Castles", 4) == build_page_requests("Underwater Castles", 4)


def test_build_page_requests_strips_theme():
    assert build_page_requests("  Robots  ", 1)[0].prompt == "Robots, wide shot"


def test_build_page_requests_wraps_around_without_collisions():
    requests = build_page_requests("Pirate Cats", 12)
    prompts = [request.prompt for request in requests]

    assert len(set(prompts)) == 12
    assert prompts[5] == "Pirate Cats, wide shot, variation 2"
    assert prompts[11] == "Pirate Cats, close up, variation 3"
    assert prompts[:5] == [f"Pirate Cats, {variant}" for variant in SCENE_VARIANTS]


@pytest.mark.parametrize("theme", ["", "   ", None])
def test_build_page_requests_rejects_blank_theme(theme):
    with pytest.raises(InvalidInput):
        build_page_requests(theme, 5)


@pytest.mark.parametrize("count", [0, -1, True, 2.5])
def test_build_page_requests_rejects_bad_count(count):
    with pytest.raises(InvalidInput):
        build_page_requests("Space Dinosaurs", count)


def test_invalid_input_is_a_value_error():
    with pytest.raises(ValueError):
        build_page_requests("", 5)


def test_coloring_page_prompt_wraps_scene_with_art_direction():
    prompt = build_coloring_page_prompt("Space Dinosaurs, wide shot")

    assert prompt.positive.startswith("A black and white coloring page for kids.")
    assert "Theme: Space Dinosaurs, wide shot." in prompt.positive
    assert "thick bold black outlines" in prompt.positive
    assert "shading" in prompt.negative


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("standard", QualityTier.STANDARD),
        ("1K", QualityTier.STANDARD),
        ("High", QualityTier.HIGH),
        ("2k", QualityTier.HIGH),
        ("ULTRA", QualityTier.ULTRA),
        (QualityTier.ULTRA, QualityTier.ULTRA),
    ],
)
def test_quality_tier_from_value(value, expected):
    assert QualityTier.from_value(value) is expected


def test_quality_tier_rejects_unknown_value():
    with pytest.raises(InvalidInput, match="Unknown quality tier"):
        QualityTier.from_value("8K")


def test_only_elevated_tiers_require_credentials():
    assert not QualityTier.STANDARD.requires_credential
    assert QualityTier.HIGH.requires_credential
    assert QualityTier.ULTRA.requires_credential
