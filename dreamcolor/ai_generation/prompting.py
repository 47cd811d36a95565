"""
Prompt construction utilities for DreamColor coloring page generation.
"""

from __future__ import annotations

from dataclasses import dataclass

from dreamcolor.common.errors import InvalidInput

# Ordered so that page ``i`` of any book always gets the same framing.
SCENE_VARIANTS: tuple[str, ...] = (
    "wide shot",
    "close up",
    "playful scene",
    "magical background",
    "action pose",
)

DEFAULT_PAGE_COUNT = len(SCENE_VARIANTS)

COLORING_PAGE_STYLE = (
    "thick bold black outlines, clean white background, simple shapes, "
    "no shading, no grayscale, suitable for coloring"
)

NEGATIVE_PROMPT = (
    "color fill, shading, grayscale gradients, cross-hatching, photorealism, "
    "cluttered background, tiny details, watermark, text, logo"
)


@dataclass(frozen=True)
class PageRequest:
    """One page of the book: its position and the scene prompt used to draw it."""

    index: int
    prompt: str


@dataclass(frozen=True)
class ColoringPagePrompt:
    """Container for the positive and negative prompts passed to the image model."""

    positive: str
    negative: str = NEGATIVE_PROMPT


def scene_variant_for(index: int) -> str:
    """
    Return the scene framing for page ``index``.

    The first ``len(SCENE_VARIANTS)`` pages use the variants as-is. Later pages wrap
    around the list and gain a ``variation k`` suffix, so no two pages of a book share
    the same prompt.
    """
    if index < 0:
        raise InvalidInput(f"Page index must be non-negative, got {index}.")

    cycle, position = divmod(index, len(SCENE_VARIANTS))
    variant = SCENE_VARIANTS[position]
    if cycle:
        variant = f"{variant}, variation {cycle + 1}"
    return variant


def build_page_requests(theme: str, count: int = DEFAULT_PAGE_COUNT) -> list[PageRequest]:
    """
    Derive ``count`` ordered page requests from a single theme.

    The result depends only on ``(theme, count)``.
    """
    if not isinstance(theme, str) or not theme.strip():
        raise InvalidInput("theme must be a non-empty string.")

    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidInput(f"Page count must be a positive integer, got {count!r}.")

    normalized_theme = theme.strip()
    return [
        PageRequest(index=index, prompt=f"{normalized_theme}, {scene_variant_for(index)}")
        for index in range(count)
    ]


def build_coloring_page_prompt(scene: str) -> ColoringPagePrompt:
    """
    Wrap a page prompt with the fixed art direction every coloring page shares.
    """
    if not scene or not scene.strip():
        raise InvalidInput("scene must be a non-empty string.")

    positive = (
        "A black and white coloring page for kids. "
        f"Theme: {scene.strip()}. "
        f"Visual Style: {COLORING_PAGE_STYLE}."
    )
    return ColoringPagePrompt(positive=positive)
