"""
Generation orchestration for DreamColor coloring books.
"""

from .pipeline import (
    ColoringBookOrchestrator,
    GeneratedArtifact,
    GenerationRun,
    ProgressCallback,
    RunStatus,
)

__all__ = [
    "ColoringBookOrchestrator",
    "GeneratedArtifact",
    "GenerationRun",
    "ProgressCallback",
    "RunStatus",
]
