"""
DreamColor package exposing coloring book generation, assembly, and PDF tooling.
"""

from .ai_generation import CredentialGate, QualityTier, ReplicateImageGenerator
from .pdf_generation import ColoringBookAssembler, ColoringBookDocument, ColoringBookPDFBuilder
from .pipeline import ColoringBookOrchestrator, GeneratedArtifact, GenerationRun, RunStatus
from .theme_ideas import ThemeIdeaAssistant

__all__ = [
    "ColoringBookAssembler",
    "ColoringBookDocument",
    "ColoringBookOrchestrator",
    "ColoringBookPDFBuilder",
    "CredentialGate",
    "GeneratedArtifact",
    "GenerationRun",
    "QualityTier",
    "ReplicateImageGenerator",
    "RunStatus",
    "ThemeIdeaAssistant",
]
