"""
Coloring book assembly and PDF export.
"""

from .builder import (
    PAGE_SIZES,
    ColoringBookAssembler,
    ColoringBookDocument,
    ColoringBookPDFBuilder,
    CoverPage,
    DocumentPage,
    Placement,
)

__all__ = [
    "PAGE_SIZES",
    "ColoringBookAssembler",
    "ColoringBookDocument",
    "ColoringBookPDFBuilder",
    "CoverPage",
    "DocumentPage",
    "Placement",
]
