"""
Quality tiers offered to the person ordering a coloring book.
"""

from __future__ import annotations

from enum import Enum

from dreamcolor.common.errors import InvalidInput


class QualityTier(Enum):
    """Each tier maps to a backend model and a size hint; elevated tiers need a paid token."""

    STANDARD = "1K"
    HIGH = "2K"
    ULTRA = "4K"

    @property
    def size_hint(self) -> str:
        return self.value

    @property
    def requires_credential(self) -> bool:
        return self is not QualityTier.STANDARD

    @classmethod
    def from_value(cls, value: "QualityTier | str") -> "QualityTier":
        """Accept a tier, its name (``"high"``) or its size hint (``"2K"``)."""
        if isinstance(value, cls):
            return value

        candidate = str(value or "").strip().upper()
        for tier in cls:
            if candidate in (tier.name, tier.value):
                return tier

        options = ", ".join(f"{tier.name.lower()} ({tier.value})" for tier in cls)
        raise InvalidInput(f"Unknown quality tier {value!r}. Choose one of: {options}.")
