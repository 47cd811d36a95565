"""
Theme brainstorming helpers for DreamColor.
"""

from .assistant import SYSTEM_PROMPT, ThemeIdeaAssistant

__all__ = ["SYSTEM_PROMPT", "ThemeIdeaAssistant"]
