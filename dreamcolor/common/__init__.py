"""
Common utilities shared across DreamColor modules.
"""

from .errors import (
    ColoringBookError,
    CredentialRequired,
    IncompleteArtifactSet,
    InvalidInput,
    NoImageReturned,
    TransientOrUnknown,
)
from .llm import ChatResult, CompletionCallable, call_chat_completion

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "call_chat_completion",
    "ColoringBookError",
    "CredentialRequired",
    "IncompleteArtifactSet",
    "InvalidInput",
    "NoImageReturned",
    "TransientOrUnknown",
]
