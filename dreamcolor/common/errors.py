"""
Error taxonomy shared by the coloring book generation pipeline.

Every failure that can end a run maps to one of these classes, and each carries a
stable ``error_code`` plus a plain-language ``user_message`` suitable for showing to
the person who requested the book.
"""

from __future__ import annotations


class ColoringBookError(Exception):
    """Base class for DreamColor domain errors."""

    error_code = "coloring_book_error"
    default_user_message = "Something went wrong while creating the coloring book."

    def __init__(self, message: str | None = None, *, user_message: str | None = None) -> None:
        self.user_message = user_message or self.default_user_message
        super().__init__(message or self.user_message)


class InvalidInput(ColoringBookError, ValueError):
    """Raised before any request is sent when the book request is malformed."""

    error_code = "invalid_input"
    default_user_message = "Please provide a theme, a name for the book, and at least one page."


class CredentialRequired(ColoringBookError):
    """The service rejected the caller's credential, or a privileged tier has none."""

    error_code = "credential_required"
    default_user_message = (
        "This request failed. If you're using a high quality tier, please make sure "
        "you've selected a paid API token with billing enabled, then start again."
    )


class NoImageReturned(ColoringBookError):
    """The service answered without image data (for example a safety-filter rejection)."""

    error_code = "no_image_returned"
    default_user_message = (
        "No image data was returned by the AI model. Try a different theme or quality tier."
    )

    def __init__(
        self,
        message: str | None = None,
        *,
        detail: str | None = None,
        user_message: str | None = None,
    ) -> None:
        self.detail = (detail or "").strip()
        super().__init__(message or self.detail or None, user_message=user_message)


class TransientOrUnknown(ColoringBookError):
    """Any other transport or service failure."""

    error_code = "transient_or_unknown"
    default_user_message = (
        "Generation failed. Try a simpler theme or lower quality tier if the problem persists."
    )


class IncompleteArtifactSet(ColoringBookError):
    """Assembly was asked to build a book from a partial or misordered page set."""

    error_code = "incomplete_artifact_set"
    default_user_message = "The coloring book is not ready yet. Generate all pages first."


__all__ = [
    "ColoringBookError",
    "CredentialRequired",
    "IncompleteArtifactSet",
    "InvalidInput",
    "NoImageReturned",
    "TransientOrUnknown",
]
