"""
Credential gate guarding access to the privileged image generation tiers.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

CredentialSelector = Callable[[], Optional[str]]


class CredentialGate:
    """
    Holds the process-wide "is a usable API token selected" state.

    The gate is the only writer of that state. Readers call :meth:`has_credential`,
    which never prompts; :meth:`request_credential` hands control to ``selector`` (for
    example a ``getpass`` prompt in the CLI) and trusts whatever it returns. A token
    that comes back from the selector is not verified against the service.

    Parameters
    ----------
    token:
        Token to start with. Falls back to the ``REPLICATE_API_TOKEN`` environment
        variable when ``use_environment`` is true.
    selector:
        Callable driving the external selection flow. Returns the chosen token, or
        ``None`` when the user backs out.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        selector: CredentialSelector | None = None,
        use_environment: bool = True,
    ) -> None:
        if token is None and use_environment:
            token = os.getenv("REPLICATE_API_TOKEN")
        self._token = token.strip() if token and token.strip() else None
        self._selector = selector
        self._lock = threading.Lock()

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def selector(self) -> CredentialSelector | None:
        return self._selector

    @selector.setter
    def selector(self, selector: CredentialSelector | None) -> None:
        self._selector = selector

    def has_credential(self) -> bool:
        return self._token is not None

    def request_credential(self) -> bool:
        """
        Run the selection flow and report whether a credential is now selected.
        """
        if self._selector is None:
            logger.warning("No credential selector configured; keeping the current credential state.")
            return self.has_credential()

        selected = self._selector()
        if selected is None or not str(selected).strip():
            logger.info("Credential selection was cancelled.")
            return self.has_credential()

        with self._lock:
            self._token = str(selected).strip()
        logger.info("A new API credential was selected.")
        return True

    def clear(self) -> None:
        with self._lock:
            self._token = None


_DEFAULT_GATE: CredentialGate | None = None
_DEFAULT_GATE_LOCK = threading.Lock()


def default_credential_gate() -> CredentialGate:
    """Return the process-wide gate, creating it from the environment on first use."""
    global _DEFAULT_GATE
    with _DEFAULT_GATE_LOCK:
        if _DEFAULT_GATE is None:
            _DEFAULT_GATE = CredentialGate()
        return _DEFAULT_GATE
