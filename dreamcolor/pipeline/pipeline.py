"""
Orchestrates the sequential page-by-page generation of a coloring book.
"""

from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable

from dreamcolor.ai_generation import (
    CredentialGate,
    PageRequest,
    QualityTier,
    ReplicateImageGenerator,
    build_page_requests,
    default_credential_gate,
)
from dreamcolor.ai_generation.prompting import DEFAULT_PAGE_COUNT
from dreamcolor.common.errors import (
    ColoringBookError,
    CredentialRequired,
    InvalidInput,
    NoImageReturned,
    TransientOrUnknown,
)

ProgressCallback = Callable[[str, dict[str, Any]], None]
ConfirmCallback = Callable[[str], bool]

logger = logging.getLogger(__name__)

PREFLIGHT_CREDENTIAL_PROMPT = (
    "{size} generation requires a paid API token. Would you like to select one now?"
)


class RunStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    AWAITING_CREDENTIAL = "awaiting_credential"
    FAILED = "failed"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class GeneratedArtifact:
    """One generated coloring page, tagged with its position and originating prompt."""

    index: int
    image_data: bytes = field(repr=False)
    media_type: str
    source_prompt: str

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.image_data).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"


@dataclass
class GenerationRun:
    """
    Live state of one attempt at generating a whole book.

    ``artifacts`` is always contiguous from index 0. Only
    :class:`ColoringBookOrchestrator` mutates a run.
    """

    theme: str = ""
    owner_label: str = ""
    tier: QualityTier = QualityTier.STANDARD
    page_count: int = 0
    artifacts: tuple[GeneratedArtifact, ...] = ()
    current_index: int = 0
    status: RunStatus = RunStatus.IDLE
    progress: float = 0.0
    error: ColoringBookError | None = None
    message: str | None = None
    credential_selected: bool | None = None

    @property
    def is_finished(self) -> bool:
        return self.status in {
            RunStatus.AWAITING_CREDENTIAL,
            RunStatus.FAILED,
            RunStatus.COMPLETED,
            RunStatus.ABORTED,
        }

    def assemblable_artifacts(self) -> tuple[GeneratedArtifact, ...]:
        """Artifacts that may be handed to assembly; empty unless the run completed."""
        if self.status is RunStatus.COMPLETED and len(self.artifacts) == self.page_count:
            return self.artifacts
        return ()

    def _append(self, artifact: GeneratedArtifact) -> None:
        expected_index = len(self.artifacts)
        if artifact.index != expected_index:
            raise RuntimeError(
                f"Artifact for page {artifact.index} arrived out of order; expected {expected_index}."
            )
        self.artifacts = self.artifacts + (artifact,)
        self.current_index = expected_index + 1
        self.progress = len(self.artifacts) / self.page_count

    def _finish(
        self,
        status: RunStatus,
        *,
        error: ColoringBookError | None = None,
        message: str | None = None,
    ) -> None:
        if status is not RunStatus.COMPLETED:
            self.artifacts = ()
        self.status = status
        self.error = error
        self.message = message


class ColoringBookOrchestrator:
    """
    Drives the page loop: one request at a time, in index order.

    Parameters
    ----------
    image_generator:
        Adapter exposing ``request_image(prompt, tier)``. Defaults to
        :class:`ReplicateImageGenerator` bound to the same credential gate.
    credential_gate:
        Gate consulted before privileged runs and invoked on credential failures.
    confirm_fn:
        Asked, with a plain-language question, whether the user wants to select a
        credential before a privileged run. When omitted the selection flow is
        started directly.
    default_page_count:
        Number of pages generated when ``generate`` is not given ``page_count``.
    """

    def __init__(
        self,
        *,
        image_generator: ReplicateImageGenerator | None = None,
        credential_gate: CredentialGate | None = None,
        confirm_fn: ConfirmCallback | None = None,
        default_page_count: int = DEFAULT_PAGE_COUNT,
    ) -> None:
        self._credential_gate = credential_gate or default_credential_gate()
        self._image_generator = image_generator or ReplicateImageGenerator(
            credential_gate=self._credential_gate
        )
        self._confirm_fn = confirm_fn
        self._default_page_count = default_page_count
        self._current_run = GenerationRun()
        self._abort_requested = threading.Event()
        self._busy = threading.Lock()

    @property
    def current_run(self) -> GenerationRun:
        """A snapshot of the active run."""
        return replace(self._current_run)

    @property
    def credential_gate(self) -> CredentialGate:
        return self._credential_gate

    def abort(self) -> None:
        """
        Ask the in-flight run to stop once its current request resolves.

        Safe to call from another thread, including while the credential pre-flight
        is still waiting on the user. The aborted run keeps no artifacts.
        """
        if self._busy.locked():
            logger.info("Abort requested for the in-flight run.")
            self._abort_requested.set()

    def reset(self) -> None:
        """Discard the current run, for example once its book has been downloaded."""
        if self._current_run.status is RunStatus.RUNNING:
            raise RuntimeError("Cannot reset while a generation run is in progress.")
        self._current_run = GenerationRun()

    def generate(
        self,
        theme: str,
        owner_label: str,
        tier: QualityTier | str = QualityTier.STANDARD,
        *,
        page_count: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> GenerationRun:
        """
        Generate every page of a book, strictly one after the other.

        Returns the finished run; inspect ``status`` for the outcome. Input
        problems raise :class:`InvalidInput` and a declined credential pre-flight
        raises :class:`CredentialRequired`, in both cases before any request is
        sent and without replacing the current run.
        """
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("A generation run is already in progress.")
        try:
            self._abort_requested.clear()
            return self._generate(
                theme=theme,
                owner_label=owner_label,
                tier=tier,
                page_count=self._default_page_count if page_count is None else page_count,
                progress_callback=progress_callback,
            )
        finally:
            self._busy.release()

    def _generate(
        self,
        *,
        theme: str,
        owner_label: str,
        tier: QualityTier | str,
        page_count: int,
        progress_callback: ProgressCallback | None,
    ) -> GenerationRun:
        if not isinstance(owner_label, str) or not owner_label.strip():
            raise InvalidInput("owner_label must be a non-empty string.")
        resolved_tier = QualityTier.from_value(tier)
        page_requests = build_page_requests(theme, page_count)

        if resolved_tier.requires_credential and not self._credential_gate.has_credential():
            self._run_preflight(resolved_tier, progress_callback)

        run = GenerationRun(
            theme=theme.strip(),
            owner_label=owner_label.strip(),
            tier=resolved_tier,
            page_count=len(page_requests),
            status=RunStatus.RUNNING,
        )
        self._current_run = run
        try:
            return self._run_pages(run, page_requests, progress_callback)
        except BaseException as exc:
            if not run.is_finished:
                status = RunStatus.ABORTED if isinstance(exc, KeyboardInterrupt) else RunStatus.FAILED
                logger.error(
                    "Run for theme %r stopped at page %d by %s; discarding its pages.",
                    run.theme,
                    run.current_index,
                    exc.__class__.__name__,
                )
                run._finish(status, message="Generation stopped unexpectedly.")
            raise

    def _run_pages(
        self,
        run: GenerationRun,
        page_requests: list[PageRequest],
        progress_callback: ProgressCallback | None,
    ) -> GenerationRun:
        resolved_tier = run.tier
        logger.info(
            "Starting %d-page %s run for theme %r",
            run.page_count,
            resolved_tier.name.lower(),
            run.theme,
        )
        self._notify(
            progress_callback,
            "run:started",
            total_pages=run.page_count,
            tier=resolved_tier.name.lower(),
        )

        for request in page_requests:
            if self._abort_requested.is_set():
                return self._abort_run(run, progress_callback)

            self._notify(
                progress_callback,
                "page:processing",
                page_index=request.index,
                total_pages=run.page_count,
                prompt=request.prompt,
            )
            try:
                artifact = self._generate_page(request, resolved_tier)
            except CredentialRequired as exc:
                return self._pause_for_credential(run, exc, progress_callback)
            except ColoringBookError as exc:
                return self._fail_run(run, exc, progress_callback)
            except Exception as exc:
                logger.exception("Unexpected error while generating page %d.", request.index)
                wrapped = TransientOrUnknown(str(exc) or exc.__class__.__name__)
                wrapped.__cause__ = exc
                return self._fail_run(run, wrapped, progress_callback)

            if self._abort_requested.is_set():
                return self._abort_run(run, progress_callback)

            run._append(artifact)
            self._notify(
                progress_callback,
                "page:done",
                page_index=request.index,
                total_pages=run.page_count,
                progress=run.progress,
                artifacts=run.artifacts,
            )

        run._finish(RunStatus.COMPLETED)
        logger.info("Run for theme %r completed with %d pages.", run.theme, len(run.artifacts))
        self._notify(progress_callback, "run:complete", total_pages=run.page_count)
        return run

    def _run_preflight(
        self,
        tier: QualityTier,
        progress_callback: ProgressCallback | None,
    ) -> None:
        question = PREFLIGHT_CREDENTIAL_PROMPT.format(size=tier.size_hint)
        self._notify(progress_callback, "credential:preflight", tier=tier.name.lower())

        confirmed = True if self._confirm_fn is None else bool(self._confirm_fn(question))
        if confirmed and self._credential_gate.request_credential():
            return

        logger.info("Credential pre-flight declined for %s tier; no requests sent.", tier.name.lower())
        raise CredentialRequired(
            f"{tier.name.lower()} tier requires a selected credential.",
            user_message=(
                f"{tier.size_hint} generation needs a paid API token. "
                "Select one, or choose the standard tier."
            ),
        )

    def _generate_page(self, request: PageRequest, tier: QualityTier) -> GeneratedArtifact:
        payload = self._image_generator.request_image(request.prompt, tier)
        return GeneratedArtifact(
            index=request.index,
            image_data=payload.image_data,
            media_type=payload.media_type,
            source_prompt=request.prompt,
        )

    def _pause_for_credential(
        self,
        run: GenerationRun,
        error: CredentialRequired,
        progress_callback: ProgressCallback | None,
    ) -> GenerationRun:
        logger.warning(
            "Credential rejected at page %d of %d; discarding %d finished pages.",
            run.current_index,
            run.page_count,
            len(run.artifacts),
        )
        run._finish(RunStatus.AWAITING_CREDENTIAL, error=error, message=error.user_message)
        self._notify(
            progress_callback,
            "run:awaiting_credential",
            page_index=run.current_index,
            message=error.user_message,
        )
        # Recovery only re-establishes the credential; the caller starts a new run.
        run.credential_selected = self._credential_gate.request_credential()
        return run

    def _fail_run(
        self,
        run: GenerationRun,
        error: ColoringBookError,
        progress_callback: ProgressCallback | None,
    ) -> GenerationRun:
        message = error.user_message
        if isinstance(error, NoImageReturned) and error.detail:
            message = f"{message} The AI said: {error.detail}"

        logger.warning(
            "Run for theme %r failed at page %d (%s): %s",
            run.theme,
            run.current_index,
            error.error_code,
            error,
        )
        run._finish(RunStatus.FAILED, error=error, message=message)
        self._notify(
            progress_callback,
            "run:failed",
            page_index=run.current_index,
            error_code=error.error_code,
            message=message,
        )
        return run

    def _abort_run(
        self,
        run: GenerationRun,
        progress_callback: ProgressCallback | None,
    ) -> GenerationRun:
        logger.info("Run for theme %r aborted at page %d.", run.theme, run.current_index)
        run._finish(RunStatus.ABORTED, message="Generation was cancelled.")
        self._abort_requested.clear()
        self._notify(progress_callback, "run:aborted", page_index=run.current_index)
        return run

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)
