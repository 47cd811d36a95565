"""
CLI to generate a DreamColor coloring book and save it as a PDF.

Usage:
    python scripts/run_coloring_book.py \
        --theme "Space Dinosaurs" \
        --owner Leo \
        --tier standard \
        --output space_dinosaurs.pdf
"""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict

import yaml

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dreamcolor import (  # noqa: E402
    ColoringBookAssembler,
    ColoringBookOrchestrator,
    ColoringBookPDFBuilder,
    RunStatus,
)
from dreamcolor.ai_generation import default_credential_gate  # noqa: E402
from dreamcolor.common import ColoringBookError, InvalidInput  # noqa: E402
from dreamcolor.pdf_generation import PAGE_SIZES  # noqa: E402


class ProgressTracker:
    """
    Command-line progress updates for a coloring book run.
    """

    def __init__(self) -> None:
        self._page_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "credential:preflight":
                self._write("This quality tier needs a paid Replicate API token.")
            case "run:started":
                total = payload.get("total_pages", 0)
                self._write(f"Creating {total} coloring pages ({payload.get('tier')} quality)...")
                self._page_bar = tqdm(total=total, desc="Coloring pages", unit="page")
            case "page:processing":
                if self._page_bar is not None:
                    prompt = payload.get("prompt") or ""
                    truncated = (prompt[:45] + "…") if len(prompt) > 45 else prompt
                    self._page_bar.set_description(f"Page {payload.get('page_index', 0) + 1}: {truncated}")
            case "page:done":
                if self._page_bar is not None:
                    self._page_bar.update(1)
            case "run:awaiting_credential" | "run:failed":
                self.close()
                self._write(str(payload.get("message", "")))
            case "run:aborted":
                self.close()
                self._write("Generation cancelled.")
            case "run:complete":
                self.close()
                self._write("All pages are ready.")

    def close(self) -> None:
        if self._page_bar is not None:
            self._page_bar.close()
            self._page_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a themed coloring book PDF.")
    parser.add_argument(
        "--request",
        default=None,
        help="Optional YAML/JSON file with theme, owner, tier and pages fields.",
    )
    parser.add_argument("--theme", default=None, help='Book theme, e.g. "Space Dinosaurs".')
    parser.add_argument("--owner", default=None, help="Name of the child the book is for.")
    parser.add_argument(
        "--tier",
        default=None,
        help="Quality tier: standard (1K), high (2K) or ultra (4K). Default: standard.",
    )
    parser.add_argument(
        "--pages",
        type=int,
        default=None,
        help="Number of coloring pages to generate (default: 5).",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Destination PDF path (default: <theme>_coloring_book.pdf).",
    )
    parser.add_argument(
        "--page-size",
        choices=sorted(PAGE_SIZES.keys()),
        default="letter",
        help="Page size to render (default: letter).",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Answer yes to the credential selection question.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def load_request_mapping(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ValueError("Unsupported request file format. Use YAML or JSON.")

    if not isinstance(data, dict):
        raise ValueError("Request file must deserialize to a mapping.")
    return data


def resolve_request(args: argparse.Namespace) -> Dict[str, Any]:
    request: Dict[str, Any] = {}
    if args.request:
        request.update(load_request_mapping(Path(args.request)))

    overrides = {"theme": args.theme, "owner": args.owner, "tier": args.tier, "pages": args.pages}
    request.update({key: value for key, value in overrides.items() if value is not None})
    request.setdefault("tier", "standard")
    request["pages"] = _parse_page_count(request.get("pages", 5))
    return request


def _parse_page_count(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInput(
            f"pages must be a whole number, got {value!r}.",
            user_message="The number of pages must be a whole number, for example 5.",
        )
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(
            f"pages must be a whole number, got {value!r}.",
            user_message="The number of pages must be a whole number, for example 5.",
        ) from exc


def select_token() -> str | None:
    token = getpass.getpass("Paste a Replicate API token (leave empty to cancel): ")
    return token.strip() or None


def make_confirm(assume_yes: bool):
    def confirm(question: str) -> bool:
        if assume_yes:
            return True
        answer = input(f"{question} [y/N] ").strip().lower()
        return answer in {"y", "yes"}

    return confirm


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        request = resolve_request(args)
    except ColoringBookError as exc:
        print(exc.user_message, file=sys.stderr)
        return 2
    theme = str(request.get("theme") or "")
    owner = str(request.get("owner") or "")

    gate = default_credential_gate()
    gate.selector = select_token
    orchestrator = ColoringBookOrchestrator(
        credential_gate=gate,
        confirm_fn=make_confirm(args.yes),
    )
    tracker = ProgressTracker()

    # Generation runs on a worker thread so Ctrl+C can abort between pages.
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(
            orchestrator.generate,
            theme,
            owner,
            request["tier"],
            page_count=request["pages"],
            progress_callback=tracker,
        )
        try:
            try:
                run = future.result()
            except KeyboardInterrupt:
                tqdm.write("Stopping after the current page...")
                orchestrator.abort()
                run = future.result()
        except ColoringBookError as exc:
            print(exc.user_message, file=sys.stderr)
            return 2
        finally:
            tracker.close()

    if run.status is RunStatus.ABORTED:
        return 130

    if run.status is RunStatus.AWAITING_CREDENTIAL:
        print("Run the command again to generate the book from the first page.", file=sys.stderr)
        return 3
    if run.status is not RunStatus.COMPLETED:
        return 1

    try:
        document = ColoringBookAssembler(page_size=PAGE_SIZES[args.page_size]).assemble_run(run)
    except ColoringBookError as exc:
        print(exc.user_message, file=sys.stderr)
        return 1
    output_path = Path(args.output or f"{_slugify(run.theme)}_coloring_book.pdf")
    ColoringBookPDFBuilder().build(document, output_path)
    orchestrator.reset()

    print(f"Saved {document.page_count}-page coloring book to {output_path}")
    return 0


def _slugify(text: str) -> str:
    cleaned = "".join(char.lower() if char.isalnum() else "_" for char in text)
    return "_".join(filter(None, cleaned.split("_"))) or "coloring_book"


if __name__ == "__main__":
    raise SystemExit(main())
