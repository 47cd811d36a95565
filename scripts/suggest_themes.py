"""
Interactive CLI to brainstorm coloring book themes with the DreamColor assistant.

Usage:
    python scripts/suggest_themes.py --model gpt-4.1-mini
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on the Python path.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dreamcolor import ThemeIdeaAssistant  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Chat with DreamColor to find a theme for your next coloring book."
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Override the LiteLLM model used for brainstorming.",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="Override the API key passed to LiteLLM.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    assistant = ThemeIdeaAssistant(model=args.model, api_key=args.api_key)

    print("Ask DreamColor for theme ideas. Type /reset to start over or /quit to leave.")
    while True:
        try:
            message = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0

        if not message:
            continue
        if message == "/quit":
            return 0
        if message == "/reset":
            assistant.reset()
            print("(conversation cleared)")
            continue

        try:
            reply = assistant.ask(message)
        except Exception as exc:
            logger.warning("Theme assistant request failed: %s", exc)
            print(f"(could not reach the assistant: {exc}. Try again.)", file=sys.stderr)
            continue
        print(f"dreamcolor> {reply}")


if __name__ == "__main__":
    raise SystemExit(main())
