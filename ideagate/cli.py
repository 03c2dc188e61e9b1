"""Command line entry point for the idea gateway."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from ideagate.config import configure_logging, load_settings
from ideagate.handler import build_gateway
from ideagate.model_selector import DEFAULT_MODEL
from ideagate.models import (
    DETAIL_LEVELS,
    MODE_STRUCTURED,
    MODES,
    SHAPE_IDEAS,
    SHAPES,
    GenerationRequest,
    ImageRequest,
)

_LOGGER = logging.getLogger("ideagate.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Idea gateway CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ideas_parser = subparsers.add_parser("ideas", help="Generate project ideas from a prompt")
    ideas_parser.add_argument("prompt", help="Prompt text sent to the model")
    ideas_parser.add_argument("--model", default=None, help=f"Requested model (default: {DEFAULT_MODEL})")
    ideas_parser.add_argument("--mode", choices=MODES, default=MODE_STRUCTURED)
    ideas_parser.add_argument("--count", type=int, help="Number of ideas to request")
    ideas_parser.add_argument("--detail-level", dest="detail_level", choices=DETAIL_LEVELS)
    ideas_parser.add_argument("--extras", action="store_true", help="Ask for stretch goals and impact")
    ideas_parser.add_argument("--shape", choices=SHAPES, default=SHAPE_IDEAS)
    ideas_parser.add_argument("--timeout-s", dest="timeout_s", type=float, help="Override the upstream deadline (seconds)")

    image_parser = subparsers.add_parser("image", help="Generate an image from a prompt")
    image_parser.add_argument("prompt", help="Image description")
    image_parser.add_argument("--size", default=None, help="Image size, e.g. 1024x1024")
    image_parser.add_argument("--timeout-s", dest="timeout_s", type=float, help="Override the upstream deadline (seconds)")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the gateway CLI."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(settings)
    gateway = build_gateway(settings)
    deadline = args.timeout_s or settings.timeout_seconds

    if args.command == "ideas":
        try:
            request = GenerationRequest(
                raw_prompt=args.prompt,
                requested_model=args.model,
                mode=args.mode,
                count=args.count,
                detail_level=args.detail_level,
                include_extras=args.extras,
                shape=args.shape,
            )
        except ValueError as exc:
            parser.error(str(exc))
        outcome = gateway.generate_ideas(request, settings.api_key, deadline=deadline)
    else:
        outcome = gateway.generate_image(
            ImageRequest(prompt=args.prompt, size=args.size),
            settings.api_key,
            deadline=deadline,
        )

    print(json.dumps(outcome.body, indent=2))
    if not outcome.ok:
        _LOGGER.error("Request failed with status %s", outcome.status)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
