from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Any

from .capabilities import detect_capabilities
from .labs import LABS, LabResult, format_result


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ``threadlab`` command."""

    parser = argparse.ArgumentParser(
        prog="threadlab",
        description="Run the threadlab concurrency labs and report what they observed.",
    )
    parser.add_argument(
        "--lab",
        choices=(*LABS, "all"),
        default="all",
        help="Lab to run (default: all of them)",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Multiplier applied to every simulated duration",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON instead of one line per lab",
    )
    parser.add_argument(
        "--show-capabilities",
        action="store_true",
        help="Include runtime capability snapshot in JSON output",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List the available labs and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
        help="Logging threshold for pool events and shutdown diagnostics",
    )
    return parser


def run_labs(args: argparse.Namespace) -> list[LabResult]:
    """Execute the labs selected by parsed CLI arguments."""

    if args.scale < 0:
        raise SystemExit("--scale must not be negative")
    names = list(LABS) if args.lab == "all" else [args.lab]
    return [LABS[name].execute(scale=args.scale) for name in names]


def main(argv: list[str] | None = None) -> int:
    """CLI entry point used by ``threadlab`` and ``python -m threadlab``."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(threadName)s %(name)s %(levelname)s %(message)s",
    )

    if args.list:
        for lab in LABS.values():
            print(f"{lab.name:<12} {lab.summary}")
        return 0

    results = run_labs(args)
    if args.json:
        payload: dict[str, Any] = {
            "results": [result.as_dict() for result in results],
        }
        if args.show_capabilities:
            payload["capabilities"] = asdict(detect_capabilities())
        print(json.dumps(payload, indent=2))
    else:
        for result in results:
            print(format_result(result))
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
