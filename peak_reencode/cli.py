#!/usr/bin/env python3
"""peak-reencode CLI entrypoint (package module)."""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from peak_reencode import config
from peak_reencode.batch.runner import run_batch
from peak_reencode.errors import PathCollisionError, ReencodeError
from peak_reencode.io.messages import MessageSet
from peak_reencode.util.exit_codes import ExitCode
from peak_reencode.util.logging import configure_logging, get_logger, log_exception

USAGE_EXAMPLE = "Example: peak-reencode --in=myRec.rec --out=myNewRec.rec"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="peak-reencode",
        description=(
            "Reencodes existing PEAK GPS recordings: transcodes non-SI units to SI units, "
            "removes the broken-patch offset and suppresses corrupt channels."
        ),
        epilog=USAGE_EXAMPLE,
    )
    p.add_argument("--in", dest="in_path", type=str, help="Existing recording, or directory walked recursively")
    p.add_argument("--out", dest="out_path", type=str, help="Output recording, or output directory for batch mode")
    p.add_argument("--verbose", action="store_true", help="Log every rewritten reading (implies --log-level DEBUG)")
    p.add_argument(
        "--message-set",
        dest="message_set",
        type=str,
        default=None,
        help="JSON file overriding message data-type IDs, e.g. '{\"LegacyAcceleration\": 1101}'",
    )
    p.add_argument(
        "--list-message-set",
        dest="list_message_set",
        action="store_true",
        help="Print the effective message data-type IDs as JSON and exit",
    )
    p.add_argument(
        "--extension",
        type=str,
        default=config.RECORDING_EXTENSION,
        help=f"Recording file extension in batch mode (default {config.RECORDING_EXTENSION})",
    )
    p.add_argument("--log-level", dest="log_level", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR")
    p.add_argument("--log-json", dest="log_json", type=str, default=None, help="Append JSON-lines logs to this path")
    return p


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    if argv is None:
        argv = sys.argv[1:]
    return build_parser().parse_args(argv)


def run(args: argparse.Namespace) -> int:
    """Top-level CLI dispatcher that delegates execution to batch.runner."""
    if not args.list_message_set and (not args.in_path or not args.out_path):
        print(
            "peak-reencode reencodes an existing recording file to transcode non-SI units to SI-units for PEAK GPS.",
            file=sys.stderr,
        )
        print("Usage:   peak-reencode --in=<existing recording> --out=<output> [--verbose]", file=sys.stderr)
        print(USAGE_EXAMPLE, file=sys.stderr)
        return ExitCode.USAGE

    level = "DEBUG" if args.verbose else args.log_level
    configure_logging(level=level, json_file=args.log_json)
    log = get_logger(__name__)

    try:
        if args.list_message_set:
            message_set = MessageSet.from_json(args.message_set) if args.message_set else MessageSet()
            print(json.dumps(message_set.serialize(), indent=2))
            return ExitCode.SUCCESS
        run_batch(args)
    except PathCollisionError as exc:
        log.error("%s", exc, extra={"error_type": "path_collision"})
        return ExitCode.FAILURE
    except (ReencodeError, OSError, ValueError):
        log_exception(log, "Reencode aborted", error_type="processing")
        return ExitCode.FAILURE
    return ExitCode.SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    return run(parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
