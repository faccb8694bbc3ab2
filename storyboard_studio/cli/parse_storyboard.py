from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..storyboard.parser import parse_storyboard
from ..utils import io as io_utils
from ..utils.logging_setup import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract a storyboard from a saved assistant message.")
    parser.add_argument("message", type=Path, help="Text file holding the assistant reply ('-' for stdin).")
    parser.add_argument("--output", type=Path, default=None, help="Write the storyboard JSON here instead of stdout.")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default: STUDIO_LOGLEVEL or INFO).")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logger = configure_logging(args.log_level)

    content = sys.stdin.read() if str(args.message) == "-" else io_utils.read_text(args.message)
    storyboard = parse_storyboard(content)
    if storyboard is None:
        logger.error("No storyboard found in %s", args.message)
        return 1

    payload = storyboard.model_dump(mode="json", by_alias=True)
    if args.output:
        io_utils.dump_json(args.output, payload)
        logger.info("Saved storyboard with %d shots to %s", len(storyboard.shots), args.output)
    else:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
