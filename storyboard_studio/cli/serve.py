from __future__ import annotations

import argparse
import os

import uvicorn

from ..config import load_settings
from ..utils.logging_setup import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Storyboard Studio API.")
    parser.add_argument("--host", type=str, default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="Reload on code changes.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = load_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Serving Storyboard Studio on %s:%d", args.host, args.port)
    uvicorn.run(
        "storyboard_studio.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
