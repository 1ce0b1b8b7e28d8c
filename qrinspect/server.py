"""CLI entry-point for running the API under uvicorn."""
from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

import uvicorn

from qrinspect.core import config

log = logging.getLogger("qrinspect.server")


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the QR Inspect API server")
    parser.add_argument("--host", default=config.HOST, help="Host interface to bind (default: %(default)s)")
    parser.add_argument("--port", type=int, default=config.PORT, help="Port to listen on (default: %(default)s)")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes (default: %(default)s)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    log.info("starting QR Inspect on http://%s:%s (workers=%s)", args.host, args.port, args.workers)
    uvicorn.run(
        "qrinspect.main:app",
        host=args.host,
        port=args.port,
        workers=args.workers,
        reload=args.reload,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
