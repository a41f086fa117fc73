"""Command line entry point running the scoring API under uvicorn."""

from __future__ import annotations

import argparse
import logging

from dartscore.backend.config import configure_logging, load_settings


logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Dartscore scoring server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--reload", action="store_true")
    return parser.parse_args(argv)


def build_app():
    from dartscore.backend.api import create_app
    from dartscore.backend.store import create_store

    settings = load_settings()
    return create_app(store=create_store(database_url=settings.database_url, server_salt=settings.server_salt))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    import uvicorn

    logger.info("serving dartscore on %s:%s", args.host, args.port)
    uvicorn.run(
        "dartscore.backend.server:build_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
