"""
skate.__main__ — Entry point for ``python -m skate``
======================================================

Commands::

    python -m skate serve [--host 0.0.0.0] [--port 8000] [--reload]
    python -m skate mint-token <admin-name> [--hours 12]

Wiring for ``serve``:
1. Load .env (secrets: JWT_SECRET, DATABASE_URL).
2. Load config.yaml (port, store backend, log level).
3. Hand off to uvicorn; the FastAPI lifespan builds the store and
   starts the expiry sweeper.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta

from dotenv import load_dotenv

from skate.config import load_config

logger = logging.getLogger("skate")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    cfg = load_config()
    _configure_logging(cfg.log_level)
    port = args.port or cfg.api_port
    logger.info("Starting %s on %s:%d", cfg.service_name, args.host, port)
    uvicorn.run(
        "skate.api.main:app",
        host=args.host,
        port=port,
        reload=args.reload,
        log_config=None,
    )
    return 0


def _mint_token(args: argparse.Namespace) -> int:
    _configure_logging("WARNING")
    try:
        from skate.api.auth import issue_admin_token
    except RuntimeError as exc:
        logger.critical("%s", exc)
        return 1
    ttl = timedelta(hours=args.hours) if args.hours > 0 else None
    print(issue_admin_token(args.name, ttl=ttl))
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(prog="skate", description="SKATE challenge service")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=_serve)

    mint = sub.add_parser("mint-token", help="Print an admin JWT")
    mint.add_argument("name")
    mint.add_argument("--hours", type=int, default=12, help="0 = never expires")
    mint.set_defaults(func=_mint_token)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
