"""
Lightning SMS Relay: Uvicorn Launcher

Usage:
    python -m lnsms.run
    python -m lnsms.run --port 5555
    python -m lnsms.run --reload

Runs a single worker: the reconciler is an in-process task and the
ledger write lock is per process.
"""
import argparse

import uvicorn

from lnsms.app.core.config import settings


def main():
    parser = argparse.ArgumentParser(description="Lightning SMS Relay server")
    parser.add_argument("--host", default=settings.host, help=f"Bind host (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Enable hot reload for development")

    args = parser.parse_args()

    uvicorn.run(
        "lnsms.app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
