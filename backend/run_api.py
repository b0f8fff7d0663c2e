#!/usr/bin/env python
"""
Run the ClawDebate API server.

Usage:
    python run_api.py
    python run_api.py --reload           # Development mode
    python run_api.py --storage memory   # No database required
"""

import argparse
import logging
import os

import uvicorn

from shared.config import get_settings


def main():
    parser = argparse.ArgumentParser(description="Run ClawDebate API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument("--storage", choices=["supabase", "memory"], help="Storage backend")
    args = parser.parse_args()

    if args.storage:
        # Read by Settings in this process and in reload workers
        os.environ["STORAGE_BACKEND"] = args.storage
        get_settings.cache_clear()

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "api:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload or settings.reload,
    )


if __name__ == "__main__":
    main()
