#!/usr/bin/env python
"""Entry point for the FastAPI backend server.

Usage:
    python api_server.py [--port 3000] [--host 127.0.0.1] [--verbose]
"""

import argparse

import uvicorn

from api.app import create_app
from tracekit.logging import attach_log_file, setup_logging

app = create_app()


def main():
    parser = argparse.ArgumentParser(description="TraceLens FastAPI server")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logs on the console")
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)
    attach_log_file("server")

    uvicorn.run(
        "api_server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
