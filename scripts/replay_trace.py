#!/usr/bin/env python3
"""
Post a saved trace to a running TraceLens server.

The file holds either a session object ``{"entries": [...], "code": ...,
"file": ...}`` or a bare entry list. ``--code`` attaches a source file's
text when the trace has none.

Usage:
    python scripts/replay_trace.py trace.json
    python scripts/replay_trace.py trace.json --code main.cpp
    python scripts/replay_trace.py trace.json --url http://host:9000
"""

import argparse
import json
import sys
from pathlib import Path

import requests


def load_trace(path: Path, code_path: Path | None = None) -> dict:
    """Read *path* and return a session-shaped payload."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    payload = {"entries": data} if isinstance(data, list) else dict(data)
    if code_path is not None and not payload.get("code"):
        payload["code"] = code_path.read_text(encoding="utf-8")
        payload.setdefault("file", str(code_path))
    return payload


def post_trace(url: str, payload: dict) -> dict:
    resp = requests.post(f"{url.rstrip('/')}/api/debug", json=payload, timeout=30)
    if resp.status_code == 422:
        raise ValueError(f"Trace rejected: {json.dumps(resp.json().get('detail'), indent=2)}")
    resp.raise_for_status()
    return resp.json()


def main():
    parser = argparse.ArgumentParser(description="Post a saved trace to TraceLens")
    parser.add_argument("trace", type=Path, help="JSON trace file")
    parser.add_argument("--code", type=Path, default=None, help="Source file to attach")
    parser.add_argument("--url", default="http://localhost:3000")
    args = parser.parse_args()

    try:
        payload = load_trace(args.trace, args.code)
        result = post_trace(args.url, payload)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except requests.RequestException as e:
        print(f"Server error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Stored session {result['id']} ({result['entries']} entries)")


if __name__ == "__main__":
    main()
