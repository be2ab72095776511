#!/usr/bin/env python3
"""TraceLens terminal observer.

Connects to the FastAPI backend's live session stream and prints, for the
latest session, its step outline (singles and detected loops), the values
captured at the selected step, and any graph bindings with their node
colors. Reconnects on disconnect and starts again from a fresh snapshot.

Usage:
    python main.py                          # Follow the live stream
    python main.py --once                   # Print the current snapshot and exit
    python main.py --url http://host:9000   # Custom server URL
    python main.py --delete ID              # Delete a session and exit
    python main.py --no-color               # Disable ANSI colors
    python main.py --verbose                # Show every loop iteration
"""

import argparse
import json
import sys
import time

import requests

from rendering.graph import find_graph_bindings, graph_payload_from_value, graph_view
from tracekit.grouping import SingleStep, group_entries
from tracekit.mirror import SessionMirror

# ---- ANSI colors ----

_USE_COLOR = True
_VERBOSE = False

# Iterations shown per loop unless --verbose
_MAX_ITERATIONS_SHOWN = 3


def _c(code: str, text: str) -> str:
    if not _USE_COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def dim(text: str) -> str:
    return _c("2", text)


def cyan(text: str) -> str:
    return _c("36", text)


def green(text: str) -> str:
    return _c("32", text)


def yellow(text: str) -> str:
    return _c("33", text)


def red(text: str) -> str:
    return _c("31", text)


def bold(text: str) -> str:
    return _c("1", text)


# ---- SSE parsing ----

def iter_sse_events(lines):
    """Parse SSE events from an iterable of decoded lines.

    Yields (event_type, data_dict) tuples. Comment lines (keep-alive
    pings) are skipped.
    """
    event_type = "message"
    data_lines = []

    for line in lines:
        if line is None:
            continue

        if line == "":
            # Empty line = end of event
            if data_lines:
                raw = "\n".join(data_lines)
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    data = {"raw": raw}
                yield event_type, data
            event_type = "message"
            data_lines = []
            continue

        if line.startswith("event:"):
            event_type = line[len("event:"):].strip()
        elif line.startswith("data:"):
            data_lines.append(line[len("data:"):].strip())
        # Ignore comments (lines starting with ':') and other fields


# ---- API helpers ----

class APIClient:
    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api{path}"

    def check_server(self) -> dict:
        resp = requests.get(self._url("/status"), timeout=5)
        resp.raise_for_status()
        return resp.json()

    def get_sessions(self) -> list:
        resp = requests.get(self._url("/debug"), timeout=10)
        resp.raise_for_status()
        return resp.json().get("sessions", [])

    def delete_session(self, session_id: str) -> bool:
        resp = requests.delete(self._url("/debug"), params={"id": session_id}, timeout=5)
        if resp.status_code == 404:
            return False
        resp.raise_for_status()
        return True

    def stream(self):
        """Yield stream messages until the server closes the connection."""
        resp = requests.get(self._url("/debug/stream"), stream=True, timeout=(5, None))
        resp.raise_for_status()
        try:
            for _event_type, data in iter_sse_events(resp.iter_lines(decode_unicode=True)):
                yield data
        finally:
            resp.close()


# ---- Formatting ----

def format_value(value) -> list[str]:
    """Lines for one captured value: flat lists as an index table, the rest inline."""
    if isinstance(value, list) and value and not any(isinstance(v, list) for v in value):
        width = len(str(len(value) - 1))
        return [
            f"{dim(str(i).rjust(width))}  {json.dumps(v) if isinstance(v, dict) else v}"
            for i, v in enumerate(value)
        ]
    if isinstance(value, (dict, list)):
        return [json.dumps(value)]
    return [str(value)]


def format_outline(groups, active_index: int = -1, depth: int = 0) -> list[str]:
    """Indented outline lines; the step at *active_index* is marked with '>'."""
    pad = "  " * depth
    lines = []
    for g in groups:
        if isinstance(g, SingleStep):
            mark = ">" if g.entry_index == active_index else " "
            lines.append(f"{pad}{mark} line {g.line} {dim(f'#{g.entry_index}')}")
            continue
        lines.append(
            f"{pad}  {yellow('loop')} line {g.line} "
            f"x{len(g.iterations)} {dim(f'[{g.start_index}, {g.end_index})')}"
        )
        shown = g.iterations if _VERBOSE else g.iterations[:_MAX_ITERATIONS_SHOWN]
        for n, it in enumerate(shown, 1):
            inside = it.start <= active_index < it.end
            mark = ">" if it.entry_index == active_index else (dim("*") if inside else " ")
            lines.append(f"{pad}  {mark} iter {n}: line {it.entry.line} {dim(f'#{it.entry_index}')}")
            lines.extend(format_outline(it.nested_groups, active_index, depth + 2))
        hidden = len(g.iterations) - len(shown)
        if hidden > 0:
            lines.append(f"{pad}    {dim(f'... {hidden} more iterations')}")
    return lines


def format_graph(view: dict) -> list[str]:
    graph = view.get("graph")
    title = bold(view["label"])
    if graph is None:
        return [f"{title}: {dim('not a recognizable adjacency structure')}"]
    kind = "weighted" if graph["weighted"] else "unweighted"
    lines = [f"{title}: {len(graph['nodes'])} nodes, {len(graph['links'])} links ({kind})"]
    for node in graph["nodes"]:
        out = [
            link["target"] if "weight" not in link else f"{link['target']}({link['weight']})"
            for link in graph["links"] if link["source"] == node["id"]
        ]
        lines.append(f"  {node['label']} {dim(node['color'])} -> {', '.join(out) or '-'}")
    return lines


def render(mirror: SessionMirror) -> str:
    """Full screen of text for the mirror's current selection."""
    if not mirror.sessions:
        return dim("Awaiting trace sessions...")

    out = [bold("Sessions")]
    for i, s in enumerate(mirror.sessions):
        mark = ">" if i == mirror.selected_session else " "
        name = s.label or f"Session {i + 1}"
        out.append(f"{mark} {name} {dim(f'({len(s.entries)} steps, id {s.id})')}")

    session = mirror.active_session
    out.append("")
    out.append(bold("Steps"))
    out.extend(format_outline(group_entries(session.entries), mirror.selected_entry))

    entry = mirror.active_entry
    out.append("")
    if entry is None:
        out.append(dim("No variables available for this step yet."))
        return "\n".join(out)

    out.append(bold(f"Variables at line {entry.line}"))
    for binding in entry.content:
        if graph_payload_from_value(binding.value) is not None:
            continue
        value_lines = format_value(binding.value)
        if len(value_lines) == 1:
            out.append(f"  {cyan(binding.id)} = {value_lines[0]}")
        else:
            out.append(f"  {cyan(binding.id)}:")
            out.extend(f"    {line}" for line in value_lines)

    for binding, payload in find_graph_bindings(entry):
        active = binding.id == mirror.selected_graph
        out.append("")
        prefix = green("[graph] ") if active else "[graph] "
        lines = format_graph(graph_view(binding, payload))
        out.append(prefix + lines[0])
        out.extend(lines[1:])
    return "\n".join(out)


# ---- Main loop ----

def follow(client: APIClient, retry_seconds: float = 2.0) -> None:
    """Print the screen on every stream message; reconnect on disconnect."""
    while True:
        mirror = SessionMirror()
        try:
            for message in client.stream():
                if mirror.apply(message):
                    print("\033[2J\033[H" if _USE_COLOR else "\n" + "-" * 60)
                    print(render(mirror))
        except requests.ConnectionError:
            print(red("  Lost connection to server."))
        except requests.RequestException as e:
            print(red(f"  Stream error: {e}"))
        print(dim(f"  Reconnecting in {retry_seconds:.0f}s..."))
        time.sleep(retry_seconds)


def main():
    global _USE_COLOR, _VERBOSE

    parser = argparse.ArgumentParser(description="Terminal observer for the TraceLens backend")
    parser.add_argument(
        "--url", default="http://localhost:3000",
        help="API server URL (default: http://localhost:3000)",
    )
    parser.add_argument("--once", action="store_true", help="Print the current snapshot and exit")
    parser.add_argument("--delete", metavar="ID", default=None, help="Delete a session and exit")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI color output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show every loop iteration")
    args = parser.parse_args()

    if args.no_color:
        _USE_COLOR = False
    _VERBOSE = args.verbose

    client = APIClient(args.url)
    try:
        status = client.check_server()
    except requests.RequestException as e:
        print(red(f"Server not reachable at {args.url}: {e}"))
        sys.exit(1)

    if args.delete:
        if client.delete_session(args.delete):
            print(f"Deleted session {args.delete}.")
        else:
            print(red(f"Session not found: {args.delete}"))
            sys.exit(1)
        return

    if args.once:
        mirror = SessionMirror()
        mirror.apply({"type": "init", "payload": client.get_sessions()})
        print(render(mirror))
        return

    print(f"Connected to {args.url} -- {status.get('sessions', 0)} sessions")
    try:
        follow(client)
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
