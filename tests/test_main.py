"""Tests for the terminal observer in main.py."""

import pytest
import requests
from conftest import make_entries, make_session

import main
from tracekit.grouping import group_entries
from tracekit.mirror import SessionMirror
from tracekit.models import Binding, Entry, Session


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch):
    monkeypatch.setattr(main, "_USE_COLOR", False)
    monkeypatch.setattr(main, "_VERBOSE", False)


class TestSSEParsing:
    def test_events_and_pings(self):
        lines = [
            ": ping",
            "",
            'data: {"type": "init", "payload": []}',
            "",
            "event: custom",
            'data: {"type": "add"}',
            "",
            "data: not-json",
            "",
        ]
        events = list(main.iter_sse_events(lines))
        assert events == [
            ("message", {"type": "init", "payload": []}),
            ("custom", {"type": "add"}),
            ("message", {"raw": "not-json"}),
        ]

    def test_multiline_data(self):
        lines = ['data: {"type":', 'data: "delete", "id": "x"}', ""]
        assert list(main.iter_sse_events(lines)) == [("message", {"type": "delete", "id": "x"})]


class TestFormatting:
    def test_outline_marks_active_step(self):
        groups = group_entries(make_entries([1, 2, 3, 2, 3, 4]))
        lines = main.format_outline(groups, active_index=4)
        text = "\n".join(lines)
        assert "loop line 2 x2 [1, 5)" in text
        assert any(line.strip().startswith("> line 3 #4") for line in lines)
        assert "iter 2: line 2 #3" in text

    def test_outline_hides_extra_iterations(self):
        groups = group_entries(make_entries([7] * 5))
        text = "\n".join(main.format_outline(groups))
        assert text.count("iter ") == 3
        assert "... 2 more iterations" in text

    def test_outline_verbose_shows_all(self, monkeypatch):
        monkeypatch.setattr(main, "_VERBOSE", True)
        groups = group_entries(make_entries([7] * 5))
        assert "\n".join(main.format_outline(groups)).count("iter ") == 5

    def test_format_value(self):
        assert main.format_value(3) == ["3"]
        assert main.format_value({"a": 1}) == ['{"a": 1}']
        assert main.format_value([[1], [2]]) == ["[[1], [2]]"]
        assert main.format_value([10, 20]) == ["0  10", "1  20"]

    def test_format_graph(self):
        view = {
            "label": "G",
            "graph": {
                "nodes": [{"id": "a", "label": "a", "color": "#112233"},
                          {"id": "b", "label": "b", "color": "#445566"}],
                "links": [{"source": "a", "target": "b", "weight": 2}],
                "weighted": True,
            },
        }
        lines = main.format_graph(view)
        assert lines[0] == "G: 2 nodes, 1 links (weighted)"
        assert lines[1] == "  a #112233 -> b(2)"
        assert lines[2] == "  b #445566 -> -"

    def test_format_graph_unrecognized(self):
        lines = main.format_graph({"label": "G", "graph": None})
        assert "not a recognizable adjacency structure" in lines[0]


class TestRender:
    def test_waiting_screen(self):
        assert "Awaiting trace sessions" in main.render(SessionMirror())

    def test_render_session_with_graph(self):
        entry = Entry(line=12, content=(
            Binding("n", 3),
            Binding("adj", {"kind": "graph", "adjacency": [[1], [0]], "label": "Tree"}),
        ))
        session = Session(id="s1", file="src/main.cpp", entries=(entry,))
        mirror = SessionMirror()
        mirror.apply({"type": "init", "payload": [session.to_dict()]})
        text = main.render(mirror)
        assert "> main.cpp (1 steps, id s1)" in text
        assert "Variables at line 12" in text
        assert "n = 3" in text
        # Graph bindings are not repeated as plain variables
        assert "adj =" not in text
        assert "[graph] Tree: 2 nodes, 2 links (unweighted)" in text

    def test_unnamed_session_label(self):
        mirror = SessionMirror()
        mirror.apply({"type": "init", "payload": [make_session(id="x").to_dict()]})
        assert "Session 1" in main.render(mirror)


class TestAPIClient:
    def test_url_building(self):
        client = main.APIClient("http://localhost:3000/")
        assert client._url("/debug") == "http://localhost:3000/api/debug"


class _StopFollowing(Exception):
    pass


class TestFollow:
    def _run(self, monkeypatch, first_failure):
        calls = []

        class FakeClient:
            def stream(self):
                calls.append("stream")
                if len(calls) > 1:
                    raise _StopFollowing()
                yield {"type": "init", "payload": []}
                raise first_failure

        sleeps = []
        monkeypatch.setattr(main.time, "sleep", sleeps.append)
        with pytest.raises(_StopFollowing):
            main.follow(FakeClient(), retry_seconds=0.5)
        return calls, sleeps

    def test_reconnects_after_broken_chunked_stream(self, monkeypatch, capsys):
        calls, sleeps = self._run(
            monkeypatch, requests.exceptions.ChunkedEncodingError("Connection broken: IncompleteRead")
        )
        assert calls == ["stream", "stream"]
        assert sleeps == [0.5]
        assert "Stream error" in capsys.readouterr().out

    def test_reconnects_after_connection_error(self, monkeypatch, capsys):
        calls, _ = self._run(monkeypatch, requests.ConnectionError("refused"))
        assert calls == ["stream", "stream"]
        assert "Lost connection" in capsys.readouterr().out
