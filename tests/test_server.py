"""Tests for the FastAPI endpoints using TestClient."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def client(tmp_path: Path):
    from fastapi.testclient import TestClient

    import minisheet.logging.events as events_mod
    from minisheet.ui.server import create_app

    old_sink = events_mod._sink
    app = create_app({"rows": 3, "cols": 3, "recalc_delay_ms": 16, "log_dir": str(tmp_path / "logs")})
    try:
        yield TestClient(app)
    finally:
        events_mod._sink = old_sink


class TestSheetRoutes:
    def test_root(self, client) -> None:
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "minisheet"

    def test_get_sheet(self, client) -> None:
        data = client.get("/api/sheet").json()
        assert data["rows"] == 3
        assert data["cols"] == 3
        assert data["calc_state"] == "ready"
        assert data["errors"] == []

    def test_edit_and_view(self, client) -> None:
        assert client.post("/api/sheet/edit", json={"addr": "A1", "text": "4"}).status_code == 200
        client.post("/api/sheet/edit", json={"addr": "B1", "text": "=A1*A1"})
        data = client.get("/api/sheet").json()
        assert data["cells"][0][:2] == ["4", "16"]

    def test_edit_bad_address(self, client) -> None:
        resp = client.post("/api/sheet/edit", json={"addr": "Z99", "text": "1"})
        assert resp.status_code == 400
        resp = client.post("/api/sheet/edit", json={"addr": "nope", "text": "1"})
        assert resp.status_code == 400

    def test_focus_and_blur(self, client) -> None:
        client.post("/api/sheet/edit", json={"addr": "A1", "text": "=1+1"})
        resp = client.post("/api/sheet/focus", json={"addr": "A1"})
        assert resp.json()["text"] == "=1+1"
        client.post("/api/sheet/edit", json={"addr": "A1", "text": "=  2 *   3"})
        assert client.get("/api/sheet").json()["cells"][0][0] == "=  2 *   3"
        data = client.post("/api/sheet/blur").json()
        assert data["active"] is None
        assert data["cells"][0][0] == "6"

    def test_error_overlay(self, client) -> None:
        client.post("/api/sheet/edit", json={"addr": "C3", "text": "=A1:B2"})
        data = client.get("/api/sheet").json()
        assert data["cells"][2][2] == "ERR"
        assert data["errors"][0]["addr"] == "C3"
        assert data["errors"][0]["message"] == "Invalid range in expression"

    def test_rows_and_cols(self, client) -> None:
        data = client.post("/api/sheet/rows", json={"action": "add"}).json()
        assert data["rows"] == 4
        data = client.post("/api/sheet/cols", json={"action": "remove"}).json()
        assert data["cols"] == 2
        resp = client.post("/api/sheet/rows", json={"action": "explode"})
        assert resp.status_code == 400

    def test_resize(self, client) -> None:
        data = client.post("/api/sheet/resize", json={"rows": 5, "cols": 6}).json()
        assert (data["rows"], data["cols"]) == (5, 6)
        resp = client.post("/api/sheet/resize", json={"rows": 0, "cols": 6})
        assert resp.status_code == 400

    def test_load_and_reset(self, client) -> None:
        data = client.post("/api/sheet/load", json={"rows": [[1, 2, "=SUM(A1:B1)"]]}).json()
        assert data["cells"] == [["1", "2", "3"]]
        data = client.post("/api/sheet/reset").json()
        assert (data["rows"], data["cols"]) == (3, 3)


class TestClipboardRoutes:
    def test_copy_paste(self, client) -> None:
        client.post("/api/sheet/load", json={"rows": [["1", "=A1+1"], ["5", ""]]})
        text = client.post("/api/clipboard/copy", json={"addr": "B1"}).json()["text"]
        data = client.post("/api/clipboard/paste", json={"addr": "B2", "text": text}).json()
        assert data["written"] == 1
        assert data["cells"][1][1] == "6"

    def test_cut(self, client) -> None:
        client.post("/api/sheet/edit", json={"addr": "A1", "text": "x"})
        resp = client.post("/api/clipboard/cut", json={"addr": "A1"})
        assert resp.json()["text"] == "x"
        assert client.get("/api/sheet").json()["cells"][0][0] == ""


class TestFormulaRoutes:
    def test_validate(self, client) -> None:
        data = client.post("/api/formula/validate", json={"text": "=MAX(1, A2)"}).json()
        assert data["ok"] is True
        data = client.post("/api/formula/validate", json={"text": "=1 $"}).json()
        assert data["ok"] is False
        assert data["error"] == "Unexpected character $"

    def test_shift(self, client) -> None:
        data = client.post("/api/formula/shift", json={"text": "$A$1+$A1+A$1+A1", "d_row": 1, "d_col": 1}).json()
        assert data["text"] == "$A$1+$A2+B$1+B2"

    def test_functions(self, client) -> None:
        assert client.get("/api/formula/functions").json() == ["AVERAGE", "MAX", "MIN", "SUM"]


class TestEventRoutes:
    def test_events_logged(self, client) -> None:
        client.post("/api/sheet/edit", json={"addr": "A1", "text": "=BAD(1)"})
        client.get("/api/sheet")
        events = client.get("/api/events").json()
        types = {e["event_type"] for e in events}
        assert "recalc_completed" in types
        assert "formula_error" in types

    def test_events_filtered(self, client) -> None:
        client.post("/api/sheet/reset")
        events = client.get("/api/events", params={"event_type": "grid_reset"}).json()
        assert len(events) == 1
        assert events[0]["level"] == "info"
