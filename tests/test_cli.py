"""Tests for the minisheet command line."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from minisheet.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def grid_file(tmp_path: Path) -> Path:
    path = tmp_path / "grid.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "rows": [
                    [1, 2, "=SUM(A1:B1)"],
                    ["x", "=A2+1", "=NOPE(1)"],
                ]
            }
        )
    )
    return path


class TestEval:
    def test_constant(self, runner) -> None:
        result = runner.invoke(main, ["eval", "=(1+2)*3"])
        assert result.exit_code == 0
        assert result.output.strip() == "9"

    def test_without_equals(self, runner) -> None:
        result = runner.invoke(main, ["eval", "7/2"])
        assert result.output.strip() == "3.5"

    def test_with_grid(self, runner, grid_file) -> None:
        result = runner.invoke(main, ["eval", "=C1*2", "--grid", str(grid_file)])
        assert result.exit_code == 0
        assert result.output.strip() == "6"

    def test_in_band_error(self, runner, grid_file) -> None:
        result = runner.invoke(main, ["eval", "=A2+1", "--grid", str(grid_file)])
        assert result.exit_code == 0
        assert result.output.strip() == "#VALUE!"

    def test_plain_list_grid(self, runner, tmp_path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text(yaml.safe_dump([[4], [5]]))
        result = runner.invoke(main, ["eval", "=AVERAGE(A1:A2)", "--grid", str(path)])
        assert result.output.strip() == "4.5"

    def test_parse_error_exits_1(self, runner) -> None:
        result = runner.invoke(main, ["eval", "=1+"])
        assert result.exit_code == 1
        assert "Unexpected end" in result.output

    def test_unknown_function_exits_1(self, runner) -> None:
        result = runner.invoke(main, ["eval", "=FOO(2)"])
        assert result.exit_code == 1
        assert "Unknown function FOO" in result.output

    def test_bad_grid(self, runner, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("rows: 3\n")
        result = runner.invoke(main, ["eval", "=1", "--grid", str(path)])
        assert result.exit_code != 0
        assert "list of rows" in result.output


class TestShift:
    def test_shift(self, runner) -> None:
        result = runner.invoke(main, ["shift", "$A$1+$A1+A$1+A1", "--rows", "1", "--cols", "1"])
        assert result.exit_code == 0
        assert result.output.strip() == "$A$1+$A2+B$1+B2"

    def test_shift_full_formula(self, runner) -> None:
        result = runner.invoke(main, ["shift", "=SUM(A1:B2)", "--rows", "2"])
        assert result.output.strip() == "=SUM(A3:B4)"


class TestShow:
    def test_show(self, runner, grid_file) -> None:
        result = runner.invoke(main, ["show", str(grid_file)])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines == ["1\t2\t3", "x\t#VALUE!\tERR"]

    def test_show_errors(self, runner, grid_file) -> None:
        result = runner.invoke(main, ["show", str(grid_file), "--errors"])
        assert "C2: Unknown function NOPE" in result.output


class TestFunctions:
    def test_list(self, runner) -> None:
        result = runner.invoke(main, ["functions"])
        assert result.output.split() == ["AVERAGE", "MAX", "MIN", "SUM"]


class TestEvents:
    def test_logging_disabled(self, runner) -> None:
        result = runner.invoke(main, ["events"])
        assert result.exit_code != 0
        assert "disabled" in result.output

    def test_no_events(self, runner, tmp_path) -> None:
        (tmp_path / "minisheet.yaml").write_text("log_dir: logs\n")
        result = runner.invoke(main, ["events", "--config", str(tmp_path)])
        assert result.exit_code == 0
        assert "No events found" in result.output

    def test_with_events(self, runner, tmp_path) -> None:
        import minisheet.logging.events as mod
        from minisheet.config import load_config
        from minisheet.logging.events import EventType, emit_info

        (tmp_path / "minisheet.yaml").write_text("log_dir: logs\n")
        old_sink = mod._sink
        try:
            mod.configure_logging(load_config(tmp_path))
            emit_info(EventType.grid_reset, "Grid reset")
        finally:
            mod._sink = old_sink

        result = runner.invoke(main, ["events", "--config", str(tmp_path)])
        assert result.exit_code == 0
        assert "grid_reset" in result.output
        assert "Grid reset" in result.output


class TestConfig:
    def test_defaults(self) -> None:
        from minisheet.config import DEFAULT_CONFIG, load_config

        assert load_config() == {**DEFAULT_CONFIG, "recalc_delay_ms": 16.0}

    def test_file_overrides_and_relative_log_dir(self, tmp_path) -> None:
        from minisheet.config import load_config

        cfg_path = tmp_path / "custom.yaml"
        cfg_path.write_text("rows: 5\ncols: 3\nlog_dir: out\nunknown: 1\n")
        config = load_config(cfg_path)
        assert (config["rows"], config["cols"]) == (5, 3)
        assert config["log_dir"] == str(tmp_path / "out")
        assert "unknown" not in config

    def test_invalid_size(self, tmp_path) -> None:
        from minisheet.config import load_config

        (tmp_path / "minisheet.yaml").write_text("rows: 0\n")
        with pytest.raises(ValueError):
            load_config(tmp_path)
