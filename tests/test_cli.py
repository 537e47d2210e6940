"""Tests for the simulator CLI — proves CLI dispatches correctly."""

import json
from pathlib import Path

import pytest

from mlmsim.cli import build_parser, main


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_simulate_command(self) -> None:
        args = build_parser().parse_args(["simulate", "--script", "x.json", "--strict"])
        assert args.command == "simulate"
        assert args.script == Path("x.json")
        assert args.strict is True

    def test_log_level_default(self) -> None:
        assert build_parser().parse_args(["demo"]).log_level == "WARNING"


class TestCLIExecution:
    def test_no_command_shows_help(self) -> None:
        assert main([]) == 0

    def test_status_runs(self, capsys) -> None:
        assert main(["status"]) == 0
        status = json.loads(capsys.readouterr().out)
        assert status["root_id"] == "A"

    def test_demo_runs(self, capsys) -> None:
        assert main(["demo"]) == 0
        report = json.loads(capsys.readouterr().out)
        root = report["participants"][0]
        assert root["paid_pairs"] == ["B-C"]
        assert report["events"][-1].startswith("Pairing bonus awarded to User A (A)")

    def test_check_invariants_runs(self) -> None:
        assert main(["check-invariants"]) == 0

    def test_check_invariants_flags_bad_config(self, tmp_path: Path) -> None:
        (tmp_path / "compensation_params.json").write_text(json.dumps({
            "unit_direct_bonus": 2500.0,
            "unit_pair_bonus": "-1",
            "root_name": "",
            "max_depth": 0,
        }))
        assert main(["--config", str(tmp_path), "check-invariants"]) == 1


class TestSimulate:
    def _script(self, tmp_path: Path, commands: list) -> Path:
        path = tmp_path / "script.json"
        path.write_text(json.dumps(commands))
        return path

    def test_replays_commands(self, tmp_path: Path, capsys) -> None:
        script = self._script(tmp_path, [
            {"op": "add", "sponsor": "A", "name": "User B"},
            {"op": "add", "sponsor": "A", "name": "User C"},
            {"op": "activate", "id": "B"},
            {"op": "activate", "id": "C"},
            {"op": "check-pair", "id": "A"},
        ])
        assert main(["simulate", "--script", str(script)]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["stats"]["active_members"] == 2
        assert report["participants"][0]["pair_count"] == 1

    def test_failed_command_non_strict(self, tmp_path: Path) -> None:
        script = self._script(tmp_path, [{"op": "add", "sponsor": "Q", "name": "X"}])
        assert main(["simulate", "--script", str(script)]) == 0

    def test_failed_command_strict(self, tmp_path: Path) -> None:
        script = self._script(tmp_path, [{"op": "activate", "id": "Q"}])
        assert main(["simulate", "--script", str(script), "--strict"]) == 1

    def test_unknown_op(self, tmp_path: Path) -> None:
        script = self._script(tmp_path, [{"op": "delete", "id": "A"}])
        assert main(["simulate", "--script", str(script)]) == 1

    def test_missing_script(self, tmp_path: Path) -> None:
        assert main(["simulate", "--script", str(tmp_path / "nope.json")]) == 1

    def test_script_not_a_list(self, tmp_path: Path) -> None:
        path = tmp_path / "script.json"
        path.write_text(json.dumps({"op": "add"}))
        assert main(["simulate", "--script", str(path)]) == 1


class TestConfigErrors:
    def test_status_with_empty_config_dir_fails_cleanly(self, tmp_path: Path, capsys) -> None:
        assert main(["--config", str(tmp_path), "status"]) == 1
        assert "Missing config file" in capsys.readouterr().err

    def test_demo_with_malformed_config_fails_cleanly(self, tmp_path: Path, capsys) -> None:
        (tmp_path / "compensation_params.json").write_text("{not json")
        assert main(["--config", str(tmp_path), "demo"]) == 1
        assert "Failed to load config" in capsys.readouterr().err

    def test_simulate_with_invalid_params_fails_cleanly(self, tmp_path: Path, capsys) -> None:
        (tmp_path / "compensation_params.json").write_text(json.dumps({"max_depth": 0}))
        script = tmp_path / "script.json"
        script.write_text("[]")
        assert main(["--config", str(tmp_path), "simulate", "--script", str(script)]) == 1
        assert "max_depth" in capsys.readouterr().err

    def test_absent_default_config_falls_back_to_defaults(
        self, tmp_path: Path, monkeypatch, capsys,
    ) -> None:
        monkeypatch.setattr("mlmsim.cli.DEFAULT_CONFIG", tmp_path / "absent")
        assert main(["status"]) == 0
        status = json.loads(capsys.readouterr().out)
        assert status["root_id"] == "A"
