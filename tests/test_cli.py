"""Tests for the herald CLI trace replay.

These tests verify that the CLI correctly:
- Replays a trace through the default policy
- Applies config files, startup verbosity and command-line overrides
- Maps fatal and quit-count terminations to exit codes
- Reports bad input with exit code 1
"""

import json

import pytest
from click.testing import CliRunner

from herald.cli import cli


def write_trace(path, records):
    """Write records as a JSONL trace file."""
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n")
    return path


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep config discovery away from the user's home and working directory."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("HERALD_VERBOSITY", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def runner():
    return CliRunner()


class TestBasicCLI:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "--set-verbosity" in result.output

    def test_no_trace_prints_help(self, runner):
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "--max-quit-count" in result.output

    def test_version(self, runner):
        from herald import __version__

        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"herald {__version__}" in result.output

    def test_replay_example_trace(self, runner, example_trace):
        result = runner.invoke(cli, [str(example_trace)])

        assert result.exit_code == 0
        assert "INFO @ 0: top [BUILD] build phase started" in result.output
        assert "ERROR scoreboard.sv(88) @ 25: top.env.scb [MISMATCH] expected 0x1 got 0x0" in result.output
        assert "run phase complete" in result.output
        # HIGH and FULL messages are above the default MEDIUM threshold
        assert "driving item 0" not in result.output
        assert "sampled item 0" not in result.output
        assert "Report Summary" in result.output
        assert "[MISMATCH] 2" in result.output

    def test_no_summary(self, runner, example_trace):
        result = runner.invoke(cli, [str(example_trace), "--no-summary"])
        assert result.exit_code == 0
        assert "Report Summary" not in result.output


class TestVerbosity:
    def test_global_verbosity_option(self, runner, example_trace):
        result = runner.invoke(cli, [str(example_trace), "--verbosity", "HIGH"])
        assert result.exit_code == 0
        assert "driving item 0" in result.output
        assert "bus idle" in result.output
        assert "sampled item 0" not in result.output

    def test_verbosity_from_environment(self, runner, example_trace, monkeypatch):
        monkeypatch.setenv("HERALD_VERBOSITY", "FULL")
        result = runner.invoke(cli, [str(example_trace)])
        assert result.exit_code == 0
        assert "sampled item 0" in result.output

    def test_startup_verbosity_beats_config(self, runner, example_trace, tmp_path):
        config = tmp_path / "low.toml"
        config.write_text('[general]\nverbosity = "LOW"\n')

        quiet = runner.invoke(cli, [str(example_trace), "--config", str(config)])
        assert "environment configured" not in quiet.output

        loud = runner.invoke(cli, [str(example_trace), "--config", str(config), "--verbosity", "HIGH"])
        assert "environment configured" in loud.output
        assert "driving item 0" in loud.output

    def test_example_config(self, runner, example_trace, example_config):
        result = runner.invoke(cli, [str(example_trace), "--config", str(example_config)])
        assert result.exit_code == 0
        assert "driving item 0" in result.output
        assert "bus idle" not in result.output

    def test_discovered_config(self, runner, example_trace, tmp_path):
        (tmp_path / "herald.toml").write_text('[general]\nverbosity = "FULL"\n')
        result = runner.invoke(cli, [str(example_trace)])
        assert "sampled item 0" in result.output

    def test_set_verbosity_for_one_id(self, runner, example_trace):
        result = runner.invoke(cli, [str(example_trace), "--set-verbosity", "top.env.agent.drv,DRV1,HIGH"])
        assert result.exit_code == 0
        assert "driving item 0" in result.output
        assert "bus idle" not in result.output

    def test_set_verbosity_glob_all_ids(self, runner, example_trace):
        result = runner.invoke(cli, [str(example_trace), "--set-verbosity", "top.env.agent.*,_ALL_,FULL"])
        assert "bus idle" in result.output
        assert "sampled item 0" in result.output

    def test_invalid_verbosity(self, runner, example_trace):
        result = runner.invoke(cli, [str(example_trace), "--verbosity", "LOUD"])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestActions:
    def test_set_action_silences_warning(self, runner, example_trace):
        result = runner.invoke(
            cli, [str(example_trace), "--set-action", "top.env.scb,_ALL_,WARNING,NO_ACTION"]
        )
        assert result.exit_code == 0
        assert "late response" not in result.output
        assert "expected 0x1" in result.output

    def test_unknown_component_in_override(self, runner, example_trace):
        result = runner.invoke(cli, [str(example_trace), "--set-action", "nowhere,_ALL_,ERROR,DISPLAY"])
        assert result.exit_code == 1
        assert "No component matches" in result.output

    def test_log_file(self, runner, example_trace, tmp_path):
        log = tmp_path / "run.log"
        result = runner.invoke(cli, [str(example_trace), "--log", str(log), "--no-summary"])

        assert result.exit_code == 0
        lines = log.read_text().splitlines()
        assert lines[0] == "INFO @ 0: top [BUILD] build phase started"
        assert any("[MISMATCH]" in line for line in lines)
        assert not any("DRV1" in line for line in lines)


class TestTermination:
    def test_fatal_exits_with_fatal_code(self, runner, tmp_path):
        trace = write_trace(tmp_path / "fatal.jsonl", [
            {"component": "top", "id": "BOOT", "text": "starting", "verbosity": "LOW"},
            {"component": "top.env", "id": "DEAD", "severity": "FATAL", "text": "no clock"},
            {"component": "top", "id": "AFTER", "text": "never shown", "verbosity": "LOW"},
        ])

        result = runner.invoke(cli, [str(trace)])

        assert result.exit_code == 3
        assert "FATAL: top.env [DEAD] no clock" in result.output
        assert "never shown" not in result.output
        assert "Report Summary" in result.output

    def test_fatal_is_shown_at_any_verbosity(self, runner, tmp_path):
        trace = write_trace(tmp_path / "fatal.jsonl", [
            {"component": "top", "id": "DEAD", "severity": "FATAL", "verbosity": "DEBUG", "text": "no clock"},
        ])
        result = runner.invoke(cli, [str(trace), "--verbosity", "NONE"])
        assert result.exit_code == 3
        assert "no clock" in result.output

    def test_max_quit_count(self, runner, example_trace):
        result = runner.invoke(cli, [str(example_trace), "--max-quit-count", "2"])

        assert result.exit_code == 4
        assert "expected 0x2" in result.output
        assert "run phase complete" not in result.output
        assert "Quit count : 2 of 2" in result.output

    def test_component_quit_count_from_config(self, runner, tmp_path):
        trace = write_trace(tmp_path / "errors.jsonl", [
            {"component": "top.a", "id": "E", "severity": "ERROR", "text": "a1"},
            {"component": "top.b", "id": "E", "severity": "ERROR", "text": "b1"},
            {"component": "top.a", "id": "E", "severity": "ERROR", "text": "a2"},
            {"component": "top.b", "id": "E", "severity": "ERROR", "text": "b2"},
        ])
        config = tmp_path / "quit.toml"
        config.write_text('[components."top.a"]\nmax_quit_count = 2\n')

        result = runner.invoke(cli, [str(trace), "--config", str(config)])

        assert result.exit_code == 4
        assert "a2" in result.output
        assert "b2" not in result.output

    def test_report_file(self, runner, example_trace, tmp_path):
        report_path = tmp_path / "out" / "report.json"
        result = runner.invoke(
            cli, [str(example_trace), "--max-quit-count", "1", "--report", str(report_path)]
        )

        assert result.exit_code == 4
        report = json.loads(report_path.read_text())
        assert report["exit_code"] == 4
        assert report["termination"] == "max-quit-count"
        assert report["error_count"] == 1
        assert report["counts"]["by_severity"]["ERROR"] == 1


class TestBadInput:
    def test_invalid_json(self, runner, tmp_path):
        trace = tmp_path / "bad.jsonl"
        trace.write_text('{"component": "top", "id": "A"}\n{not json\n')

        result = runner.invoke(cli, [str(trace)])

        assert result.exit_code == 1
        assert "line 2" in result.output

    def test_invalid_record(self, runner, tmp_path):
        trace = write_trace(tmp_path / "bad.jsonl", [{"component": "top", "id": "A", "severity": "LOUD"}])
        result = runner.invoke(cli, [str(trace)])
        assert result.exit_code == 1
        assert "Invalid record" in result.output

    def test_unknown_component_in_config(self, runner, example_trace, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text('[components."top.nope"]\nverbosity = "HIGH"\n')
        result = runner.invoke(cli, [str(example_trace), "--config", str(config)])
        assert result.exit_code == 1
        assert "Unknown component" in result.output

    def test_mistyped_config_value(self, runner, example_trace, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text('[components."top.env.scb"]\nmax_quit_count = "3"\n')
        result = runner.invoke(cli, [str(example_trace), "--config", str(config)])
        assert result.exit_code == 1
        assert "max_quit_count must be a non-negative integer" in result.output

    def test_missing_trace(self, runner, tmp_path):
        result = runner.invoke(cli, [str(tmp_path / "missing.jsonl")])
        assert result.exit_code == 2


class TestListPlugins:
    def test_no_plugins(self, runner, monkeypatch):
        monkeypatch.setattr("herald.core.plugin.entry_points", lambda group: [])
        result = runner.invoke(cli, ["--list-plugins"])
        assert result.exit_code == 0
        assert "No plugins found" in result.output
