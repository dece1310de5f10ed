"""Tests for the SwarmRoute CLI and its logging setup.

Test Coverage:
- topology / topologies / estimate output, text and JSON
- analyze with and without a manual override
- record followed by analyze with the filesystem backend
- Invalid configuration handling
- Console and JSON Lines formatters, setup_logging
"""

from __future__ import annotations

import json
import logging
import sys

import pytest
from click.testing import CliRunner

from swarmroute import __version__
from swarmroute.interfaces.cli import cli
from swarmroute.interfaces.cli.logging import (
    JsonLinesFormatter,
    SwarmRouteLogFormatter,
    resolve_level,
    setup_logging,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_swarmroute_logger():
    """Undo setup_logging so later tests see default logging."""
    yield
    logger = logging.getLogger("swarmroute")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def filesystem_env(monkeypatch, tmp_path):
    """Point the memory backend at a temporary directory."""
    monkeypatch.setenv("SWARMROUTE_MEMORY__BACKEND", "filesystem")
    monkeypatch.setenv("SWARMROUTE_MEMORY__BASE_PATH", str(tmp_path / "memory"))
    return tmp_path / "memory"


# =============================================================================
# Commands
# =============================================================================


class TestTopologyCommands:
    """Tests for topology and topologies."""

    def test_topology_json(self, runner):
        result = runner.invoke(cli, ["topology", "-c", "2", "-n", "1", "--json"], obj={})

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["topology"] == "single"
        assert data["confidence"] == 0.95

    def test_topology_text(self, runner):
        result = runner.invoke(cli, ["topology", "-c", "8", "-n", "6"], obj={})

        assert result.exit_code == 0
        assert "Topology: hierarchical" in result.output
        assert "6 agents need central coordination" in result.output

    def test_topology_flags(self, runner):
        result = runner.invoke(
            cli, ["topology", "-c", "5", "-n", "3", "--security", "--json"], obj={}
        )
        assert json.loads(result.stdout)["topology"] == "hybrid"

    def test_complexity_out_of_range(self, runner):
        result = runner.invoke(cli, ["topology", "-c", "11", "-n", "1"], obj={})
        assert result.exit_code == 2

    def test_topologies_json(self, runner):
        result = runner.invoke(cli, ["topologies", "--json"], obj={})

        data = json.loads(result.stdout)
        assert set(data) == {"single", "mesh", "hierarchical", "hybrid"}
        assert data["hybrid"]["agent_limit"] == 8

    def test_topologies_text(self, runner):
        result = runner.invoke(cli, ["topologies"], obj={})

        assert result.exit_code == 0
        assert "mesh: Mesh Network (up to 5 agents)" in result.output


class TestEstimateCommand:
    """Tests for estimate."""

    def test_feature(self, runner):
        result = runner.invoke(cli, ["estimate", "-c", "5"], obj={})
        assert result.output.strip() == "6 hours (6.0 hrs)"

    def test_docs(self, runner):
        result = runner.invoke(cli, ["estimate", "-c", "1", "--type", "docs"], obj={})
        assert result.output.strip() == "0.25 hours (15 min)"

    def test_unknown_type_rejected(self, runner):
        result = runner.invoke(cli, ["estimate", "-c", "1", "--type", "spike"], obj={})
        assert result.exit_code == 2


class TestAnalyzeCommand:
    """Tests for analyze."""

    def test_json(self, runner):
        result = runner.invoke(
            cli,
            ["analyze", "-t", "Add OAuth login", "-d", "Use auth tokens", "--json"],
            obj={},
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["analysis"]["ticket_type"] == "feature"
        assert data["topology"]["topology"] == "hybrid"
        assert data["dependencies"]["summary"] == "No dependencies detected"

    def test_text(self, runner):
        result = runner.invoke(
            cli, ["analyze", "-t", "Add OAuth login", "-d", "Use auth tokens", "-l", "security"],
            obj={},
        )

        assert result.exit_code == 0, result.output
        assert "Ticket: Add OAuth login" in result.output
        assert "TOPOLOGY" in result.output
        assert "hybrid" in result.output
        assert "No matching patterns found - using default routing" in result.output

    def test_explicit_reference_without_ids(self, runner):
        result = runner.invoke(
            cli, ["analyze", "-t", "Ship export", "-d", "blocked by #12", "--json"], obj={}
        )

        data = json.loads(result.stdout)
        assert data["dependencies"]["summary"] == "Dependencies: 1 explicit"
        assert data["topology"]["reasoning"][0] == "Dependencies require ordered execution"

    def test_manual_override(self, runner):
        result = runner.invoke(
            cli,
            ["analyze", "-t", "Bump lodash version", "-a", "coder", "--json"],
            obj={},
        )

        data = json.loads(result.stdout)
        assert data["assignment"]["reasoning"] == ["Using manual agent override"]
        assert data["assignment"]["agents"][0]["role"] == "coordinator"
        assert data["topology"]["topology"] == "single"


class TestRecordCommand:
    """Tests for record with a persistent backend."""

    def test_recorded_pattern_is_used(self, runner, filesystem_env):
        ticket = ["-t", "Add OAuth login", "-d", "Use auth tokens"]

        recorded = runner.invoke(cli, ["record", *ticket, "--feedback-loops", "1"], obj={})
        analyzed = runner.invoke(cli, ["analyze", *ticket, "--json"], obj={})

        assert recorded.exit_code == 0, recorded.output
        assert "Stored pattern with 90% success rate" in recorded.output
        assert (filesystem_env / "agent-assignments.json").exists()
        assert json.loads(analyzed.stdout)["assignment"]["from_pattern"] is True


class TestGroup:
    """Tests for group-level options and configuration errors."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"], obj={})
        assert __version__ in result.output

    def test_invalid_configuration(self, runner, monkeypatch):
        monkeypatch.setenv("SWARMROUTE_MEMORY__BACKEND", "redis")

        result = runner.invoke(cli, ["topologies"], obj={})

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_log_file_gets_json_lines(self, runner, tmp_path):
        log_file = tmp_path / "logs" / "swarmroute.jsonl"

        result = runner.invoke(
            cli,
            ["--debug", "--log-file", str(log_file), "analyze", "-t", "Fix crash"],
            obj={},
        )

        assert result.exit_code == 0, result.output
        entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert entries
        assert all(entry["level"] == "DEBUG" for entry in entries)
        assert "CLASSIFIER" in {entry["component"] for entry in entries}


# =============================================================================
# Logging
# =============================================================================


def make_record(message: str = "hello %s", level: int = logging.WARNING) -> logging.LogRecord:
    return logging.LogRecord(
        "swarmroute.assignment.router", level, __file__, 1, message, ("x",), None
    )


class TestLogging:
    """Tests for the CLI logging helpers."""

    def test_console_format(self):
        line = SwarmRouteLogFormatter().format(make_record())
        assert line.endswith("[WARNING] [ROUTER] hello x")

    def test_json_lines_format(self):
        record = make_record()
        record.context = {"pattern_id": "p1"}

        entry = json.loads(JsonLinesFormatter().format(record))

        assert entry["component"] == "ROUTER"
        assert entry["message"] == "hello x"
        assert entry["context"] == {"pattern_id": "p1"}

    def test_json_lines_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "swarmroute.engine", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        entry = json.loads(JsonLinesFormatter().format(record))

        assert entry["error_type"] == "ValueError"
        assert "boom" in entry["error"]

    @pytest.mark.parametrize(
        "level,expected",
        [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("nope", logging.INFO), (40, 40)],
    )
    def test_resolve_level(self, level, expected):
        assert resolve_level(level) == expected

    def test_setup_replaces_handlers(self, tmp_path):
        setup_logging("INFO")
        logger = setup_logging("DEBUG", tmp_path / "app.jsonl")

        assert len(logger.handlers) == 2
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
