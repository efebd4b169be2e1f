"""Shared pytest fixtures for herald tests."""

import io

import pytest
from pathlib import Path
from rich.console import Console

from herald.core.reporter import Reporter


class ExitRecorder:
    """Exit handler that records termination events instead of exiting."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)


@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def example_trace(project_root):
    """Example trace shipped with the project."""
    return project_root / "examples/uvm/trace.jsonl"


@pytest.fixture
def example_config(project_root):
    """Example config shipped with the project."""
    return project_root / "examples/uvm/herald.toml"


@pytest.fixture
def output():
    """In-memory text buffer for console output."""
    return io.StringIO()


@pytest.fixture
def exits():
    return ExitRecorder()


@pytest.fixture
def reporter(output, exits):
    """Reporter writing plain text to `output` and recording terminations."""
    console = Console(file=output, force_terminal=False, color_system=None, width=200)
    return Reporter(console=console, color=False, exit_handler=exits)


@pytest.fixture
def tree(reporter):
    """Small component tree:

    top
    +-- env
        +-- agent
        |   +-- drv
        |   +-- mon
        +-- scb
    """
    top = reporter.create_component("top")
    env = reporter.create_component("env", parent=top)
    agent = reporter.create_component("agent", parent=env)
    drv = reporter.create_component("drv", parent=agent)
    mon = reporter.create_component("mon", parent=agent)
    scb = reporter.create_component("scb", parent=env)
    return {"top": top, "env": env, "agent": agent, "drv": drv, "mon": mon, "scb": scb}


# Pytest markers
def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")
