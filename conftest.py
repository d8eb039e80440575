"""Shared fixtures for the diagram generator tests."""

import pytest

from mcp_drawio_generator.store import DiagramStore
from mcp_drawio_generator.xml_builder import DiagramBuilder


class FakeClock:
    """Manually advanced stand-in for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep scratch and saved diagrams inside the test's tmp directory."""
    monkeypatch.setenv("MCP_DRAWIO_TEMP_DIR", str(tmp_path / "tmp"))
    monkeypatch.setenv("MCP_DRAWIO_OUTPUT_DIR", str(tmp_path / "downloads"))
    monkeypatch.delenv("MCP_DRAWIO_OPEN_APP", raising=False)
    return tmp_path


@pytest.fixture
def builder() -> DiagramBuilder:
    return DiagramBuilder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduled() -> list:
    """Cleanup callbacks the store asked to run later, as (delay, callback)."""
    return []


@pytest.fixture
def store(clock, scheduled) -> DiagramStore:
    return DiagramStore(
        ttl_seconds=3600,
        clock=clock,
        scheduler=lambda delay, callback: scheduled.append((delay, callback)),
    )


@pytest.fixture
def login_steps() -> list:
    return [
        {"id": "s", "type": "start", "text": "Start", "next": ["d"]},
        {
            "id": "d",
            "type": "decision",
            "text": "OK?",
            "next": ["y", "n"],
            "decision_labels": ["Yes", "No"],
        },
        {"id": "y", "type": "process", "text": "Continue"},
        {"id": "n", "type": "process", "text": "Abort"},
    ]
