import os
os.environ["ENVIRONMENT"] = "testing"
os.environ["ENGINE_TICK_INTERVAL"] = "0"
os.environ.setdefault("SLA_CONFIG_PATH", "tests-missing-sla-config.yaml")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from sla_engine.container import EngineContainer
from sla_engine.sla.domain import SLAConfig, TaskSnapshot
from sla_engine.sla.infrastructure import StaticConfigProvider

PROJECT_ID = "proj-1"
NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> datetime:
        self.now = self.now + timedelta(minutes=minutes)
        return self.now


class RecordingSink:
    """Event sink that remembers every emitted event."""

    def __init__(self):
        self.events = []

    def emit(self, project_id, trigger, payload, channels=None, now=None):
        self.events.append({
            "project_id": project_id,
            "trigger": trigger,
            "payload": payload,
            "channels": channels,
            "now": now,
        })


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def container(clock):
    """Engine without seeded default policies, so each test defines its own."""
    engine = EngineContainer(
        config_provider=StaticConfigProvider(SLAConfig(default_policies=[])),
        clock=clock,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def default_container(clock):
    """Engine seeded with the built-in default policies."""
    engine = EngineContainer(clock=clock)
    yield engine
    engine.dispose()


@pytest.fixture
def make_task():
    def _make(task_id="task-1", minutes_ago=None, **fields):
        if minutes_ago is not None:
            fields.setdefault("created_at", NOW - timedelta(minutes=minutes_ago))
        fields.setdefault("title", f"Task {task_id}")
        return TaskSnapshot(id=task_id, **fields)
    return _make


@pytest.fixture
def response_policy(container):
    """240 minute response target with a 0.25 warning threshold, paused while blocked."""
    return container.policies.upsert_policy(PROJECT_ID, {
        "name": "Response",
        "targets": [{"id": "response", "type": "response", "duration_minutes": 240, "warning_threshold": 0.25}],
        "pause_when": [{"id": "blocked", "reason": "Blocked", "type": "blocked"}],
        "notification_channels": ["slack", "email"],
    }, now=NOW)


@pytest.fixture
def client():
    from sla_engine.main import app

    with TestClient(app) as c:
        yield c
