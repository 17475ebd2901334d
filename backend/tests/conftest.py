from __future__ import annotations

import os
from typing import Iterator, List

import pytest

# Keep the module-level stats store local and away from the packaged data dir.
os.environ.setdefault("PHENOM_PERSISTENCE_MODE", "local")

from phenom.telemetry import TelemetryEvent, clear_listeners, register_listener  # noqa: E402


@pytest.fixture
def telemetry_events() -> Iterator[List[TelemetryEvent]]:
    events: List[TelemetryEvent] = []
    register_listener(events.append)
    yield events
    clear_listeners()
