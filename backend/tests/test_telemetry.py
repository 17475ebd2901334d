from __future__ import annotations

import logging
from datetime import date

from phenom.logging_config import configure_logging
from phenom.progression import SessionMode
from phenom.telemetry import emit_event, register_listener


def test_payload_is_sanitized_for_listeners(telemetry_events) -> None:
    emit_event("stats_synced", uid="learner", day=date(2024, 5, 10), ids={3, 1}, pair=(1, 2))

    event = telemetry_events[0]
    assert event.name == "stats_synced"
    assert event.payload == {"uid": "learner", "day": "2024-05-10", "ids": [1, 3], "pair": [1, 2]}


def test_failing_listener_does_not_block_others(telemetry_events) -> None:
    def broken(_event) -> None:
        raise RuntimeError("listener exploded")

    register_listener(broken)
    emit_event("stats_reset")
    assert [event.name for event in telemetry_events] == ["stats_reset"]


def test_enum_fields_are_reduced_to_their_values(telemetry_events) -> None:
    emit_event("session_completed", mode=SessionMode.PRACTICE)
    assert telemetry_events[0].payload == {"mode": "PRACTICE"}


def test_logging_flags_adjust_library_loggers(monkeypatch) -> None:
    monkeypatch.setenv("PHENOM_DEBUG_SQL", "1")
    monkeypatch.setenv("PHENOM_TELEMETRY", "0")
    configure_logging()
    try:
        assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG
        assert logging.getLogger("phenom.telemetry").level == logging.WARNING
    finally:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.NOTSET)
        logging.getLogger("phenom.telemetry").setLevel(logging.NOTSET)
