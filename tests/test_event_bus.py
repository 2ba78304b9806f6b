"""Event bus dispatch tests."""

from __future__ import annotations

from core.event_bus import ALL_EVENTS, STEP_COMPLETED, STEP_FAILED, EventBus


def test_specific_handlers_run_before_wildcard() -> None:
    bus = EventBus()
    calls: list[tuple[str, str]] = []
    bus.subscribe(ALL_EVENTS, lambda name, payload: calls.append(("all", name)))
    bus.subscribe(STEP_COMPLETED, lambda name, payload: calls.append(("completed", payload["step_id"])))

    bus.emit(STEP_COMPLETED, {"step_id": "a"})
    bus.emit(STEP_FAILED, {"step_id": "b"})

    assert calls == [("completed", "a"), ("all", STEP_COMPLETED), ("all", STEP_FAILED)]


def test_unsubscribe_stops_delivery() -> None:
    bus = EventBus()
    calls: list[str] = []

    def handler(name: str, payload: dict) -> None:
        calls.append(name)

    bus.subscribe(STEP_FAILED, handler)
    bus.unsubscribe(STEP_FAILED, handler)
    bus.unsubscribe("never.registered", handler)
    bus.emit(STEP_FAILED, {})

    assert calls == []
