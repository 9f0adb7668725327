from __future__ import annotations

from typing import List

from ogstudio.editor.events import BODY, ClickEvent, EventBus, KeyEvent


def test_subscription_context_releases_handler() -> None:
    bus = EventBus()
    seen: List[str] = []
    with bus.subscribe("keydown", lambda e: seen.append(e.key)):
        bus.dispatch(KeyEvent(target=BODY, key="a"))
        assert bus.listener_count("keydown") == 1
    bus.dispatch(KeyEvent(target=BODY, key="b"))
    assert seen == ["a"]
    assert bus.listener_count("keydown") == 0


def test_unsubscribe_is_idempotent() -> None:
    bus = EventBus()
    handler = lambda e: None  # noqa: E731
    first = bus.subscribe("click", handler)
    bus.subscribe("click", handler)
    first.unsubscribe()
    first.unsubscribe()
    assert bus.listener_count("click") == 1


def test_dispatch_routes_by_type_and_honours_stop_propagation() -> None:
    bus = EventBus()
    calls: List[str] = []

    def _stop(e):  # type: ignore[no-untyped-def]
        calls.append("first")
        e.stop_propagation()

    bus.subscribe("keydown", _stop)
    bus.subscribe("keydown", lambda e: calls.append("second"))
    bus.subscribe("click", lambda e: calls.append("click"))

    bus.dispatch(KeyEvent(target=BODY, key="s"))
    assert calls == ["first"]
    bus.dispatch(ClickEvent(target=BODY))
    assert calls == ["first", "click"]


def test_mod_key() -> None:
    assert KeyEvent(target=BODY, key="z", meta_key=True).mod_key is True
    assert KeyEvent(target=BODY, key="z", ctrl_key=True).mod_key is True
    assert KeyEvent(target=BODY, key="z", shift_key=True).mod_key is False
