"""
Minimal DOM-like event model for the editor.

Handlers are attached through `EventBus.subscribe`, which returns a `Subscription`.
A subscription is released exactly once, either explicitly or on leaving its `with`
block, so mount/unmount cycles never leave duplicate handlers behind.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, DefaultDict, FrozenSet, List, Literal, Optional, Union

EventType = Literal["click", "keydown"]


@dataclass(frozen=True)
class EventTarget:
    tag: str
    classes: FrozenSet[str] = frozenset()
    element_id: Optional[str] = None
    is_canvas_root: bool = False

    @property
    def is_body(self) -> bool:
        return self.tag == "body"


BODY = EventTarget(tag="body")
CANVAS_ROOT = EventTarget(tag="div", is_canvas_root=True)


def element_target(element_id: str) -> EventTarget:
    return EventTarget(tag="div", classes=frozenset({"element"}), element_id=element_id)


def handle_target(element_id: str) -> EventTarget:
    return EventTarget(tag="span", classes=frozenset({"handle"}), element_id=element_id)


@dataclass
class _Event:
    target: EventTarget
    default_prevented: bool = field(default=False, init=False)
    propagation_stopped: bool = field(default=False, init=False)

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


@dataclass
class KeyEvent(_Event):
    key: str = ""
    shift_key: bool = False
    meta_key: bool = False
    ctrl_key: bool = False
    type: EventType = field(default="keydown", init=False)

    @property
    def mod_key(self) -> bool:
        """Cmd on macOS, Ctrl elsewhere."""
        return self.meta_key or self.ctrl_key


@dataclass
class ClickEvent(_Event):
    type: EventType = field(default="click", init=False)


Event = Union[KeyEvent, ClickEvent]
Handler = Callable[[Event], None]


class Subscription:
    def __init__(self, bus: "EventBus", event_type: EventType, handler: Handler):
        self._bus = bus
        self._event_type = event_type
        self._handler = handler
        self._active = True

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._remove(self._event_type, self._handler)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:  # type: ignore[no-untyped-def]
        self.unsubscribe()


class EventBus:
    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Handler) -> Subscription:
        self._handlers[event_type].append(handler)
        return Subscription(self, event_type, handler)

    def _remove(self, event_type: EventType, handler: Handler) -> None:
        handlers = self._handlers.get(event_type) or []
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event_type: EventType) -> int:
        return len(self._handlers.get(event_type) or [])

    def dispatch(self, event: Event) -> Event:
        for handler in list(self._handlers.get(event.type) or []):
            handler(event)
            if event.propagation_stopped:
                break
        return event
