"""
Editor command layer.

Binds keyboard and pointer events to mutations of the open image's elements. Every
command is reachable only through an event dispatched on the editor's `EventBus`.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from ogstudio.editor.elements import ElementType, OGElement, create_default_element, create_element_id
from ogstudio.editor.events import Event, EventBus, EventTarget, KeyEvent, Subscription
from ogstudio.editor.store import ElementsStore

logger = logging.getLogger(__name__)

SPLASH_IMAGE_ID = "splash"
MISSING_IMAGE_REDIRECT = "/my-images"
SAVE_NOTICE = "Your work is saved automatically!"

NUDGE_STEP = 1
NUDGE_STEP_LARGE = 10
PASTE_OFFSET = 10

# key -> (axis, direction)
ARROW_KEYS = {
    "ArrowUp": ("y", -1),
    "ArrowDown": ("y", 1),
    "ArrowLeft": ("x", -1),
    "ArrowRight": ("x", 1),
}

INSERT_KEYS: Dict[str, ElementType] = {
    "t": "text",
    "b": "box",
    "o": "rounded-box",
    "i": "image",
    "d": "dynamic-text",
}


@dataclass
class EditorState:
    """Everything one open document owns, clipboard included."""

    store: ElementsStore
    clipboard: Optional[str] = None
    notices: List[str] = field(default_factory=list)

    def has_element_in_clipboard(self) -> bool:
        return self.clipboard is not None


def _is_outside_click(target: EventTarget) -> bool:
    return not ("element" in target.classes or "handle" in target.classes or target.is_canvas_root)


class OgEditor:
    def __init__(
        self,
        state: EditorState,
        bus: Optional[EventBus] = None,
        *,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.state = state
        self.bus = bus or EventBus()
        self._notify = notify
        self._subscriptions: List[Subscription] = []
        self.image_id: Optional[str] = None
        # Held by callers that dispatch from worker threads.
        self.lock = threading.Lock()

    @property
    def store(self) -> ElementsStore:
        return self.state.store

    @property
    def bound(self) -> bool:
        return bool(self._subscriptions)

    # ---- lifecycle ----
    def mount(self, image_id: str) -> Optional[str]:
        """
        Load `image_id` and attach event handlers.

        Returns a redirect path when the image does not exist; in that case no handlers
        are attached. Handlers from a previous mount are always released first.
        """
        self.unmount()
        self.image_id = image_id

        if not self.store.load_image(image_id):
            logger.info("Image %s not found; redirecting to %s", image_id, MISSING_IMAGE_REDIRECT)
            return MISSING_IMAGE_REDIRECT

        if image_id != SPLASH_IMAGE_ID:
            self._subscriptions = [
                self.bus.subscribe("click", self._on_click),
                self.bus.subscribe("keydown", self._on_key_down),
            ]
        return None

    def unmount(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []

    @contextmanager
    def mounted(self, image_id: str) -> Iterator[Optional[str]]:
        redirect = self.mount(image_id)
        try:
            yield redirect
        finally:
            self.unmount()

    def dispatch(self, event: Event) -> Event:
        return self.bus.dispatch(event)

    # ---- handlers ----
    def _notice(self, message: str) -> None:
        self.state.notices.append(message)
        if self._notify is not None:
            self._notify(message)

    def _on_click(self, event: Event) -> None:
        if not _is_outside_click(event.target):
            return
        self.store.set_selected_element_id(None)

    def _on_key_down(self, event: Event) -> None:
        if not isinstance(event, KeyEvent):
            return
        store = self.store
        selected_id = store.selected_element_id

        # Shortcuts that stay live while an input has focus.
        if event.key == "Escape" and selected_id:
            event.prevent_default()
            store.set_selected_element_id(None)
            return
        if event.mod_key and event.key == "z":
            event.prevent_default()
            store.undo()
            return
        if event.mod_key and event.key == "Z":
            event.prevent_default()
            store.redo()
            return
        if event.mod_key and event.key == "c" and selected_id:
            event.prevent_default()
            self.state.clipboard = selected_id
            return
        if event.mod_key and event.key == "v":
            event.prevent_default()
            self._paste()
            return

        # Everything else is reserved for when the page body has focus.
        if not event.target.is_body:
            return

        if event.key in ARROW_KEYS and selected_id:
            event.prevent_default()
            self._nudge(selected_id, event.key, large=event.shift_key)
            return

        if event.key in ("Backspace", "Delete") and selected_id:
            event.prevent_default()
            store.remove_element(selected_id)
            return

        if event.mod_key and event.key == "s":
            event.stop_propagation()
            self._notice(SAVE_NOTICE)
            return

        element_type = INSERT_KEYS.get(event.key)
        if element_type is not None:
            event.prevent_default()
            store.add_element(create_default_element(element_type))

    # ---- commands ----
    def _nudge(self, element_id: str, key: str, *, large: bool) -> None:
        element = self.store.find(element_id)
        if element is None:
            return
        axis, direction = ARROW_KEYS[key]
        step = NUDGE_STEP_LARGE if large else NUDGE_STEP
        self.store.update_element(element.model_copy(update={axis: getattr(element, axis) + direction * step}))

    def _paste(self) -> None:
        # Resolved now, not at copy time: the copy reflects the original's current state.
        source: Optional[OGElement] = self.store.find(self.state.clipboard)
        if source is None:
            return
        copy = source.model_copy(
            update={
                "id": create_element_id(),
                "x": source.x + PASTE_OFFSET,
                "y": source.y + PASTE_OFFSET,
            }
        )
        self.store.add_element(copy)
        self.state.clipboard = copy.id
