from ogstudio.editor.editor import EditorState, OgEditor
from ogstudio.editor.events import BODY, CANVAS_ROOT, ClickEvent, EventBus, EventTarget, KeyEvent
from ogstudio.editor.store import ElementsStore

__all__ = [
    "BODY",
    "CANVAS_ROOT",
    "ClickEvent",
    "EditorState",
    "ElementsStore",
    "EventBus",
    "EventTarget",
    "KeyEvent",
    "OgEditor",
]
