from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Optional, Tuple

from ogstudio.editor.editor import EditorState, OgEditor
from ogstudio.editor.store import ElementsStore, ImageSource

logger = logging.getLogger(__name__)

DEFAULT_MAX_EDITORS = 256

EditorKey = Tuple[str, str]


class EditorSessions:
    """
    Open editors keyed by (user id, image id).

    Each editor owns its store and clipboard, so two users (or two images) never share
    a clipboard or history. Clients should close an editor when they leave it; past
    `max_editors` the least recently used editor is unmounted and dropped, and the
    next event for it gets a 409 until it is reopened.
    """

    def __init__(self, images: ImageSource, *, max_editors: int = DEFAULT_MAX_EDITORS):
        self._images = images
        self._max_editors = max(1, max_editors)
        self._editors: "OrderedDict[EditorKey, OgEditor]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._editors)

    def open(self, user_id: str, image_id: str) -> Tuple[OgEditor, Optional[str]]:
        """
        Return the user's editor for `image_id`, mounting it on first use.

        The second item is a redirect path when the image does not exist.
        """
        key = (user_id, image_id)
        with self._lock:
            editor = self._editors.get(key)
            if editor is not None and editor.bound:
                self._editors.move_to_end(key)
                return editor, None

            editor = OgEditor(EditorState(store=ElementsStore(self._images)))
            redirect = editor.mount(image_id)
            if redirect is None:
                self._editors[key] = editor
                self._editors.move_to_end(key)
                evicted = self._evict()
            else:
                evicted = []

        for old_key, old in evicted:
            logger.info("Evicted idle editor for user %s image %s", old_key[0], old_key[1])
            with old.lock:
                old.unmount()
        return editor, redirect

    def _evict(self):  # type: ignore[no-untyped-def]
        evicted = []
        while len(self._editors) > self._max_editors:
            evicted.append(self._editors.popitem(last=False))
        return evicted

    def get(self, user_id: str, image_id: str) -> Optional[OgEditor]:
        key = (user_id, image_id)
        with self._lock:
            editor = self._editors.get(key)
            if editor is not None:
                self._editors.move_to_end(key)
            return editor

    def close(self, user_id: str, image_id: str) -> None:
        with self._lock:
            editor = self._editors.pop((user_id, image_id), None)
        if editor is not None:
            with editor.lock:
                editor.unmount()
