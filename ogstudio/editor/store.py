from __future__ import annotations

from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from ogstudio.editor.elements import OGElement

HISTORY_LIMIT = 100

Snapshot = Tuple[OGElement, ...]


class ImageSource(Protocol):
    def get_image(self, image_id: str):  # type: ignore[no-untyped-def]
        ...

    def save_elements(self, image_id: str, elements: Sequence[OGElement]) -> bool:
        ...


class ElementsStore:
    """
    Ordered element list for one open image, with undo/redo history.

    Elements are immutable pydantic models: every mutation replaces the list, so the
    history can hold snapshots without copying elements. Only the element list is
    tracked; selection is not part of history.
    """

    def __init__(
        self,
        images: Optional[ImageSource] = None,
        *,
        history_limit: int = HISTORY_LIMIT,
        on_change: Optional[Callable[[List[OGElement]], None]] = None,
    ):
        self._images = images
        self._history_limit = history_limit
        self._on_change = on_change
        self._elements: Snapshot = ()
        self._past: List[Snapshot] = []
        self._future: List[Snapshot] = []
        self.image_id: Optional[str] = None
        self.selected_element_id: Optional[str] = None

    @property
    def elements(self) -> List[OGElement]:
        return list(self._elements)

    def find(self, element_id: Optional[str]) -> Optional[OGElement]:
        if element_id is None:
            return None
        for element in self._elements:
            if element.id == element_id:
                return element
        return None

    def set_selected_element_id(self, element_id: Optional[str]) -> None:
        self.selected_element_id = element_id

    def load_image(self, image_id: str) -> bool:
        """Replace the document with `image_id`'s elements. Returns False if it does not exist."""
        image = self._images.get_image(image_id) if self._images is not None else None
        if image is None:
            return False
        self.image_id = image_id
        self._elements = tuple(image.elements)
        self._past.clear()
        self._future.clear()
        self.selected_element_id = None
        return True

    def _commit(self, elements: Snapshot) -> None:
        self._past.append(self._elements)
        if len(self._past) > self._history_limit:
            del self._past[0]
        self._future.clear()
        self._set(elements)

    def _set(self, elements: Snapshot) -> None:
        self._elements = elements
        if self._images is not None and self.image_id is not None:
            self._images.save_elements(self.image_id, elements)
        if self._on_change is not None:
            self._on_change(list(elements))

    def add_element(self, element: OGElement) -> None:
        self._commit(self._elements + (element,))
        self.selected_element_id = element.id

    def update_element(self, element: OGElement) -> None:
        if self.find(element.id) is None:
            return
        self._commit(tuple(element if item.id == element.id else item for item in self._elements))

    def remove_element(self, element_id: str) -> None:
        if self.find(element_id) is None:
            return
        self._commit(tuple(item for item in self._elements if item.id != element_id))
        if self.selected_element_id == element_id:
            self.selected_element_id = None

    # ---- history ----
    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def undo(self) -> None:
        if not self._past:
            return
        self._future.append(self._elements)
        self._set(self._past.pop())

    def redo(self) -> None:
        if not self._future:
            return
        self._past.append(self._elements)
        self._set(self._future.pop())
