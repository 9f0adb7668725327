from __future__ import annotations

from typing import List

import pytest

from ogstudio.editor.editor import MISSING_IMAGE_REDIRECT, SAVE_NOTICE, EditorState, OgEditor
from ogstudio.editor.elements import BoxElement, TextElement
from ogstudio.editor.events import BODY, CANVAS_ROOT, ClickEvent, EventTarget, KeyEvent, element_target, handle_target
from ogstudio.editor.store import ElementsStore
from ogstudio.storage.local_store import LocalImageStore

INPUT = EventTarget(tag="input")


@pytest.fixture
def images(tmp_path) -> LocalImageStore:
    return LocalImageStore(base_dir=str(tmp_path / "images"))


def _box(element_id: str = "a", x: int = 100, y: int = 50) -> BoxElement:
    return BoxElement(id=element_id, name="Box", x=x, y=y, width=200, height=200)


def _open(images: LocalImageStore, elements=None, *, image_id: str | None = None, notices: List[str] | None = None):  # type: ignore[no-untyped-def]
    image = images.create_image("Test", elements if elements is not None else [_box()])
    if image_id is not None:
        image = image.model_copy(update={"id": image_id})
        images.put_image(image)
    editor = OgEditor(
        EditorState(store=ElementsStore(images)),
        notify=(notices.append if notices is not None else None),
    )
    assert editor.mount(image.id) is None
    return editor


def _key(editor: OgEditor, key: str, *, target: EventTarget = BODY, **mods) -> KeyEvent:
    event = KeyEvent(target=target, key=key, **mods)
    editor.dispatch(event)
    return event


def _select(editor: OgEditor, element_id: str) -> None:
    editor.store.set_selected_element_id(element_id)


def _el(editor: OgEditor, element_id: str):  # type: ignore[no-untyped-def]
    el = editor.store.find(element_id)
    assert el is not None
    return el


@pytest.mark.parametrize(
    "key,shift,dx,dy",
    [
        ("ArrowUp", False, 0, -1),
        ("ArrowDown", False, 0, 1),
        ("ArrowLeft", False, -1, 0),
        ("ArrowRight", False, 1, 0),
        ("ArrowUp", True, 0, -10),
        ("ArrowDown", True, 0, 10),
        ("ArrowLeft", True, -10, 0),
        ("ArrowRight", True, 10, 0),
    ],
)
def test_nudge_moves_selected_element(images, key, shift, dx, dy) -> None:
    editor = _open(images)
    _select(editor, "a")
    event = _key(editor, key, shift_key=shift)
    el = _el(editor, "a")
    assert (el.x, el.y) == (100 + dx, 50 + dy)
    assert event.default_prevented is True


def test_nudge_without_selection_is_noop(images) -> None:
    editor = _open(images)
    event = _key(editor, "ArrowRight")
    assert (_el(editor, "a").x, _el(editor, "a").y) == (100, 50)
    assert event.default_prevented is False
    assert editor.store.can_undo is False


def test_delete_then_arrow_is_noop(images) -> None:
    editor = _open(images, [_box("a"), _box("b", x=300)])
    _select(editor, "a")
    _key(editor, "Delete")
    assert [e.id for e in editor.store.elements] == ["b"]
    assert editor.store.selected_element_id is None

    before = editor.store.elements
    _key(editor, "ArrowDown")
    assert editor.store.elements == before


def test_backspace_deletes_selected(images) -> None:
    editor = _open(images, [_box("a"), _box("b")])
    _select(editor, "b")
    _key(editor, "Backspace")
    assert [e.id for e in editor.store.elements] == ["a"]


def test_delete_without_selection_is_noop(images) -> None:
    editor = _open(images)
    _key(editor, "Delete")
    assert len(editor.store.elements) == 1


def test_escape_clears_selection_even_from_input(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    event = _key(editor, "Escape", target=INPUT)
    assert editor.store.selected_element_id is None
    assert event.default_prevented is True


def test_copy_then_paste_twice_cascades(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    _key(editor, "c", meta_key=True)
    _key(editor, "v", meta_key=True)
    _key(editor, "v", ctrl_key=True)

    elements = editor.store.elements
    assert len(elements) == 3
    assert len({e.id for e in elements}) == 3
    assert [(e.x, e.y) for e in elements] == [(100, 50), (110, 60), (120, 70)]
    assert all(e.type == "box" for e in elements)
    assert editor.state.clipboard == elements[-1].id


def test_paste_reflects_current_state_of_original(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    _key(editor, "c", ctrl_key=True)
    _key(editor, "ArrowRight", shift_key=True)
    _key(editor, "v", ctrl_key=True)

    pasted = editor.store.elements[-1]
    assert (pasted.x, pasted.y) == (120, 60)


def test_paste_after_original_deleted_is_noop(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    _key(editor, "c", meta_key=True)
    _key(editor, "Delete")
    _key(editor, "v", meta_key=True)
    assert editor.store.elements == []


def test_paste_with_empty_clipboard_is_noop(images) -> None:
    editor = _open(images)
    _key(editor, "v", meta_key=True)
    assert len(editor.store.elements) == 1
    assert editor.state.has_element_in_clipboard() is False


def test_copy_without_selection_leaves_clipboard_empty(images) -> None:
    editor = _open(images)
    _key(editor, "c", meta_key=True)
    assert editor.state.clipboard is None


def test_copy_and_paste_work_from_input_focus(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    _key(editor, "c", meta_key=True, target=INPUT)
    _key(editor, "v", meta_key=True, target=INPUT)
    assert len(editor.store.elements) == 2


def test_clipboards_are_per_editor(images) -> None:
    first = _open(images)
    second = _open(images, [_box("z")])
    _select(first, "a")
    _key(first, "c", meta_key=True)
    _key(second, "v", meta_key=True)
    assert len(second.store.elements) == 1
    assert second.state.clipboard is None


def test_undo_redo(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    _key(editor, "ArrowRight")
    _key(editor, "ArrowRight")
    assert _el(editor, "a").x == 102

    _key(editor, "z", meta_key=True)
    assert _el(editor, "a").x == 101
    _key(editor, "z", ctrl_key=True, target=INPUT)
    assert _el(editor, "a").x == 100
    _key(editor, "Z", meta_key=True, shift_key=True)
    assert _el(editor, "a").x == 101


def test_undo_restores_deleted_element(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    _key(editor, "Delete")
    _key(editor, "z", meta_key=True)
    assert [e.id for e in editor.store.elements] == ["a"]


@pytest.mark.parametrize(
    "key,element_type",
    [("t", "text"), ("b", "box"), ("o", "rounded-box"), ("i", "image"), ("d", "dynamic-text")],
)
def test_insert_shortcuts(images, key, element_type) -> None:
    editor = _open(images, [])
    event = _key(editor, key)
    assert [e.type for e in editor.store.elements] == [element_type]
    assert event.default_prevented is True


def test_body_only_shortcuts_ignored_from_input(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    for key in ("t", "b", "ArrowUp", "Delete", "Backspace"):
        _key(editor, key, target=INPUT)
    assert [e.model_dump() for e in editor.store.elements] == [_box().model_dump()]


def test_save_shortcut_only_shows_notice(images) -> None:
    notices: List[str] = []
    editor = _open(images, notices=notices)
    before = editor.store.elements
    event = _key(editor, "s", meta_key=True)
    assert notices == [SAVE_NOTICE]
    assert editor.state.notices == [SAVE_NOTICE]
    assert event.propagation_stopped is True
    assert editor.store.elements == before


def test_click_outside_deselects(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    editor.dispatch(ClickEvent(target=EventTarget(tag="div")))
    assert editor.store.selected_element_id is None


@pytest.mark.parametrize("target", [element_target("a"), handle_target("a"), CANVAS_ROOT])
def test_click_on_element_handle_or_root_keeps_selection(images, target) -> None:
    editor = _open(images)
    _select(editor, "a")
    editor.dispatch(ClickEvent(target=target))
    assert editor.store.selected_element_id == "a"


def test_missing_image_redirects_without_bindings(images) -> None:
    editor = OgEditor(EditorState(store=ElementsStore(images)))
    assert editor.mount("doesnotexist") == MISSING_IMAGE_REDIRECT
    assert editor.bound is False
    assert editor.bus.listener_count("keydown") == 0


def test_splash_image_has_no_shortcuts(images) -> None:
    editor = _open(images, image_id="splash")
    assert editor.bound is False
    _key(editor, "t")
    assert len(editor.store.elements) == 1


def test_remount_does_not_duplicate_handlers(images) -> None:
    editor = _open(images, [])
    other = images.create_image("Other", [])
    editor.mount(other.id)
    editor.mount(other.id)
    assert editor.bus.listener_count("keydown") == 1
    _key(editor, "t")
    assert len(editor.store.elements) == 1


def test_mounted_context_releases_handlers(images) -> None:
    image = images.create_image("Ctx", [TextElement(id="t1", name="Text", content="Hi", x=0, y=0, width=10, height=10)])
    editor = OgEditor(EditorState(store=ElementsStore(images)))
    with editor.mounted(image.id) as redirect:
        assert redirect is None
        assert editor.bus.listener_count("click") == 1
    assert editor.bus.listener_count("click") == 0
    assert editor.bus.listener_count("keydown") == 0


def test_changes_are_written_back_to_image_store(images) -> None:
    editor = _open(images)
    _select(editor, "a")
    _key(editor, "ArrowDown", shift_key=True)
    stored = images.get_image(editor.image_id)
    assert stored is not None
    assert stored.elements[0].y == 60
