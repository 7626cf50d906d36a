from dataclasses import dataclass, field

import pytest

from wasmweave.ids import Arena, Id


@dataclass
class Widget:
    name: str
    parts: list = field(default_factory=lambda: [1, 2, 3])

    def on_delete(self):
        self.parts = []


def test_next_id_matches_allocated_id():
    arena = Arena("widget")
    predicted = arena.next_id()
    allocated = arena.alloc(Widget("a"))
    assert predicted == allocated
    assert arena.next_id() != allocated


def test_alloc_with_id_passes_id_to_factory():
    arena = Arena("widget")
    arena.alloc(Widget("first"))
    new_id = arena.alloc_with_id(lambda i: Widget(str(i.index)))
    assert arena[new_id].name == str(new_id.index)


def test_getitem_and_get_return_stored_item():
    arena = Arena("widget")
    w = Widget("x")
    wid = arena.alloc(w)
    assert arena[wid] is w
    assert arena.get(wid) is w


def test_delete_calls_hook_and_hides_item():
    arena = Arena("widget")
    w = Widget("x")
    wid = arena.alloc(w)
    arena.delete(wid)
    assert w.parts == []
    assert wid not in arena
    assert arena.get(wid) is None
    with pytest.raises(KeyError):
        arena[wid]


def test_deleted_ids_are_not_reused():
    arena = Arena("widget")
    first = arena.alloc(Widget("a"))
    arena.delete(first)
    second = arena.alloc(Widget("b"))
    assert second != first
    assert arena[second].name == "b"


def test_delete_twice_raises():
    arena = Arena("widget")
    wid = arena.alloc(Widget("a"))
    arena.delete(wid)
    with pytest.raises(KeyError):
        arena.delete(wid)


def test_items_skip_deleted_and_keep_order():
    arena = Arena("widget")
    ids = [arena.alloc(Widget(name)) for name in "abcd"]
    arena.delete(ids[1])
    assert [(i, w.name) for i, w in arena.items()] == [
        (ids[0], "a"),
        (ids[2], "c"),
        (ids[3], "d"),
    ]
    assert len(arena) == 3


def test_ids_of_other_kinds_are_foreign():
    widgets = Arena("widget")
    gadgets = Arena("gadget")
    wid = widgets.alloc(Widget("a"))
    gid = gadgets.alloc(Widget("b"))
    assert wid.index == gid.index
    assert wid != gid
    assert wid not in gadgets
    assert gadgets.get(wid) is None


def test_ids_are_hashable_and_usable_as_keys():
    arena = Arena("widget")
    a = arena.alloc(Widget("a"))
    b = arena.alloc(Widget("b"))
    table = {a: "first", b: "second"}
    assert table[Id("widget", a.index)] == "first"
    assert len({a, b, Id("widget", a.index)}) == 2


def test_items_without_hook_can_be_deleted():
    arena = Arena("number")
    nid = arena.alloc(42)
    arena.delete(nid)
    assert len(arena) == 0
    assert list(arena.items()) == []