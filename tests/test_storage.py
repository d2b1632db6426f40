from __future__ import annotations

import json

from projection_studio.storage import SavedInspirationStore

A = "data:image/png;base64,AAAA"
B = "data:image/png;base64,BBBB"


def test_empty_when_slot_missing(tmp_path):
    assert SavedInspirationStore(root_dir=tmp_path).items == []


def test_save_then_reload_round_trips(tmp_path):
    store = SavedInspirationStore(root_dir=tmp_path)
    store.save(A)
    store.save(B)

    reloaded = SavedInspirationStore(root_dir=tmp_path)
    assert reloaded.items == [B, A]
    assert reloaded.items == store.items


def test_duplicate_save_is_a_no_op(tmp_path):
    store = SavedInspirationStore(root_dir=tmp_path)
    assert store.save(A) is True
    assert store.save(A) is False
    assert store.items == [A]
    assert json.loads(store.path.read_text("utf-8")) == [A]


def test_remove(tmp_path):
    store = SavedInspirationStore(root_dir=tmp_path)
    store.save(A)
    store.save(B)
    assert store.remove(A) is True
    assert store.remove(A) is False
    assert SavedInspirationStore(root_dir=tmp_path).items == [B]


def test_corrupt_slot_falls_back_to_empty(tmp_path):
    (tmp_path / "savedInspiration.json").write_text("{not json", encoding="utf-8")
    store = SavedInspirationStore(root_dir=tmp_path)
    assert store.items == []
    store.save(A)
    assert SavedInspirationStore(root_dir=tmp_path).items == [A]


def test_non_list_slot_falls_back_to_empty(tmp_path):
    (tmp_path / "savedInspiration.json").write_text('{"a": 1}', encoding="utf-8")
    assert SavedInspirationStore(root_dir=tmp_path).items == []


def test_non_string_items_are_dropped(tmp_path):
    (tmp_path / "savedInspiration.json").write_text(json.dumps([A, 3, None, B]), encoding="utf-8")
    assert SavedInspirationStore(root_dir=tmp_path).items == [A, B]


def test_slot_name_cannot_escape_root(tmp_path):
    store = SavedInspirationStore(root_dir=tmp_path, slot="../../elsewhere")
    assert store.path.parent == tmp_path.resolve()


def test_items_is_a_copy(tmp_path):
    store = SavedInspirationStore(root_dir=tmp_path)
    store.items.append(A)
    assert len(store) == 0
