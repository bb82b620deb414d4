"""Tests for JsonStore: JSON-backed record store."""

import json
from pathlib import Path

from kalam.store.json_store import STORE_FILENAME, JsonStore


class TestInsert:
    def test_generates_id_and_created_at(self):
        store = JsonStore()
        [row] = store.insert("posts", {"title": "Hello"})
        assert row["id"]
        assert row["created_at"]
        assert row["title"] == "Hello"

    def test_keeps_given_id(self):
        store = JsonStore()
        [row] = store.insert("posts", {"id": "p1"})
        assert row["id"] == "p1"

    def test_batch_insert(self):
        store = JsonStore()
        rows = store.insert("post_tags", [{"tag_id": "a"}, {"tag_id": "b"}])
        assert len(rows) == 2
        assert len(store.select("post_tags")) == 2

    def test_returned_rows_are_copies(self):
        store = JsonStore()
        [row] = store.insert("posts", {"title": "Hello"})
        row["title"] = "Mutated"
        assert store.select("posts")[0]["title"] == "Hello"


class TestSelect:
    def test_filters_are_exact_match(self):
        store = JsonStore()
        store.insert("posts", [{"a": 1, "b": True}, {"a": 1, "b": False}, {"a": 2, "b": True}])
        assert len(store.select("posts", {"a": 1})) == 2
        assert len(store.select("posts", {"a": 1, "b": True})) == 1

    def test_in_filter(self):
        store = JsonStore()
        store.insert("tags", [{"id": "x"}, {"id": "y"}, {"id": "z"}])
        rows = store.select("tags", in_=("id", ["x", "z"]))
        assert {r["id"] for r in rows} == {"x", "z"}

    def test_order_puts_missing_last(self):
        store = JsonStore()
        store.insert("posts", [{"id": "a", "n": 2}, {"id": "b", "n": None}, {"id": "c", "n": 3}])
        assert [r["id"] for r in store.select("posts", order="n")] == ["a", "c", "b"]
        assert [r["id"] for r in store.select("posts", order="n", descending=True)] == ["c", "a", "b"]

    def test_columns(self):
        store = JsonStore()
        store.insert("posts", {"id": "a", "title": "T", "content": "C"})
        assert store.select("posts", columns=["id", "title"]) == [{"id": "a", "title": "T"}]

    def test_find(self):
        store = JsonStore()
        store.insert("posts", {"id": "a"})
        assert store.find("posts", {"id": "a"}) is not None
        assert store.find("posts", {"id": "b"}) is None

    def test_unknown_collection_is_empty(self):
        assert JsonStore().select("nothing") == []


class TestUpdateDelete:
    def test_update_merges(self):
        store = JsonStore()
        store.insert("posts", {"id": "a", "title": "Old", "content": "C"})
        store.update("posts", {"id": "a"}, {"title": "New"})
        row = store.find("posts", {"id": "a"})
        assert row["title"] == "New"
        assert row["content"] == "C"

    def test_delete_where(self):
        store = JsonStore()
        store.insert("post_tags", [{"post_id": "p", "tag_id": "a"}, {"post_id": "q", "tag_id": "a"}])
        store.delete_where("post_tags", {"post_id": "p"})
        assert [r["post_id"] for r in store.select("post_tags")] == ["q"]


class TestPersistence:
    def test_round_trip(self, tmp_path: Path):
        path = tmp_path / STORE_FILENAME
        JsonStore(path).insert("posts", {"id": "a", "title": "Saved"})

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["collections"]["posts"][0]["title"] == "Saved"
        assert JsonStore(path).find("posts", {"id": "a"})["title"] == "Saved"

    def test_load_corrupt(self, tmp_path: Path):
        path = tmp_path / STORE_FILENAME
        path.write_text("not valid json {{{", encoding="utf-8")
        assert JsonStore(path).select("posts") == []

