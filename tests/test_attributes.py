"""
Tests for the attribute store: get/set, change tracking, defaults, to_json.
"""

import pytest

from folio.models import Model


class AttrNote(Model):
    collection = "notes"
    defaults = {"status": "draft", "tags": [], "meta": {"views": 0}}


# ============================================================================
# get / set
# ============================================================================


class TestGetSet:

    def test_get_after_set(self):
        note = AttrNote()
        assert note.set("title", "Hello") == "Hello"
        assert note.get("title") == "Hello"

    def test_get_missing_is_none(self):
        assert AttrNote().get("nothing") is None

    def test_get_without_key_returns_all(self):
        note = AttrNote({"title": "a", "body": "b"})
        assert note.get() == {"title": "a", "body": "b"}

    def test_previous_holds_value_before_set(self):
        note = AttrNote({"title": "first"})
        note.set("title", "second")
        assert note.previous["title"] == "first"
        note.set("title", "third")
        assert note.previous["title"] == "second"
        assert note.changed["title"] == "third"

    def test_previous_is_none_for_new_field(self):
        note = AttrNote()
        note.set("title", "x")
        assert "title" in note.previous
        assert note.previous["title"] is None

    def test_mapping_form_sets_each_and_returns_none(self):
        note = AttrNote()
        assert note.set({"a": 1, "b": 2}) is None
        assert note.get("a") == 1
        assert note.get("b") == 2
        assert note.changed == {"a": 1, "b": 2}

    def test_constructor_attributes_not_tracked(self):
        note = AttrNote({"title": "x"})
        assert note.changed == {}
        assert note.previous == {}

    def test_constructor_keywords(self):
        note = AttrNote(title="x", body="y")
        assert note.get("title") == "x"
        assert note.get("body") == "y"

    def test_constructor_copies_mapping(self):
        data = {"title": "x"}
        note = AttrNote(data)
        note.set("title", "y")
        assert data["title"] == "x"


# ============================================================================
# set_defaults / to_json
# ============================================================================


class TestDefaults:

    def test_fills_unset_fields(self):
        note = AttrNote()
        note.set_defaults()
        assert note.get("status") == "draft"
        assert note.get("tags") == []

    def test_keeps_existing_values(self):
        note = AttrNote({"status": "published"})
        note.set_defaults()
        assert note.get("status") == "published"

    def test_none_counts_as_unset(self):
        note = AttrNote({"status": None})
        note.set_defaults()
        assert note.get("status") == "draft"

    def test_mutable_defaults_not_shared(self):
        a, b = AttrNote(), AttrNote()
        a.set_defaults()
        b.set_defaults()
        a.get("tags").append("x")
        a.get("meta")["views"] = 10
        assert b.get("tags") == []
        assert b.get("meta") == {"views": 0}
        assert AttrNote.defaults["tags"] == []

    def test_defaults_recorded_as_changes(self):
        note = AttrNote()
        note.set_defaults()
        assert note.changed["status"] == "draft"


class TestToJson:

    def test_returns_attributes_mapping(self):
        note = AttrNote({"title": "x"})
        assert note.to_json() is note.attributes
        assert note.to_json() == {"title": "x"}
