"""
Tests for dotted-path access.
"""

import pickle

import pytest

from onecomme_osc.paths import MISSING, get_path, set_path


class TestGetPath:
    """Reading nested values."""

    def test_top_level(self):
        assert get_path({"a": 1}, "a") == 1

    def test_nested(self):
        record = {"colors": {"headerTextColor": {"r": 255}}}
        assert get_path(record, "colors.headerTextColor.r") == 255

    def test_absent_segment_is_missing(self):
        assert get_path({"a": {"b": 1}}, "a.c") is MISSING

    def test_walk_through_scalar_is_missing(self):
        """Indexing into a non-container never raises."""
        assert get_path({"a": 5}, "a.b") is MISSING
        assert get_path({"a": "text"}, "a.length") is MISSING

    def test_null_is_present(self):
        """JSON null is a value, not an absence."""
        assert get_path({"a": None}, "a") is None
        assert get_path({"a": None}, "a.b") is MISSING

    def test_list_index(self):
        record = {"badges": [{"id": "vip"}, {"id": "sub"}]}
        assert get_path(record, "badges.1.id") == "sub"
        assert get_path(record, "badges.2.id") is MISSING
        assert get_path(record, "badges.x") is MISSING

    @pytest.mark.parametrize("record", [None, 3, "abc", []])
    def test_non_mapping_record(self, record):
        assert get_path(record, "a") is MISSING


class TestSetPath:
    """Writing nested values."""

    def test_creates_intermediate_dicts(self):
        target = {}
        set_path(target, "a.b.c", 1)
        assert target == {"a": {"b": {"c": 1}}}

    def test_merges_siblings(self):
        target = {}
        set_path(target, "user.name", "Alice")
        set_path(target, "user.level", 3)
        assert target == {"user": {"name": "Alice", "level": 3}}

    def test_replaces_scalar_intermediate(self):
        target = {"a": 5}
        set_path(target, "a.b", 1)
        assert target == {"a": {"b": 1}}


class TestMissing:
    """The MISSING sentinel."""

    def test_falsy_singleton(self):
        assert not MISSING
        assert repr(MISSING) == "MISSING"

    def test_survives_pickle(self):
        assert pickle.loads(pickle.dumps(MISSING)) is MISSING
