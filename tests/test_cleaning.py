"""Tests for the cleaning modes."""

import pytest

from conftest import T0, count_rows
from tagged_cache.storage.cleaning import parse_mode
from tagged_cache.types import CleaningMode


class TestCleanAll:
    def test_clean_all_empties_everything(self, tagged_backend, tmp_sqlite_db):
        assert tagged_backend.clean(CleaningMode.ALL) is True
        assert tagged_backend.get_ids() == []
        assert tagged_backend.get_tags() == []
        assert count_rows(tmp_sqlite_db, "SELECT COUNT(*) FROM cache") == 0

    def test_default_mode_is_all(self, tagged_backend):
        assert tagged_backend.clean() is True
        assert tagged_backend.get_ids() == []

    def test_clean_all_on_empty_store(self, backend):
        assert backend.clean(CleaningMode.ALL) is True


class TestCleanOld:
    def test_only_expired_removed(self, backend, clock, tmp_sqlite_db):
        backend.save(b"x", "expired", ["gone"], 10)
        backend.save(b"x", "fresh", ["kept"], 1000)
        backend.save(b"x", "forever", ["kept", "immortal"], None)
        clock.advance(10)

        assert backend.clean(CleaningMode.OLD) is True

        assert backend.load("expired", skip_validity=True) is None
        assert sorted(backend.get_ids()) == ["forever", "fresh"]
        assert sorted(backend.get_tags()) == ["immortal", "kept"]
        assert count_rows(tmp_sqlite_db, "SELECT COUNT(*) FROM tag WHERE id = 'expired'") == 0

    def test_expire_equal_to_now_is_old(self, backend, clock):
        backend.save(b"x", "k1", [], 5)
        clock.now = T0 + 5
        backend.clean("old")
        assert backend.load("k1", skip_validity=True) is None

    def test_nothing_expired(self, backend):
        backend.save(b"x", "k1", ["t"], 100)
        assert backend.clean(CleaningMode.OLD) is True
        assert backend.get_ids() == ["k1"]


class TestCleanByTag:
    def test_matching_tag(self, tagged_backend):
        assert tagged_backend.clean(CleaningMode.MATCHING_TAG, ["t1", "t2"]) is True
        assert sorted(tagged_backend.get_ids()) == ["b", "c", "d"]

    def test_matching_any_tag(self, tagged_backend):
        assert tagged_backend.clean(CleaningMode.MATCHING_ANY_TAG, ["t1", "t2"]) is True
        assert tagged_backend.get_ids() == ["d"]
        assert tagged_backend.get_tags() == []

    def test_not_matching_tag(self, tagged_backend):
        assert tagged_backend.clean(CleaningMode.NOT_MATCHING_TAG, ["t1"]) is True
        assert sorted(tagged_backend.get_ids()) == ["a", "b"]
        assert sorted(tagged_backend.get_tags()) == ["t1", "t2"]

    def test_matching_tag_removes_expired_too(self, backend, clock):
        backend.save(b"x", "k1", ["t"], 1)
        clock.advance(5)
        assert backend.clean(CleaningMode.MATCHING_TAG, ["t"]) is True
        assert backend.load("k1", skip_validity=True) is None

    def test_no_match_is_success(self, tagged_backend):
        assert tagged_backend.clean(CleaningMode.MATCHING_TAG, ["missing"]) is True
        assert len(tagged_backend.get_ids()) == 4

    def test_stray_tag_makes_result_false(self, tagged_backend):
        tagged_backend.tag_index.register("ghost", "t1")
        assert tagged_backend.clean(CleaningMode.MATCHING_ANY_TAG, ["t1"]) is False
        assert sorted(tagged_backend.get_ids()) == ["c", "d"]

    def test_mode_given_as_string(self, tagged_backend):
        assert tagged_backend.clean("matching_any_tag", "t2") is True
        assert sorted(tagged_backend.get_ids()) == ["b", "d"]


class TestUnknownMode:
    def test_unknown_mode_fails(self, tagged_backend):
        assert tagged_backend.clean("bogus") is False
        assert len(tagged_backend.get_ids()) == 4

    @pytest.mark.parametrize("raw,expected", [
        ("all", CleaningMode.ALL),
        ("OLD", CleaningMode.OLD),
        (CleaningMode.NOT_MATCHING_TAG, CleaningMode.NOT_MATCHING_TAG),
        ("nope", None),
    ])
    def test_parse_mode(self, raw, expected):
        assert parse_mode(raw) is expected


class TestVacuumDivergence:
    def test_bulk_modes_check_vacuum_once(self, tagged_backend, never_vacuum):
        never_vacuum.calls.clear()
        tagged_backend.clean(CleaningMode.ALL)
        assert len(never_vacuum.calls) == 1

    def test_tag_modes_check_vacuum_per_removal(self, tagged_backend, never_vacuum):
        never_vacuum.calls.clear()
        tagged_backend.clean(CleaningMode.MATCHING_ANY_TAG, ["t1", "t2"])
        # one per removed id (a, b, c) plus one for the clean itself
        assert len(never_vacuum.calls) == 4
