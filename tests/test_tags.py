"""Tests for the tag index and its set queries."""

import sqlite3

from conftest import count_rows


class TestTagQueries:
    def test_matching_all_tags(self, tagged_backend):
        assert tagged_backend.get_ids_matching_tags(["t1", "t2"]) == ["a"]

    def test_matching_single_tag(self, tagged_backend):
        assert sorted(tagged_backend.get_ids_matching_tags(["t1"])) == ["a", "b"]

    def test_matching_empty_input(self, tagged_backend):
        assert tagged_backend.get_ids_matching_tags([]) == []
        assert tagged_backend.get_ids_matching_tags() == []

    def test_matching_unknown_tag(self, tagged_backend):
        assert tagged_backend.get_ids_matching_tags(["t1", "nope"]) == []

    def test_matching_any(self, tagged_backend):
        ids = tagged_backend.get_ids_matching_any_tags(["t1", "t2"])
        assert sorted(ids) == ["a", "b", "c"]
        assert len(ids) == len(set(ids))

    def test_matching_any_empty(self, tagged_backend):
        assert tagged_backend.get_ids_matching_any_tags([]) == []

    def test_not_matching(self, tagged_backend):
        assert sorted(tagged_backend.get_ids_not_matching_tags(["t1"])) == ["c", "d"]
        assert tagged_backend.get_ids_not_matching_tags(["t1", "t2"]) == ["d"]

    def test_not_matching_empty_returns_everything(self, tagged_backend):
        assert sorted(tagged_backend.get_ids_not_matching_tags([])) == ["a", "b", "c", "d"]

    def test_single_string_tag(self, tagged_backend):
        assert sorted(tagged_backend.get_ids_matching_tags("t2")) == ["a", "c"]

    def test_get_tags(self, tagged_backend):
        assert sorted(tagged_backend.get_tags()) == ["t1", "t2"]


class TestExpiryIgnored:
    def test_tag_queries_include_expired_records(self, backend, clock):
        backend.save(b"A", "a", ["t1", "t2"], 5)
        backend.save(b"B", "b", ["t1"], 5)
        backend.save(b"C", "c", ["t2"], 5)
        clock.advance(60)

        assert backend.get_ids() == []
        assert backend.get_ids_matching_tags(["t1", "t2"]) == ["a"]
        assert sorted(backend.get_ids_matching_any_tags(["t1", "t2"])) == ["a", "b", "c"]
        assert backend.get_ids_not_matching_tags(["t1"]) == ["c"]
        assert sorted(backend.get_tags()) == ["t1", "t2"]


class TestRegistration:
    def test_register_twice_leaves_one_row(self, backend, tmp_sqlite_db):
        backend.save(b"x", "k1", [], None)
        assert backend.tag_index.register("k1", "t1") is True
        assert backend.tag_index.register("k1", "t1") is True
        assert count_rows(
            tmp_sqlite_db, "SELECT COUNT(*) FROM tag WHERE name = ? AND id = ?", ("t1", "k1")
        ) == 1

    def test_duplicate_tags_in_one_save(self, backend, tmp_sqlite_db):
        assert backend.save(b"x", "k1", ["t1", "t1", "t1"], None) is True
        assert count_rows(tmp_sqlite_db, "SELECT COUNT(*) FROM tag") == 1

    def test_resave_same_tags_stays_unique(self, backend, tmp_sqlite_db):
        backend.save(b"x", "k1", ["t1", "t2"], None)
        backend.save(b"y", "k1", ["t1", "t2"], None)
        assert count_rows(tmp_sqlite_db, "SELECT COUNT(*) FROM tag") == 2

    def test_failed_registration_keeps_record(self, backend, monkeypatch):
        backend.get_ids()
        real_register = backend.tag_index.register

        def flaky(cache_id, tag):
            if tag == "bad":
                return False
            return real_register(cache_id, tag)

        monkeypatch.setattr(backend.tag_index, "register", flaky)
        assert backend.save(b"x", "k1", ["good", "bad"], None) is False
        assert backend.load("k1") == b"x"
        assert backend.get_metadatas("k1").tags == ["good"]

    def test_register_error_is_reported_not_raised(self, backend):
        backend.get_ids()
        backend.connection.get().execute("DROP TABLE tag")
        assert backend.tag_index.register("k1", "t1") is False
        assert backend.get_tags() == []
        assert backend.get_ids_matching_tags(["t1"]) == []
        assert backend.get_ids_matching_any_tags(["t1"]) == []


class TestMetadata:
    def test_metadata(self, backend):
        backend.save(b"x", "k1", ["t1", "t2"], 30)
        meta = backend.get_metadatas("k1")
        assert sorted(meta.tags) == ["t1", "t2"]
        assert meta.expire == meta.mtime + 30

    def test_metadata_for_expired_entry(self, backend, clock):
        backend.save(b"x", "k1", ["t1"], 1)
        clock.advance(100)
        assert backend.get_metadatas("k1").tags == ["t1"]

    def test_stray_tags_without_record(self, backend, tmp_sqlite_db):
        backend.get_ids()
        conn = sqlite3.connect(str(tmp_sqlite_db))
        conn.execute("INSERT INTO tag (name, id) VALUES ('t1', 'ghost')")
        conn.commit()
        conn.close()
        assert backend.get_metadatas("ghost") is None
        assert backend.get_ids_matching_tags(["t1"]) == ["ghost"]
