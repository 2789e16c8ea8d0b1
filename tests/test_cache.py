"""Tests for the board/list cache and the sunset cache persistence."""

from datetime import datetime, timedelta, timezone

import pytest

from trellosync.Exceptions import CacheError
from trellosync.helpers.CacheHelper import (BoardCache, JsonFileStore, MemoryStore, SunsetCache,
                                            SunsetCacheStore)
from trellosync.models import Board, CacheSnapshot, TrelloList

NOW = datetime(2025, 9, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def snapshot():
    return CacheSnapshot(
        boards=[Board("b1", "Makai School", "https://trello.com/b/1")],
        lists=[TrelloList("l1", "Daily", "b1"), TrelloList("l2", "Weekly", "b1")],
    )


class TestBoardCache:
    def test_save_then_load_from_file(self, tmp_path, snapshot):
        cache = BoardCache(JsonFileStore(str(tmp_path / "trello_cache.json")))
        cache.save(snapshot)
        assert cache.load() == snapshot

    def test_file_uses_trello_field_names(self, tmp_path, snapshot):
        store = JsonFileStore(str(tmp_path / "trello_cache.json"))
        BoardCache(store).save(snapshot)
        assert store.load()["lists"][0] == {"id": "l1", "name": "Daily", "idBoard": "b1"}

    def test_save_overwrites_whole_document(self, snapshot):
        store = MemoryStore()
        cache = BoardCache(store)
        cache.save(snapshot)
        cache.save(CacheSnapshot(boards=[Board("b9", "Mac")], lists=[]))
        loaded = cache.load()
        assert [b.id for b in loaded.boards] == ["b9"]
        assert loaded.lists == []

    def test_missing_file_is_an_error(self, tmp_path):
        with pytest.raises(CacheError, match="--refresh"):
            BoardCache(JsonFileStore(str(tmp_path / "missing.json"))).load()

    def test_corrupt_file_is_an_error(self, tmp_path):
        path = tmp_path / "trello_cache.json"
        path.write_text("{not json")
        with pytest.raises(CacheError):
            BoardCache(JsonFileStore(str(path))).load()

    def test_missing_section_is_an_error(self):
        with pytest.raises(CacheError):
            BoardCache(MemoryStore({"boards": []})).load()

    def test_unreadable_path_is_an_error(self, tmp_path):
        with pytest.raises(CacheError, match="failed to read"):
            BoardCache(JsonFileStore(str(tmp_path))).load()


class TestSunsetCacheStore:
    @pytest.fixture
    def cache(self):
        return SunsetCache(40.2969, -111.6946, NOW + timedelta(days=10), {"2025-09-15": "7:31 PM MDT"})

    def test_hit(self, cache):
        store = SunsetCacheStore(MemoryStore(cache.to_dict()))
        assert store.lookup("2025-09-15", 40.2969, -111.6946, NOW) == "7:31 PM MDT"

    def test_expired_is_a_miss(self, cache):
        store = SunsetCacheStore(MemoryStore(cache.to_dict()))
        assert store.lookup("2025-09-15", 40.2969, -111.6946, NOW + timedelta(days=10)) is None

    def test_other_location_is_a_miss(self, cache):
        store = SunsetCacheStore(MemoryStore(cache.to_dict()))
        assert store.lookup("2025-09-15", 40.0, -111.6946, NOW) is None

    def test_absent_file_is_a_miss(self, tmp_path):
        store = SunsetCacheStore(JsonFileStore(str(tmp_path / "sunset_cache.json")))
        assert store.load() is None

    def test_corrupt_file_is_a_miss(self, tmp_path):
        path = tmp_path / "sunset_cache.json"
        path.write_text("[]")
        assert SunsetCacheStore(JsonFileStore(str(path))).load() is None

    def test_unreadable_path_is_a_miss(self, tmp_path):
        assert SunsetCacheStore(JsonFileStore(str(tmp_path))).load() is None

    def test_round_trip(self, tmp_path, cache):
        store = SunsetCacheStore(JsonFileStore(str(tmp_path / "sunset_cache.json")))
        store.save(cache)
        assert store.load() == cache
