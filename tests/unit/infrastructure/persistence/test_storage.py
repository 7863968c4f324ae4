"""
Tests pour SQLModelStorage et les repositories de donnees.

Ces tests verifient:
- Les recherches de films par chaque identifiant
- L'ordre de rafraichissement des metadonnees
- Les compteurs de lectures et les notes
- Le cache media-server
- L'atomicite des transactions
"""

from datetime import date, datetime

import pytest
from sqlalchemy import Engine

from src.core.entities.history import Rating
from src.core.entities.media_server import MediaServerCacheEntry
from src.core.exceptions import StorageError
from src.infrastructure.persistence.storage import SQLModelStorage
from tests.fixtures.factories import make_movie


class TestMovieRepository:
    """Tests pour SQLModelMovieRepository."""

    def test_save_and_lookup_by_every_identifier(self, storage: SQLModelStorage):
        with storage.transaction():
            saved = storage.movies.save(
                make_movie(
                    27205,
                    "Inception",
                    trakt_id=16662,
                    jellyfin_id="a1b2c3",
                    imdb_id="tt1375666",
                    genres=("Action", "Science Fiction"),
                )
            )

        assert saved.id is not None
        assert storage.movies.get_by_id(saved.id).title == "Inception"
        assert storage.movies.get_by_tmdb_id(27205).id == saved.id
        assert storage.movies.get_by_trakt_id(16662).id == saved.id
        assert storage.movies.get_by_jellyfin_id("a1b2c3").id == saved.id
        assert storage.movies.get_by_imdb_id("tt1375666").id == saved.id
        assert storage.movies.get_by_tmdb_id(27205).genres == ("Action", "Science Fiction")

    def test_save_existing_tmdb_id_updates(self, storage: SQLModelStorage):
        with storage.transaction():
            first = storage.movies.save(make_movie(603, "Matrix"))
            second = storage.movies.save(make_movie(603, "The Matrix", runtime=136))

        assert first.id == second.id
        assert storage.movies.get_by_tmdb_id(603).runtime == 136

    def test_least_recently_updated_first(self, storage: SQLModelStorage):
        with storage.transaction():
            recent = storage.movies.save(make_movie(1, "Recent", updated_at_tmdb=datetime(2024, 6, 1)))
            old = storage.movies.save(make_movie(2, "Old", updated_at_tmdb=datetime(2023, 1, 1)))
            never = storage.movies.save(make_movie(3, "Never"))

        ordered = storage.movies.list_least_recently_updated(limit=10)

        assert [movie.id for movie in ordered] == [never.id, old.id, recent.id]
        assert len(storage.movies.list_least_recently_updated(limit=1)) == 1

    def test_touch_keeps_metadata(self, storage: SQLModelStorage):
        with storage.transaction():
            movie = storage.movies.save(make_movie(1, "Kept"))
            storage.movies.touch(movie.id, datetime(2024, 1, 1))

        stored = storage.movies.get_by_id(movie.id)
        assert stored.title == "Kept"
        assert stored.updated_at_tmdb == datetime(2024, 1, 1)

    def test_list_with_poster(self, storage: SQLModelStorage):
        with storage.transaction():
            storage.movies.save(make_movie(1, "With", poster_path="/a.jpg"))
            storage.movies.save(make_movie(2, "Without"))

        assert [movie.tmdb_id for movie in storage.movies.list_with_poster()] == [1]


class TestWatchHistoryRepository:
    """Tests pour SQLModelWatchHistoryRepository."""

    @pytest.fixture
    def movie_id(self, storage: SQLModelStorage) -> int:
        with storage.transaction():
            return storage.movies.save(make_movie(27205, "Inception")).id

    def test_increment_creates_then_counts(self, storage: SQLModelStorage, movie_id: int):
        day = date(2023, 7, 3)
        with storage.transaction():
            assert storage.watch_history.increment_plays(1, movie_id, day) == 1
            assert storage.watch_history.increment_plays(1, movie_id, day) == 2

        assert storage.watch_history.get_plays(1, movie_id, day) == 2
        assert storage.watch_history.get_plays(1, movie_id, date(2023, 7, 4)) is None

    def test_set_plays(self, storage: SQLModelStorage, movie_id: int):
        day = date(2023, 7, 3)
        with storage.transaction():
            storage.watch_history.set_plays(1, movie_id, day, 3)
            storage.watch_history.set_plays(1, movie_id, date(2023, 7, 5), 1)

        assert storage.watch_history.get_plays(1, movie_id, day) == 3
        assert storage.watch_history.count_plays(1) == 4
        assert storage.watch_history.count_plays(2) == 0

    def test_set_plays_rejects_zero(self, storage: SQLModelStorage, movie_id: int):
        with pytest.raises(ValueError):
            storage.watch_history.set_plays(1, movie_id, date(2023, 7, 3), 0)


class TestRatingRepository:
    """Tests pour SQLModelRatingRepository."""

    @pytest.fixture
    def movie_id(self, storage: SQLModelStorage) -> int:
        with storage.transaction():
            return storage.movies.save(make_movie(27205, "Inception")).id

    def test_save_overwrites(self, storage: SQLModelStorage, movie_id: int):
        with storage.transaction():
            storage.ratings.save(Rating(user_id=1, movie_id=movie_id, value=7, source="csv"))
            storage.ratings.save(Rating(user_id=1, movie_id=movie_id, value=9, source="social"))

        assert storage.ratings.get(1, movie_id) == Rating(user_id=1, movie_id=movie_id, value=9, source="social")

    @pytest.mark.parametrize("value", [0, 11])
    def test_save_rejects_out_of_range(self, storage: SQLModelStorage, movie_id: int, value: int):
        with pytest.raises(ValueError):
            storage.ratings.save(Rating(user_id=1, movie_id=movie_id, value=value))

    def test_delete(self, storage: SQLModelStorage, movie_id: int):
        with storage.transaction():
            storage.ratings.save(Rating(user_id=1, movie_id=movie_id, value=5))
            assert storage.ratings.delete(1, movie_id) is True
            assert storage.ratings.delete(1, movie_id) is False

        assert storage.ratings.get(1, movie_id) is None


class TestMediaServerCacheRepository:
    """Tests pour SQLModelMediaServerCacheRepository."""

    def test_replace_and_list(self, storage: SQLModelStorage):
        with storage.transaction():
            storage.media_server_cache.replace(MediaServerCacheEntry(user_id=1, item_id="a", tmdb_id=1))
            storage.media_server_cache.replace(
                MediaServerCacheEntry(user_id=1, item_id="a", tmdb_id=1, watched=True, last_watch_date=date(2023, 5, 1))
            )
            storage.media_server_cache.replace(MediaServerCacheEntry(user_id=2, item_id="a", tmdb_id=1))

        entries = storage.media_server_cache.list_for_user(1)
        assert list(entries) == ["a"]
        assert entries["a"].watched is True
        assert entries["a"].last_watch_date == date(2023, 5, 1)
        assert entries["a"].cached_at is not None

    def test_delete_except(self, storage: SQLModelStorage):
        with storage.transaction():
            for item_id in ("a", "b", "c"):
                storage.media_server_cache.replace(MediaServerCacheEntry(user_id=1, item_id=item_id))
            storage.media_server_cache.replace(MediaServerCacheEntry(user_id=2, item_id="b"))
            removed = storage.media_server_cache.delete_except(1, {"a"})

        assert removed == 2
        assert set(storage.media_server_cache.list_for_user(1)) == {"a"}
        assert set(storage.media_server_cache.list_for_user(2)) == {"b"}

    def test_delete_except_large_sets(self, storage: SQLModelStorage):
        """Plus d'items que la limite de variables SQLite."""
        with storage.transaction():
            for index in range(600):
                storage.media_server_cache.replace(MediaServerCacheEntry(user_id=1, item_id=f"i{index}"))
            removed = storage.media_server_cache.delete_except(1, set())

        assert removed == 600
        assert storage.media_server_cache.list_for_user(1) == {}


class TestStorageTransaction:
    """Atomicite des lots."""

    def test_exception_rolls_back_batch(self, storage: SQLModelStorage, engine: Engine):
        with pytest.raises(RuntimeError):
            with storage.transaction():
                storage.movies.save(make_movie(1, "Lost"))
                raise RuntimeError("boom")

        other = SQLModelStorage(engine)
        try:
            assert other.movies.get_by_tmdb_id(1) is None
        finally:
            other.close()

    def test_database_error_becomes_storage_error(self, storage: SQLModelStorage):
        with storage.transaction():
            storage.movies.save(make_movie(1, "First", trakt_id=42))

        with pytest.raises(StorageError):
            with storage.transaction():
                storage.movies.save(make_movie(2, "Duplicate trakt id", trakt_id=42))

        assert storage.movies.get_by_tmdb_id(2) is None
        assert storage.movies.get_by_tmdb_id(1).trakt_id == 42

    def test_committed_batch_is_visible_to_other_sessions(self, storage: SQLModelStorage, engine: Engine):
        with storage.transaction():
            storage.movies.save(make_movie(5, "Shared"))

        other = SQLModelStorage(engine)
        try:
            assert other.movies.get_by_tmdb_id(5).title == "Shared"
        finally:
            other.close()
