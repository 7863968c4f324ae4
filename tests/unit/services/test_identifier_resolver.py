"""
Tests unitaires pour IdentifierResolver.

Ces tests verifient:
- La recherche locale par chaque identifiant, sans appel API
- La creation d'un film inconnu depuis TMDB
- La resolution par ID IMDb puis par titre + annee
- Le complement des IDs manquants
- La memoisation le temps d'un job
"""

from unittest.mock import AsyncMock

import pytest

from src.core.exceptions import UnresolvableIdentifier
from src.infrastructure.persistence.storage import SQLModelStorage
from src.services.identifier_resolver import IdentifierResolver
from src.services.metadata_cache import MetadataCache
from src.core.value_objects import CanonicalPartial
from tests.fixtures.factories import make_movie


@pytest.fixture
def resolver(storage: SQLModelStorage, mock_metadata_client: AsyncMock) -> IdentifierResolver:
    cache = MetadataCache(storage.movies, mock_metadata_client)
    return IdentifierResolver(cache, storage.movies, mock_metadata_client)


class TestLocalResolution:
    """Films deja connus localement."""

    @pytest.mark.asyncio
    async def test_known_tmdb_id_needs_no_api_call(
        self, resolver: IdentifierResolver, storage: SQLModelStorage, mock_metadata_client: AsyncMock
    ):
        movie = storage.movies.save(make_movie(27205, "Inception"))

        assert await resolver.resolve(CanonicalPartial(tmdb_id=27205)) == movie.id
        mock_metadata_client.get_details.assert_not_called()

    @pytest.mark.asyncio
    async def test_lookup_by_secondary_ids(self, resolver: IdentifierResolver, storage: SQLModelStorage):
        movie = storage.movies.save(
            make_movie(603, "The Matrix", imdb_id="tt0133093", trakt_id=481, jellyfin_id="jf-603")
        )

        assert await resolver.resolve(CanonicalPartial(imdb_id="tt0133093")) == movie.id
        assert await resolver.resolve(CanonicalPartial(trakt_id=481)) == movie.id
        assert await resolver.resolve(CanonicalPartial(jellyfin_id="jf-603")) == movie.id

    @pytest.mark.asyncio
    async def test_missing_ids_are_backfilled(self, resolver: IdentifierResolver, storage: SQLModelStorage):
        movie = storage.movies.save(make_movie(27205, "Inception"))

        await resolver.resolve(
            CanonicalPartial(tmdb_id=27205, trakt_id=16662, imdb_id="tt1375666", jellyfin_id="a1b2c3")
        )

        stored = storage.movies.get_by_id(movie.id)
        assert stored.trakt_id == 16662
        assert stored.imdb_id == "tt1375666"
        assert stored.jellyfin_id == "a1b2c3"

    @pytest.mark.asyncio
    async def test_trakt_id_owned_by_another_movie_is_kept(
        self, resolver: IdentifierResolver, storage: SQLModelStorage
    ):
        owner = storage.movies.save(make_movie(1, "Owner", trakt_id=99))
        other = storage.movies.save(make_movie(2, "Other"))

        assert await resolver.resolve(CanonicalPartial(tmdb_id=2, trakt_id=99)) == other.id

        assert storage.movies.get_by_id(other.id).trakt_id is None
        assert storage.movies.get_by_id(owner.id).trakt_id == 99


class TestRemoteResolution:
    """Films inconnus localement, resolus via TMDB."""

    @pytest.mark.asyncio
    async def test_unknown_tmdb_id_creates_movie(
        self, resolver: IdentifierResolver, storage: SQLModelStorage, mock_metadata_client: AsyncMock
    ):
        movie_id = await resolver.resolve(CanonicalPartial(tmdb_id=27205, trakt_id=16662))

        movie = storage.movies.get_by_id(movie_id)
        assert movie.tmdb_id == 27205
        assert movie.title == "Inception"
        assert movie.imdb_id == "tt1375666"
        assert movie.trakt_id == 16662
        assert movie.updated_at_tmdb is not None
        mock_metadata_client.get_details.assert_awaited_once_with(27205, use_cache=True)

    @pytest.mark.asyncio
    async def test_imdb_id_resolved_with_find(
        self, resolver: IdentifierResolver, storage: SQLModelStorage, mock_metadata_client: AsyncMock
    ):
        movie_id = await resolver.resolve(CanonicalPartial(imdb_id="tt0133093"))

        assert storage.movies.get_by_id(movie_id).tmdb_id == 603
        mock_metadata_client.find_by_imdb_id.assert_awaited_once_with("tt0133093")
        mock_metadata_client.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_title_and_year_resolved_with_search(
        self, resolver: IdentifierResolver, storage: SQLModelStorage, mock_metadata_client: AsyncMock
    ):
        movie_id = await resolver.resolve(CanonicalPartial(title="The Example Film", year=2021))

        movie = storage.movies.get_by_id(movie_id)
        assert movie.tmdb_id == 555
        mock_metadata_client.search.assert_awaited_once_with("The Example Film", year=2021)

    @pytest.mark.asyncio
    async def test_search_hit_on_known_movie_reuses_it(
        self, resolver: IdentifierResolver, storage: SQLModelStorage, mock_metadata_client: AsyncMock
    ):
        existing = storage.movies.save(make_movie(603, "The Matrix"))

        assert await resolver.resolve(CanonicalPartial(title="the matrix")) == existing.id
        mock_metadata_client.get_details.assert_not_called()

    @pytest.mark.asyncio
    async def test_title_without_match_is_unresolvable(self, resolver: IdentifierResolver):
        with pytest.raises(UnresolvableIdentifier):
            await resolver.resolve(CanonicalPartial(title="No Such Movie"))

    @pytest.mark.asyncio
    async def test_tmdb_id_unknown_to_tmdb(self, resolver: IdentifierResolver):
        with pytest.raises(UnresolvableIdentifier):
            await resolver.resolve(CanonicalPartial(tmdb_id=999999))

    @pytest.mark.asyncio
    async def test_empty_partial_is_unresolvable(self, resolver: IdentifierResolver):
        with pytest.raises(UnresolvableIdentifier):
            await resolver.resolve(CanonicalPartial())


class TestMemoization:
    """Memoisation des resolutions sur la duree du job."""

    @pytest.mark.asyncio
    async def test_successful_resolution_is_memoized(
        self, resolver: IdentifierResolver, mock_metadata_client: AsyncMock
    ):
        first = await resolver.resolve(CanonicalPartial(title="Inception", year=2010))
        second = await resolver.resolve(CanonicalPartial(title="  INCEPTION ", year=2010))

        assert first == second
        assert mock_metadata_client.search.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_resolution_is_memoized(
        self, resolver: IdentifierResolver, mock_metadata_client: AsyncMock
    ):
        for _ in range(3):
            with pytest.raises(UnresolvableIdentifier):
                await resolver.resolve(CanonicalPartial(title="No Such Movie"))

        assert mock_metadata_client.search.await_count == 1
