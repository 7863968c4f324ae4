"""
Mock Trakt API responses for testing.

Pages of /sync/history/movies and /sync/ratings/movies, and the OAuth token refresh.
"""

# GET /sync/history/movies?page=1&limit=1000
TRAKT_HISTORY_PAGE = [
    {
        "id": 1982346,
        "watched_at": "2023-07-03T20:15:00.000Z",
        "action": "watch",
        "type": "movie",
        "movie": {
            "title": "Inception",
            "year": 2010,
            "ids": {"trakt": 16662, "slug": "inception-2010", "imdb": "tt1375666", "tmdb": 27205},
        },
    },
    {
        "id": 1982347,
        "watched_at": "2023-07-03T23:40:00.000Z",
        "action": "watch",
        "type": "movie",
        "movie": {
            "title": "Inception",
            "year": 2010,
            "ids": {"trakt": 16662, "slug": "inception-2010", "imdb": "tt1375666", "tmdb": 27205},
        },
    },
]

# GET /sync/ratings/movies?page=1&limit=1000
TRAKT_RATINGS_PAGE = [
    {
        "rated_at": "2023-07-04T08:00:00.000Z",
        "rating": 9,
        "type": "movie",
        "movie": {
            "title": "Inception",
            "year": 2010,
            "ids": {"trakt": 16662, "slug": "inception-2010", "imdb": "tt1375666", "tmdb": 27205},
        },
    },
]

# POST /oauth/token
TRAKT_TOKEN_RESPONSE = {
    "access_token": "new-access-token",
    "token_type": "bearer",
    "expires_in": 7776000,
    "refresh_token": "new-refresh-token",
    "scope": "public",
    "created_at": 1700000000,
}


def history_record(trakt_id: int, tmdb_id: int, watched_at: str, title: str = "Movie") -> dict:
    """Evenement d'historique Trakt minimal."""
    return {
        "id": trakt_id * 10,
        "watched_at": watched_at,
        "action": "watch",
        "type": "movie",
        "movie": {"title": title, "year": 2020, "ids": {"trakt": trakt_id, "tmdb": tmdb_id}},
    }
