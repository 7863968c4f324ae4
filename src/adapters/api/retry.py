"""
Mecanisme de retry avec backoff exponentiel pour les API externes.

Convertit les reponses HTTP en erreurs du domaine puis relance les erreurs
recuperables :

- 401 / 403 -> AuthError, jamais relancee
- 429 -> RateLimitError, relancee (Retry-After respecte dans la limite du plafond)
- 5xx, timeouts, erreurs de transport -> TransientNetworkError, relancee
- 404 -> httpx.HTTPStatusError, propagee sans retry (ressource absente, geree par l'appelant)
- autres 4xx -> ProtocolError, jamais relancee

Politique par defaut : attente initiale 1s, facteur 2, plafond 60s, 5 tentatives.

Usage:
    # Avec le decorateur
    @with_retry(max_attempts=5, max_wait=60)
    async def my_api_call():
        ...

    # Avec la fonction helper
    response = await request_with_retry(client, "GET", url, provider="tmdb")
"""

from typing import Any

import httpx
from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.exceptions import (
    AuthError,
    ProtocolError,
    RateLimitError,
    TransientNetworkError,
)

__all__ = [
    "RateLimitError",
    "TransientNetworkError",
    "decode_json",
    "request_with_retry",
    "with_retry",
]


def _backoff(initial_wait: float, max_wait: float):
    """
    Strategie d'attente : exponentielle, ou Retry-After si fourni par l'API.

    Les deux sont bornees par max_wait.
    """
    exponential = wait_exponential(multiplier=initial_wait, exp_base=2, min=0, max=max_wait)

    def wait(retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RateLimitError) and exc.retry_after is not None:
            return float(min(exc.retry_after, max_wait))
        return exponential(retry_state)

    return wait


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Requete relancee",
        attempt=retry_state.attempt_number,
        error=type(exc).__name__,
        detail=str(exc),
    )


def with_retry(max_attempts: int = 5, initial_wait: float = 1.0, max_wait: float = 60.0):
    """
    Decorateur pour relancer sur RateLimitError / TransientNetworkError.

    Args:
        max_attempts: Nombre maximum de tentatives (defaut: 5)
        initial_wait: Premiere attente en secondes, doublee a chaque tentative (defaut: 1)
        max_wait: Delai maximum entre les tentatives en secondes (defaut: 60)

    Returns:
        Decorateur a appliquer sur une fonction async

    Example:
        @with_retry(max_attempts=3, max_wait=30)
        async def fetch_data():
            # Sera relance jusqu'a 3 fois si RateLimitError est levee
            ...
    """
    return retry(
        retry=retry_if_exception_type((RateLimitError, TransientNetworkError)),
        wait=_backoff(initial_wait, max_wait),
        stop=stop_after_attempt(max_attempts),
        before_sleep=_log_retry,
        reraise=True,
    )


def _check_status(response: httpx.Response, provider: str) -> None:
    """Convertit un statut HTTP d'erreur en exception du domaine."""
    status = response.status_code
    if status in (401, 403):
        raise AuthError(provider, f"{provider} rejected credentials (HTTP {status})")
    if status == 429:
        retry_after_header = response.headers.get("Retry-After")
        retry_after = int(retry_after_header) if retry_after_header and retry_after_header.isdigit() else None
        raise RateLimitError(retry_after)
    if status >= 500:
        raise TransientNetworkError(f"{provider} returned HTTP {status}")
    if status == 404:
        response.raise_for_status()
    if status >= 400:
        raise ProtocolError(f"{provider} rejected the request (HTTP {status})")


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    provider: str = "api",
    max_attempts: int = 5,
    initial_wait: float = 1.0,
    max_wait: float = 60.0,
    **kwargs: Any,
) -> httpx.Response:
    """
    Execute une requete HTTP avec retry automatique.

    Args:
        client: Client httpx async a utiliser
        method: Methode HTTP (GET, POST, etc.)
        url: URL a appeler
        provider: Nom du fournisseur, repris dans AuthError
        max_attempts: Nombre maximum de tentatives (defaut: 5)
        initial_wait: Premiere attente du backoff en secondes
        max_wait: Plafond d'attente en secondes
        **kwargs: Arguments supplementaires passes a client.request()

    Returns:
        httpx.Response en cas de succes

    Raises:
        AuthError: Sur 401/403, sans retry
        RateLimitError: Si 429 apres epuisement des tentatives
        TransientNetworkError: Si 5xx ou erreur reseau apres epuisement des tentatives
        httpx.HTTPStatusError: Sur 404
        ProtocolError: Pour les autres erreurs 4xx
    """

    @with_retry(max_attempts=max_attempts, initial_wait=initial_wait, max_wait=max_wait)
    async def _do_request() -> httpx.Response:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            # Couvre les timeouts, erreurs de connexion et de lecture
            raise TransientNetworkError(f"{provider} request failed: {e!r}") from e
        _check_status(response, provider)
        return response

    return await _do_request()


def decode_json(response: httpx.Response, provider: str = "api") -> Any:
    """
    Decode le corps JSON d'une reponse.

    Raises:
        ProtocolError: Si le corps n'est pas du JSON valide
    """
    try:
        return response.json()
    except ValueError as e:
        raise ProtocolError(f"{provider} returned invalid JSON: {e}") from e
