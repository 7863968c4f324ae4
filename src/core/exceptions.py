"""
Exceptions du domaine CineSync.

Hierarchie des erreurs remontees par les adaptateurs (clients API, stockage)
et interpretees par le worker de jobs. L'ordre de precedence pour la
propagation est celui de la declaration :

- AuthError : identifiants invalides ou expires, le job echoue immediatement
- RateLimitError : 429 persistant apres epuisement des tentatives
- TransientNetworkError : erreur reseau ou 5xx persistante
- ProtocolError : reponse amont qui viole le contrat, enregistrement ignore
- UnresolvableIdentifier : film introuvable, enregistrement ignore
- StorageError : erreur base de donnees, le lot est annule
- JobAlreadyClaimed : interne, un autre worker a pris le job
"""

from typing import Any, Optional


class CineSyncError(Exception):
    """Classe de base de toutes les erreurs CineSync."""

    kind = "CineSyncError"


class AuthError(CineSyncError):
    """
    Identifiants refuses par un fournisseur (401/403 ou token non rafraichissable).

    Attributes:
        provider: Fournisseur concerne ("trakt", "jellyfin", "tmdb")
    """

    kind = "AuthError"

    def __init__(self, provider: str, message: str = "") -> None:
        self.provider = provider
        super().__init__(message or f"Authentication rejected by {provider}")


class RateLimitError(CineSyncError):
    """
    Exception levee quand l'API retourne 429 Too Many Requests.

    Attributes:
        retry_after: Nombre de secondes a attendre (depuis le header Retry-After),
                     ou None si non specifie.
    """

    kind = "RateLimitError"

    def __init__(self, retry_after: Optional[int] = None) -> None:
        self.retry_after = retry_after
        super().__init__(f"Rate limited. Retry after: {retry_after}s")


class TransientNetworkError(CineSyncError):
    """Erreur reseau, timeout ou reponse 5xx."""

    kind = "TransientNetworkError"


class ProtocolError(CineSyncError):
    """Reponse ou enregistrement amont ne respectant pas le format attendu."""

    kind = "ProtocolError"


class BatchFailureError(ProtocolError):
    """
    Trop d'enregistrements invalides dans un lot.

    Attributes:
        summary: Compteurs du lot au moment de l'abandon
    """

    kind = "ProtocolError"

    def __init__(self, summary: dict[str, Any], threshold: float) -> None:
        self.summary = summary
        super().__init__(
            f"More than {threshold:.0%} of the batch failed: "
            f"applied={summary.get('applied')}, skipped={summary.get('skipped')}, "
            f"failed={summary.get('failed')}"
        )


class UnresolvableIdentifier(CineSyncError):
    """Aucun film canonique ne correspond aux identifiants d'un enregistrement."""

    kind = "UnresolvableIdentifier"


class StorageError(CineSyncError):
    """Erreur de la base de donnees pendant un lot."""

    kind = "StorageError"


class JobAlreadyClaimed(CineSyncError):
    """Le job a ete reclame par un autre worker."""

    kind = "JobAlreadyClaimed"


class JobTerminatedError(CineSyncError):
    """Le job a ete termine de l'exterieur pendant son execution."""

    kind = "JobTerminated"


class UnsupportedJobType(CineSyncError):
    """Aucune routine n'est enregistree pour ce type de job."""

    kind = "UnsupportedJobType"
