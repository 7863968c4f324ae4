"""
Moteur de reconciliation : fusion des enregistrements sources dans
l'historique de visionnage et les notes d'un utilisateur.

Regles d'idempotence :
- (utilisateur, film, jour) identifie une unite de lecture
- une source d'evenements dates (Trakt, CSV) ne fait jamais croitre les
  lectures quand elle est reimportee : les occurrences sont comptees sur le
  job et la ligne est portee a ce compte, jamais diminuee
- une source qui ne rapporte qu'un statut "vu" (Jellyfin) contribue au plus
  une lecture, au jour de la derniere lecture
- les notes suivent la derniere ecriture dans un lot ; entre sources, une
  source moins prioritaire n'ecrase pas une note plus prioritaire
"""

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from loguru import logger

from src.core.entities.history import Rating
from src.core.exceptions import BatchFailureError, ProtocolError, UnresolvableIdentifier
from src.core.ports.repositories import IStorage
from src.core.value_objects import CanonicalPartial, SourceKind
from src.services.identifier_resolver import IdentifierResolver

DEFAULT_RATING_PRECEDENCE = (SourceKind.SOCIAL.value, SourceKind.CSV.value, SourceKind.MEDIA_SERVER.value)
DEFAULT_ERROR_THRESHOLD = 0.10


class WatchMode(Enum):
    """Nature des visionnages rapportes par une source.

    Valeurs:
        DATED_EVENTS: Un enregistrement par lecture datee (Trakt, CSV)
        LAST_SEEN: Statut vu + date de derniere lecture (Jellyfin)
    """

    DATED_EVENTS = "dated_events"
    LAST_SEEN = "last_seen"


class BatchKind(Enum):
    """Contenu d'un lot : visionnages ou notes."""

    HISTORY = "history"
    RATINGS = "ratings"


@dataclass
class ImportSummary:
    """Compteurs d'un import (par lot ou cumules sur le job)."""

    applied: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.applied + self.skipped + self.failed

    def add(self, other: "ImportSummary") -> None:
        self.applied += other.applied
        self.skipped += other.skipped
        self.failed += other.failed

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def check_failure_ratio(summary: ImportSummary, threshold: float) -> None:
    """
    Leve BatchFailureError si la part d'enregistrements en echec depasse le seuil.

    Raises:
        BatchFailureError: failed / total > threshold
    """
    if summary.total and summary.failed / summary.total > threshold:
        raise BatchFailureError(summary.as_dict(), threshold)


def _identity(record: Any) -> CanonicalPartial:
    return record


class ReconciliationEngine:
    """
    Reconciliation pour un utilisateur et une source, le temps d'un job.

    Les ecritures passent par le stockage et s'inscrivent dans la
    transaction ouverte par l'appelant (un lot = une transaction).

    Example:
        engine = ReconciliationEngine(storage, resolver, user_id=1, source=SourceKind.CSV)
        with storage.transaction():
            summary = await engine.import_batch(rows, importer.to_canonical_partial)
    """

    def __init__(
        self,
        storage: IStorage,
        resolver: IdentifierResolver,
        user_id: int,
        source: SourceKind,
        watch_mode: WatchMode = WatchMode.DATED_EVENTS,
        rating_precedence: Optional[Iterable[str]] = None,
        error_threshold: float = DEFAULT_ERROR_THRESHOLD,
    ) -> None:
        """
        Args:
            storage: Stockage transactionnel des donnees
            resolver: Resolveur d'identifiants du job
            user_id: Utilisateur dont l'historique est reconcilie
            source: Source des enregistrements (precedence des notes)
            watch_mode: Evenements dates ou derniere lecture
            rating_precedence: Sources de la plus a la moins prioritaire
            error_threshold: Part maximale d'echecs tolérée par lot
        """
        self._storage = storage
        self._resolver = resolver
        self._user_id = user_id
        self._source = source
        self._watch_mode = watch_mode
        self._precedence = list(rating_precedence or DEFAULT_RATING_PRECEDENCE)
        self._error_threshold = error_threshold
        # Occurrences (film, jour) vues depuis le debut du job
        self._tally: Counter[tuple[int, date]] = Counter()

    # -- Operations unitaires ------------------------------------------------

    def record_watch(self, movie_id: int, watch_date: date) -> int:
        """Incremente les lectures du jour (cree la ligne a 1). Retourne le total."""
        return self._storage.watch_history.increment_plays(self._user_id, movie_id, watch_date)

    def set_play_count(self, movie_id: int, watch_date: date, plays: int) -> None:
        """Fixe le nombre exact de lectures du jour."""
        self._storage.watch_history.set_plays(self._user_id, movie_id, watch_date, plays)

    def set_rating(self, movie_id: int, value: Optional[int]) -> bool:
        """
        Ecrit ou supprime (value=None) la note, sous reserve de precedence.

        Returns:
            True si la note a ete ecrite ou supprimee
        """
        existing = self._storage.ratings.get(self._user_id, movie_id)
        if existing is not None and not self._may_override(existing.source):
            logger.debug(
                "Note conservee (source prioritaire)",
                movie_id=movie_id,
                existing_source=existing.source,
                source=self._source.value,
            )
            return False

        if value is None:
            return self._storage.ratings.delete(self._user_id, movie_id)

        self._storage.ratings.save(
            Rating(user_id=self._user_id, movie_id=movie_id, value=value, source=self._source.value)
        )
        return True

    def _rank(self, source: Optional[str]) -> int:
        if source in self._precedence:
            return self._precedence.index(source)
        return len(self._precedence)

    def _may_override(self, existing_source: Optional[str]) -> bool:
        """Une source ecrase une note de meme rang ou de rang inferieur."""
        return self._rank(self._source.value) <= self._rank(existing_source)

    # -- Application des enregistrements ------------------------------------

    def _apply_watch(self, movie_id: int, watch_date: date) -> None:
        if self._watch_mode is WatchMode.LAST_SEEN:
            if self._storage.watch_history.get_plays(self._user_id, movie_id, watch_date) is None:
                self.record_watch(movie_id, watch_date)
            return

        key = (movie_id, watch_date)
        self._tally[key] += 1
        current = self._storage.watch_history.get_plays(self._user_id, movie_id, watch_date) or 0
        if self._tally[key] > current:
            self.set_play_count(movie_id, watch_date, self._tally[key])

    async def import_batch(
        self,
        records: Iterable[Any],
        convert: Callable[[Any], CanonicalPartial] = _identity,
        kind: BatchKind = BatchKind.HISTORY,
    ) -> ImportSummary:
        """
        Applique un lot d'enregistrements dans l'ordre d'emission.

        Args:
            records: Enregistrements natifs (ou CanonicalPartial)
            convert: Conversion vers CanonicalPartial, peut lever ProtocolError
            kind: Visionnages ou notes

        Returns:
            Compteurs applied / skipped / failed du lot

        Raises:
            BatchFailureError: Plus de error_threshold du lot en ProtocolError
        """
        summary = ImportSummary()

        for record in records:
            try:
                partial = convert(record)
                if not partial.has_identifier:
                    logger.warning("Enregistrement sans identifiant ignore", source=self._source.value)
                    summary.skipped += 1
                    continue

                movie_id = await self._resolver.resolve(partial)

                if kind is BatchKind.RATINGS:
                    if self.set_rating(movie_id, partial.rating):
                        summary.applied += 1
                    else:
                        summary.skipped += 1
                elif partial.watch_date is None:
                    summary.skipped += 1
                else:
                    self._apply_watch(movie_id, partial.watch_date)
                    summary.applied += 1

            except UnresolvableIdentifier as e:
                logger.info("Enregistrement non resolu ignore", reason=str(e))
                summary.skipped += 1
            except ProtocolError as e:
                logger.warning("Enregistrement invalide", error=str(e))
                summary.failed += 1

        check_failure_ratio(summary, self._error_threshold)
        logger.debug("Lot reconcilie", source=self._source.value, kind=kind.value, **summary.as_dict())
        return summary
