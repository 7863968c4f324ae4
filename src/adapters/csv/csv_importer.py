"""
Importeur des exports CSV personnels (historique de streaming).

Format attendu : une ligne d'en-tete puis un enregistrement par ligne.

- Historique : colonnes Title et Date obligatoires
- Notes : colonnes Title et Rating obligatoires, Date optionnelle

Colonne Year optionnelle pour affiner la recherche par titre. La date est
lue avec un format fourni par l'appelant, en style PHP (d/m/Y) ou strptime
(%d/%m/%Y).

Limitation connue : un titre contenant ':' est traite comme un episode de
serie ("Serie: Episode") et ignore, y compris pour les films sous-titres.
"""

import csv
from collections.abc import Generator
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from src.core.entities.history import is_valid_rating
from src.core.exceptions import ProtocolError, UnresolvableIdentifier
from src.core.ports.api_clients import IExportReader
from src.core.value_objects import CanonicalPartial, SourceKind

HISTORY_COLUMNS = ("Title", "Date")
RATING_COLUMNS = ("Title", "Rating")

# Correspondance des directives de format PHP vers strptime
_PHP_DIRECTIVES = {
    "d": "%d",
    "j": "%d",
    "m": "%m",
    "n": "%m",
    "Y": "%Y",
    "y": "%y",
    "M": "%b",
    "F": "%B",
    "H": "%H",
    "G": "%H",
    "i": "%M",
    "s": "%S",
}


def to_strptime_format(date_format: str) -> str:
    """
    Convertit un format de date PHP (d/m/Y) en format strptime (%d/%m/%Y).

    Un format contenant deja des directives '%' est retourne tel quel.
    """
    if "%" in date_format:
        return date_format
    return "".join(_PHP_DIRECTIVES.get(char, char) for char in date_format)


def is_series_title(title: str) -> bool:
    """Heuristique de l'export : 'Serie: Episode' designe un episode."""
    return ":" in title


class CsvImporter(IExportReader):
    """
    Lecteur d'export CSV pour un fichier et un mode (historique ou notes).

    Example:
        importer = CsvImporter(Path("ViewingActivity.csv"), date_format="d/m/Y")
        for page in importer.iter_pages():
            for row in page:
                partial = importer.to_canonical_partial(row)
    """

    def __init__(
        self,
        file_path: Path,
        ratings: bool = False,
        date_format: str = "d/m/Y",
        page_size: int = 1000,
    ) -> None:
        """
        Args:
            file_path: Chemin du fichier CSV
            ratings: True pour un export de notes, False pour l'historique
            date_format: Format des dates, style PHP ou strptime
            page_size: Lignes par page
        """
        self._file_path = Path(file_path)
        self._ratings = ratings
        self._date_format = to_strptime_format(date_format)
        self._page_size = page_size

    @property
    def kind(self) -> SourceKind:
        return SourceKind.CSV

    @property
    def name(self) -> str:
        return "csv"

    @property
    def required_columns(self) -> tuple[str, ...]:
        return RATING_COLUMNS if self._ratings else HISTORY_COLUMNS

    def iter_pages(self) -> Generator[list[dict[str, str]], None, None]:
        """
        Lit le fichier en mode streaming, par pages de page_size lignes.

        Raises:
            FileNotFoundError: Si le fichier n'existe pas
            ProtocolError: Si une colonne obligatoire manque dans l'en-tete
        """
        if not self._file_path.exists():
            raise FileNotFoundError(f"Fichier non trouve: {self._file_path}")

        # utf-8-sig : les exports Windows commencent souvent par un BOM
        with open(self._file_path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            header = [column.strip() for column in reader.fieldnames or []]
            missing = [column for column in self.required_columns if column not in header]
            if missing:
                raise ProtocolError(
                    f"CSV file {self._file_path.name} misses columns: {', '.join(missing)}"
                )
            reader.fieldnames = header

            page: list[dict[str, str]] = []
            for row in reader:
                page.append(row)
                if len(page) >= self._page_size:
                    yield page
                    page = []
            if page:
                yield page

    def _parse_date(self, value: Optional[str]) -> date:
        if not value or not value.strip():
            raise ProtocolError("CSV row without date")
        try:
            return datetime.strptime(value.strip(), self._date_format).date()
        except ValueError as e:
            raise ProtocolError(
                f"Date {value!r} does not match format {self._date_format!r}"
            ) from e

    @staticmethod
    def _parse_year(value: Optional[str]) -> Optional[int]:
        if not value or not value.strip():
            return None
        try:
            return int(value.strip())
        except ValueError as e:
            raise ProtocolError(f"Invalid year {value!r}") from e

    @staticmethod
    def _parse_rating(value: Optional[str]) -> Optional[int]:
        """Note 1..10 ; vide ou 0 signifie "pas de note" (suppression)."""
        if value is None or not value.strip():
            return None
        try:
            rating = int(value.strip())
        except ValueError as e:
            raise ProtocolError(f"Invalid rating {value!r}") from e
        if rating == 0:
            return None
        if not is_valid_rating(rating):
            raise ProtocolError(f"Rating out of range: {rating}")
        return rating

    def to_canonical_partial(self, record: Any) -> CanonicalPartial:
        """
        Convertit une ligne CSV.

        Raises:
            UnresolvableIdentifier: Ligne d'episode de serie
            ProtocolError: Date, annee ou note invalide
        """
        if not isinstance(record, dict):
            raise ProtocolError(f"CSV row is not a mapping: {record!r}")

        title = (record.get("Title") or "").strip()
        if is_series_title(title):
            raise UnresolvableIdentifier(f"Series episode, not a movie: {title!r}")

        year = self._parse_year(record.get("Year"))
        if self._ratings:
            raw_date = record.get("Date")
            watch_date = self._parse_date(raw_date) if raw_date and raw_date.strip() else None
            return CanonicalPartial(
                title=title,
                year=year,
                watch_date=watch_date,
                rating=self._parse_rating(record.get("Rating")),
            )

        return CanonicalPartial(
            title=title,
            year=year,
            watch_date=self._parse_date(record.get("Date")),
        )
