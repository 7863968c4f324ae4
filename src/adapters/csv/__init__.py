"""Import des exports CSV personnels."""

from src.adapters.csv.csv_importer import CsvImporter

__all__ = ["CsvImporter"]
