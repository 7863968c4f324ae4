"""
Objets valeur immutables representant des concepts du domaine sans identite.

Les objets valeur sont definis par leurs attributs plutot que par une identite.
Ils sont immutables et peuvent etre librement partages et compares par valeur.

Exports :
- CanonicalPartial : Enregistrement source normalise en attente de resolution
- SourceKind : Source d'un enregistrement (social, csv, media_server)
"""

from src.core.value_objects.partial_record import CanonicalPartial, SourceKind

__all__ = [
    "CanonicalPartial",
    "SourceKind",
]
