"""
Couche domaine (core).

Contient les entités métier, ports (interfaces abstraites), objets valeur et
exceptions. Cette couche n'a AUCUNE dépendance vers l'infrastructure
(adapters, frameworks, BDD).

Sous-packages :
- entities/ : Entités métier (Movie, WatchEvent, Rating, Job, cache média)
- ports/ : Interfaces abstraites définissant les contrats pour les adaptateurs
- value_objects/ : Objets valeur immutables (CanonicalPartial, SourceKind)
- exceptions : Hiérarchie des erreurs du domaine
"""
