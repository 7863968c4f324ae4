"""
CineSync - Synchronisation de l'historique de visionnage de films.

Ce package agrège l'historique, les notes et le statut "vu" d'un utilisateur
depuis plusieurs sources (TMDB, Trakt, Jellyfin, exports CSV) dans un
stockage canonique indexé par l'identifiant TMDB.

Architecture : Hexagonale (Ports et Adaptateurs)
- core/ : Couche domaine (entités, ports, objets valeur)
- services/ : Couche application (réconciliation, file de jobs, orchestration)
- adapters/ : Couche infrastructure (CLI, clients API, import CSV)
- infrastructure/ : Persistance SQLModel
"""
