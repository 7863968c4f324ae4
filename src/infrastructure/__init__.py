"""
Couche infrastructure de CineSync.

Ce module contient les implementations concretes des interfaces definies
dans la couche domaine (ports). Il gere les preoccupations techniques :

- persistence/ : Stockage SQLite ou MySQL avec SQLModel (modeles, repositories,
  facade transactionnelle)

Architecture hexagonale : les adapters ici implementent les ports du domaine,
permettant de changer de base (ex: MySQL au lieu de SQLite) sans modifier la
logique metier.
"""
