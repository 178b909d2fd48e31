# tests/conftest.py
# -*- coding: utf-8 -*-
"""
Fixtures partagées : base SQLite temporaire par test + repositories rechargés.
"""

import importlib
from dataclasses import dataclass

import pytest


@dataclass
class Repos:
    users: object
    books: object
    sessions: object
    models: object
    sessions_module: object
    prefs_module: object


@pytest.fixture
def repos(tmp_path, monkeypatch) -> Repos:
    """
    Prépare un environnement propre :
    - crée une base SQLite temporaire (ex: /tmp/pytest-xxxx/test_lireon.db)
    - définit DB_URL AVANT de (re)charger les modules
    - (re)charge db/models pour régénérer l'engine et les tables
    - instancie les repositories Users/Books/Sessions
    """
    db_path = tmp_path / "test_lireon.db"
    monkeypatch.setenv("DB_URL", f"sqlite:///{db_path}")

    # (Re)charger les modules d'infra et de modèles
    import app.persistence.db as db
    import app.persistence.models as models
    importlib.reload(db)
    importlib.reload(models)

    # Créer (ou recréer) les tables
    db.init_db(models.Base, drop_and_recreate=True)

    # (Re)charger les repos (pour qu'ils utilisent bien le db.engine courant)
    import app.persistence.repositories.users_repo as users_repo
    import app.persistence.repositories.books_repo as books_repo
    import app.persistence.repositories.sessions_repo as sessions_repo
    import app.persistence.repositories.prefs_repo as prefs_repo
    for mod in (users_repo, books_repo, sessions_repo, prefs_repo):
        importlib.reload(mod)

    return Repos(
        users=users_repo.UserRepository(),
        books=books_repo.BookRepository(),
        sessions=sessions_repo.SessionRepository(),
        models=models,
        sessions_module=sessions_repo,
        prefs_module=prefs_repo,
    )


@pytest.fixture
def reader(repos: Repos):
    """Un lecteur inscrit, sans livre."""
    return repos.users.register("alice", "alice@example.com")
