# app/persistence/repositories/prefs_repo.py
# -*- coding: utf-8 -*-
"""
Préférences d'interface (tutoriel vu, bannière de bienvenue masquée…).

Les pages ne lisent/écrivent jamais ces drapeaux directement : elles reçoivent
un store (base de données pour un user connu, mémoire pour les tests).
"""
from sqlalchemy import select, delete, and_
from app.persistence.db import get_session
from app.persistence.models import UiPreference
import datetime as dt

TUTORIAL_SEEN = "tutorial_seen"
WELCOME_DISMISSED_ON = "welcome_dismissed_on"


class MemoryPreferenceStore:
    def __init__(self, initial: dict | None = None) -> None:
        self._data = dict(initial or {})

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value) -> None:
        self._data[key] = str(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class DbPreferenceStore:
    """Store persistant, une ligne par (user, clé)."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id

    def get(self, key: str, default=None):
        with get_session() as s:
            v = s.scalar(select(UiPreference.value).where(
                and_(UiPreference.user_id == self.user_id, UiPreference.key == key)
            ))
            return default if v is None else v

    def set(self, key: str, value) -> None:
        with get_session() as s:
            pref = s.scalar(select(UiPreference).where(
                and_(UiPreference.user_id == self.user_id, UiPreference.key == key)
            ).limit(1))
            if pref:
                pref.value = str(value)
            else:
                s.add(UiPreference(user_id=self.user_id, key=key, value=str(value)))

    def delete(self, key: str) -> None:
        with get_session() as s:
            s.execute(delete(UiPreference).where(
                and_(UiPreference.user_id == self.user_id, UiPreference.key == key)
            ))


def welcome_visible(store, today=None) -> bool:
    """La bannière réapparaît le lendemain du jour où elle a été fermée."""
    today = today or dt.date.today()
    return store.get(WELCOME_DISMISSED_ON) != today.isoformat()


def dismiss_welcome(store, today=None) -> None:
    today = today or dt.date.today()
    store.set(WELCOME_DISMISSED_ON, today.isoformat())


def tutorial_seen(store) -> bool:
    return store.get(TUTORIAL_SEEN, "false") == "true"


def mark_tutorial_seen(store) -> None:
    store.set(TUTORIAL_SEEN, "true")


def reset_tutorial(store) -> None:
    store.delete(TUTORIAL_SEEN)
