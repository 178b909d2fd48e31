# app/persistence/repositories/users_repo.py
# -*- coding: utf-8 -*-
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from app.persistence.db import get_session
from app.persistence.models import User
from app.services.errors import NotFoundError, ValidationError
import logging

logger = logging.getLogger(__name__)

MIN_USERNAME_LEN = 3


def _positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{name} doit être un entier positif (reçu: {value!r})")
    return value


def _free_username(s, base: str) -> str:
    base = base.strip().lower() or "lecteur"
    taken = set(s.scalars(select(User.username).where(User.username.like(f"{base}%"))))
    if base not in taken:
        return base
    n = 2
    while f"{base}{n}" in taken:
        n += 1
    return f"{base}{n}"


class UserRepository:
    def create(self, email: str, username: str | None = None) -> User:
        """
        Crée un user. Sans `username`, il est déduit de l'email ("alice@…" -> "alice",
        puis "alice2", "alice3"… si déjà pris).
        """
        email = email.strip().lower()
        try:
            with get_session() as s:
                if username:
                    username = username.strip().lower()
                else:
                    username = _free_username(s, email.split("@")[0])
                u = User(email=email, username=username)
                s.add(u)
                s.flush(); s.refresh(u); s.expunge(u)
        except IntegrityError as e:
            logger.warning("Création refusée pour %s: doublon email/username", email)
            raise ValidationError("Email ou nom d'utilisateur déjà enregistré") from e
        logger.info("Utilisateur créé: %s (id=%s)", u.email, u.id)
        return u

    def register(self, username: str, email: str) -> User:
        """Inscription : valide les champs et refuse les doublons (email ou username)."""
        username = (username or "").strip().lower()
        email = (email or "").strip().lower()
        if not username or not email:
            raise ValidationError("Tous les champs sont requis")
        if len(username) < MIN_USERNAME_LEN:
            raise ValidationError(f"Le nom d'utilisateur doit faire au moins {MIN_USERNAME_LEN} caractères")
        if "@" not in email:
            raise ValidationError(f"Email invalide: {email}")

        with get_session() as s:
            existing = s.scalar(select(User).where(or_(User.email == email, User.username == username)).limit(1))
            if existing:
                if existing.email == email:
                    raise ValidationError("Email déjà enregistré")
                raise ValidationError("Nom d'utilisateur déjà pris")
        return self.create(email=email, username=username)

    def get(self, user_id: int) -> User:
        with get_session() as s:
            u = s.get(User, user_id)
            if not u:
                raise NotFoundError(f"Utilisateur introuvable: {user_id}")
            s.expunge(u)
            return u

    def get_by_email(self, email: str) -> User | None:
        with get_session() as s:
            u = s.scalar(select(User).where(User.email == email.strip().lower()))
            if not u:
                return None
            s.expunge(u)
            return u

    def get_or_create(self, email: str, username: str | None = None) -> User:
        u = self.get_by_email(email)
        return u or self.create(email=email, username=username)

    def update_goals(self, user_id: int, daily=None, weekly=None, monthly=None) -> User:
        goals = {"daily_goal": daily, "weekly_goal": weekly, "monthly_goal": monthly}
        goals = {k: _positive_int(k, v) for k, v in goals.items() if v is not None}
        with get_session() as s:
            u = s.get(User, user_id)
            if not u:
                raise NotFoundError(f"Utilisateur introuvable: {user_id}")
            for k, v in goals.items():
                setattr(u, k, v)
            s.flush(); s.refresh(u); s.expunge(u)
            logger.info("Objectifs mis à jour pour user=%s: %s", user_id, goals)
            return u
