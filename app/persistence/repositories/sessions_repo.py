# app/persistence/repositories/sessions_repo.py
# -*- coding: utf-8 -*-
"""
Journal de lecture : enregistrement atomique des pages lues.

Une écriture `log_pages` = 3 effets dans UNE transaction (get_session) :
  1) upsert de la session du jour pour (user, livre) ;
  2) progression du livre (plafonnée à total_pages, passage en "completed") ;
  3) compteur de pages à vie du user (+ pages brutes, non plafonnées).
Soit tout est commité, soit rien (rollback).
"""
from sqlalchemy import select, update, func, and_, case
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from app.persistence.db import get_session
from app.persistence.models import Book, BookStatus, ReadingSession, User
from app.persistence.repositories.books_repo import apply_status
from app.services.errors import NotFoundError, TransactionFailure, ValidationError
import datetime as dt
import logging

logger = logging.getLogger(__name__)

# Une création concurrente de la même session (contrainte unique) => on rejoue une fois
MAX_ATTEMPTS = 2


def _normalize_date(d):
    if d is None:
        return dt.date.today()
    if isinstance(d, dt.datetime):
        return d.astimezone().date() if d.tzinfo else d.date()
    if isinstance(d, dt.date):
        return d
    if isinstance(d, str):
        try:
            return dt.date.fromisoformat(d.strip())
        except ValueError:
            raise ValidationError(f"Date invalide: {d!r} (attendu YYYY-MM-DD)") from None
    raise ValidationError(f"Date invalide: {d!r}")


def _check_count(name: str, value, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} doit être un entier (reçu: {value!r})")
    if value < minimum:
        raise ValidationError(f"{name} doit être ≥ {minimum} (reçu: {value})")
    return value


def display_title(rs: ReadingSession) -> str:
    """Titre du livre lié, sinon le titre mémorisé sur la session."""
    book = rs.__dict__.get("book")
    if book is not None:
        return book.title
    return rs.book_title or "—"


# ---------------------------------------------------------------------
# Étapes de la transaction (toutes sur la même session SQLAlchemy)
# ---------------------------------------------------------------------

def _find_session(s, user_id: int, book_id: int, day: dt.date) -> ReadingSession | None:
    return s.scalar(
        select(ReadingSession)
        .where(and_(ReadingSession.user_id == user_id, ReadingSession.book_id == book_id, ReadingSession.date == day))
        .limit(1)
    )


def _upsert_session(s, user_id: int, book: Book, day: dt.date, pages: int, minutes: int = 0) -> ReadingSession:
    rs = _find_session(s, user_id, book.id, day)
    if rs is None:
        rs = ReadingSession(
            user_id=user_id,
            book_id=book.id,
            book_title=book.title,
            date=day,
            pages_read=pages,
            duration_minutes=minutes or None,
        )
        s.add(rs)
        # flush ici : une violation de la contrainte unique remonte avant les autres écritures
        s.flush()
        return rs

    # Incrément calculé par la base : deux écrivains du même jour ne s'écrasent pas
    values = {"pages_read": ReadingSession.pages_read + pages}
    if minutes:
        values["duration_minutes"] = func.coalesce(ReadingSession.duration_minutes, 0) + minutes
    s.execute(
        update(ReadingSession)
        .where(ReadingSession.id == rs.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    s.refresh(rs)
    return rs


def _advance_book(s, book: Book, pages: int) -> Book:
    advanced = Book.current_page + pages
    s.execute(
        update(Book)
        .where(Book.id == book.id)
        .values(current_page=case((advanced > Book.total_pages, Book.total_pages), else_=advanced))
        .execution_options(synchronize_session=False)
    )
    s.refresh(book)
    if book.current_page >= book.total_pages:
        if book.status != BookStatus.COMPLETED.value:
            apply_status(book, BookStatus.COMPLETED.value)
    elif book.status == BookStatus.TO_READ.value:
        # Choix produit : logger des pages démarre implicitement la lecture
        apply_status(book, BookStatus.READING.value)
    s.flush()
    return book


def _credit_user(s, user_id: int, pages: int) -> None:
    s.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_pages_read=User.total_pages_read + pages)
    )


class SessionRepository:
    def log_pages(self, user_id: int, book_id: int, pages_read: int, *, day=None) -> Book:
        """
        Enregistre `pages_read` pages lues aujourd'hui sur `book_id` (transaction atomique).

        Raises:
            ValidationError: pages_read n'est pas un entier ≥ 1 (aucune écriture)
            NotFoundError: livre absent ou appartenant à un autre user (aucune écriture)
            TransactionFailure: erreur de stockage, tout a été annulé

        Note: non idempotent. Rejouer l'appel compte les pages deux fois.
        """
        pages = _check_count("pages_read", pages_read, minimum=1)
        return self._record(user_id, book_id, pages=pages, minutes=0, day=day)

    def log_timed_session(self, user_id: int, book_id: int, minutes: int, pages_read: int = 0, *, day=None) -> Book:
        """Fin du minuteur : ajoute la durée à la session du jour (et les pages si > 0)."""
        minutes = _check_count("minutes", minutes, minimum=1)
        pages = _check_count("pages_read", pages_read, minimum=0)
        return self._record(user_id, book_id, pages=pages, minutes=minutes, day=day)

    def _record(self, user_id: int, book_id: int, *, pages: int, minutes: int, day) -> Book:
        day = _normalize_date(day)
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                with get_session() as s:
                    book = s.scalar(
                        select(Book)
                        .where(and_(Book.id == book_id, Book.user_id == user_id))
                        .with_for_update()
                        .limit(1)
                    )
                    if not book:
                        raise NotFoundError(f"Livre introuvable: {book_id}")

                    _upsert_session(s, user_id, book, day, pages, minutes)
                    if pages:
                        _advance_book(s, book, pages)
                        _credit_user(s, user_id, pages)

                    s.flush(); s.refresh(book); s.expunge(book)
                logger.info("Lecture enregistrée: user=%s book=%s jour=%s pages=%s minutes=%s",
                            user_id, book_id, day.isoformat(), pages, minutes)
                return book
            except IntegrityError as e:
                if attempt < MAX_ATTEMPTS:
                    logger.warning("Session du %s créée en concurrence (book=%s), nouvel essai", day, book_id)
                    continue
                logger.error("Échec d'enregistrement (book=%s)", book_id, exc_info=True)
                raise TransactionFailure("Échec de l'enregistrement de la lecture") from e
            except SQLAlchemyError as e:
                logger.error("Échec d'enregistrement (book=%s)", book_id, exc_info=True)
                raise TransactionFailure("Échec de l'enregistrement de la lecture") from e

    def find_for_day(self, user_id: int, book_id: int, day) -> ReadingSession | None:
        with get_session() as s:
            rs = _find_session(s, user_id, book_id, _normalize_date(day))
            if rs:
                s.expunge(rs)
            return rs

    def list_for_user(self, user_id: int, start=None, end=None, limit: int | None = None):
        """Sessions du user, de la plus récente à la plus ancienne (livre lié pré-chargé)."""
        with get_session() as s:
            stmt = (
                select(ReadingSession)
                .options(selectinload(ReadingSession.book))
                .where(ReadingSession.user_id == user_id)
            )
            if start is not None:
                stmt = stmt.where(ReadingSession.date >= _normalize_date(start))
            if end is not None:
                stmt = stmt.where(ReadingSession.date <= _normalize_date(end))
            stmt = stmt.order_by(ReadingSession.date.desc(), ReadingSession.id.desc())
            if limit is not None:
                stmt = stmt.limit(limit)
            rows = list(s.scalars(stmt))
            for r in rows:
                s.expunge(r)
            return rows

    def count_for_book(self, user_id: int, book_id: int) -> int:
        with get_session() as s:
            c = s.scalar(
                select(func.count(ReadingSession.id))
                .where(and_(ReadingSession.user_id == user_id, ReadingSession.book_id == book_id))
            ) or 0
            return int(c)
