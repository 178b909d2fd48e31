# app/persistence/repositories/books_repo.py
# -*- coding: utf-8 -*-
from sqlalchemy import select, delete, func, and_, or_, case
from app.persistence.db import get_session
from app.persistence.models import Book, BookStatus, ReadingSession
from app.services.errors import NotFoundError, ValidationError
import datetime as dt
import logging

logger = logging.getLogger(__name__)

STATUSES = {s.value for s in BookStatus}
FILTERS = {"all"} | STATUSES
SORTS = ("recent", "title", "author", "progress", "status")

# "En cours" d'abord, puis "à lire", puis "terminés"
STATUS_PRIORITY = {
    BookStatus.READING.value: 0,
    BookStatus.TO_READ.value: 1,
    BookStatus.COMPLETED.value: 2,
}


def _required_text(name: str, value) -> str:
    txt = str(value or "").strip()
    if not txt:
        raise ValidationError(f"Champ requis manquant: {name}")
    return txt


def _page_count(name: str, value, minimum: int) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} invalide: {value!r}")
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} invalide: {value!r}") from None
    if n < minimum:
        raise ValidationError(f"{name} doit être ≥ {minimum} (reçu: {n})")
    return n


def _owned_book(s, user_id: int, book_id: int) -> Book:
    """Livre du user, sinon NotFoundError (même message si le livre existe chez un autre user)."""
    book = s.scalar(select(Book).where(and_(Book.id == book_id, Book.user_id == user_id)).limit(1))
    if not book:
        raise NotFoundError(f"Livre introuvable: {book_id}")
    return book


def apply_status(book: Book, status: str, now: dt.datetime | None = None) -> None:
    """Change le statut et horodate le début / la fin de lecture."""
    if status not in STATUSES:
        raise ValidationError(f"Statut inconnu: {status!r} (attendu {sorted(STATUSES)})")
    now = now or dt.datetime.now()
    if status == BookStatus.READING.value and book.started_at is None:
        book.started_at = now
    if status == BookStatus.COMPLETED.value:
        book.current_page = book.total_pages
        if book.started_at is None:
            book.started_at = now
        if book.completed_at is None:
            book.completed_at = now
    else:
        # note réservée aux livres terminés
        book.completed_at = None
        book.rating = None
    book.status = status


class BookRepository:
    def create(self, user_id: int, title: str, author: str, total_pages, cover_url: str | None = None) -> Book:
        title = _required_text("title", title)
        author = _required_text("author", author)
        total = _page_count("total_pages", total_pages, minimum=1)
        with get_session() as s:
            b = Book(
                user_id=user_id,
                title=title,
                author=author,
                total_pages=total,
                current_page=0,
                status=BookStatus.TO_READ.value,
                cover_url=(cover_url or None),
            )
            s.add(b); s.flush(); s.refresh(b); s.expunge(b)
            logger.info("Livre créé pour user=%s: %r (id=%s)", user_id, b.title, b.id)
            return b

    def get(self, user_id: int, book_id: int) -> Book:
        with get_session() as s:
            b = _owned_book(s, user_id, book_id)
            s.expunge(b)
            return b

    def list_for_user(self, user_id: int, status: str = "all", sort: str = "recent", search: str | None = None):
        if status not in FILTERS:
            raise ValidationError(f"Filtre inconnu: {status!r}")
        if sort not in SORTS:
            raise ValidationError(f"Tri inconnu: {sort!r}")

        with get_session() as s:
            stmt = select(Book).where(Book.user_id == user_id)
            if status != "all":
                stmt = stmt.where(Book.status == status)
            if search and search.strip():
                pattern = f"%{search.strip().lower()}%"
                stmt = stmt.where(or_(func.lower(Book.title).like(pattern), func.lower(Book.author).like(pattern)))

            if sort == "title":
                stmt = stmt.order_by(func.lower(Book.title).asc())
            elif sort == "author":
                stmt = stmt.order_by(func.lower(Book.author).asc(), func.lower(Book.title).asc())
            elif sort == "progress":
                stmt = stmt.order_by((Book.current_page * 1.0 / Book.total_pages).desc(), Book.id.asc())
            elif sort == "status":
                stmt = stmt.order_by(case(STATUS_PRIORITY, value=Book.status, else_=3), Book.updated_at.desc())
            else:
                stmt = stmt.order_by(Book.updated_at.desc(), Book.id.desc())

            rows = list(s.scalars(stmt))
            for r in rows:
                s.expunge(r)
            return rows

    def status_counts(self, user_id: int) -> dict:
        counts = {"all": 0, **{st: 0 for st in STATUSES}}
        with get_session() as s:
            rows = s.execute(
                select(Book.status, func.count(Book.id)).where(Book.user_id == user_id).group_by(Book.status)
            ).all()
        for st, n in rows:
            counts[st] = n
            counts["all"] += n
        return counts

    def update(self, user_id: int, book_id: int, /, **fields) -> Book:
        """
        Mise à jour partielle (seuls les champs fournis sont modifiés).

        Champs acceptés : title, author, total_pages, current_page, status, rating, cover_url.
        La note (1..5) n'est acceptée que sur un livre terminé ; rating=None l'efface.
        """
        unknown = set(fields) - {"title", "author", "total_pages", "current_page", "status", "rating", "cover_url"}
        if unknown:
            raise ValidationError(f"Champs non modifiables: {sorted(unknown)}")

        with get_session() as s:
            b = _owned_book(s, user_id, book_id)

            if "title" in fields:
                b.title = _required_text("title", fields["title"])
            if "author" in fields:
                b.author = _required_text("author", fields["author"])
            if "cover_url" in fields:
                b.cover_url = fields["cover_url"] or None
            if "total_pages" in fields:
                b.total_pages = _page_count("total_pages", fields["total_pages"], minimum=1)
                b.current_page = min(b.current_page, b.total_pages)
            if "current_page" in fields:
                current = _page_count("current_page", fields["current_page"], minimum=0)
                if current > b.total_pages:
                    raise ValidationError(f"current_page ({current}) dépasse total_pages ({b.total_pages})")
                b.current_page = current
            if "status" in fields:
                apply_status(b, fields["status"])
            if "rating" in fields:
                rating = fields["rating"]
                if rating is None or rating == 0:
                    b.rating = None
                else:
                    rating = _page_count("rating", rating, minimum=1)
                    if rating > 5:
                        raise ValidationError(f"rating doit être entre 1 et 5 (reçu: {rating})")
                    if b.status != BookStatus.COMPLETED.value:
                        raise ValidationError("Seul un livre terminé peut être noté")
                    b.rating = rating

            s.flush(); s.refresh(b); s.expunge(b)
            logger.info("Livre %s mis à jour (user=%s): %s", book_id, user_id, sorted(fields))
            return b

    def delete_book(self, user_id: int, book_id: int) -> bool:
        """
        Supprime les sessions du livre PUIS le livre.
        Le compteur de pages à vie de l'utilisateur n'est pas décrémenté.
        """
        with get_session() as s:
            b = _owned_book(s, user_id, book_id)
            res = s.execute(delete(ReadingSession).where(ReadingSession.book_id == b.id))
            s.delete(b)
            logger.info("Livre %s supprimé (user=%s), %s session(s) supprimée(s)", book_id, user_id, res.rowcount)
            return True
