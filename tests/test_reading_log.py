# tests/test_reading_log.py
# -*- coding: utf-8 -*-
"""
Tests du journal de lecture (SessionRepository) et de la suppression de livre.

Ce fichier couvre :
- upsert de la session du jour (une seule ligne par user/livre/jour),
- progression du livre plafonnée + passage en "completed", compteur à vie NON plafonné,
- démarrage implicite d'un livre "to-read",
- validations sans aucune écriture,
- atomicité : une panne sur la dernière étape annule les deux premières,
- rejeu après une création concurrente de la même session,
- sessions minutées,
- delete_book : sessions supprimées, compteur à vie conservé.
"""

import datetime as dt
import threading

import pytest
from sqlalchemy.exc import OperationalError

from app.services.errors import NotFoundError, TransactionFailure, ValidationError
from app.services.reading_stats import aggregate_pages, compute_streak

DAY = dt.date(2024, 1, 2)


@pytest.fixture
def book(repos, reader):
    return repos.books.create(reader.id, "Le Comte de Monte-Cristo", "Alexandre Dumas", 100)


def snapshot(repos, user_id, book_id):
    """(pages à vie, page courante, statut, sessions) pour comparer avant/après."""
    b = repos.books.get(user_id, book_id)
    rows = [(r.date, r.pages_read) for r in repos.sessions.list_for_user(user_id)]
    return repos.users.get(user_id).total_pages_read, b.current_page, b.status, rows


# -----------------------------------------------------------------------------
# Chemin nominal
# -----------------------------------------------------------------------------

def test_log_pages_updates_three_places(repos, reader, book):
    b = repos.sessions.log_pages(reader.id, book.id, 20, day=DAY)

    assert b.current_page == 20
    assert b.status == "reading"
    assert b.started_at is not None
    assert repos.users.get(reader.id).total_pages_read == 20

    rs = repos.sessions.find_for_day(reader.id, book.id, DAY)
    assert rs.pages_read == 20
    assert rs.book_title == "Le Comte de Monte-Cristo"


def test_same_day_logs_merge_into_one_session(repos, reader, book):
    repos.sessions.log_pages(reader.id, book.id, 10, day=DAY)
    repos.sessions.log_pages(reader.id, book.id, 5, day=DAY)
    repos.sessions.log_pages(reader.id, book.id, 7, day=DAY + dt.timedelta(days=1))

    rows = repos.sessions.list_for_user(reader.id)
    assert [(r.date, r.pages_read) for r in rows] == [(DAY + dt.timedelta(days=1), 7), (DAY, 15)]
    assert repos.sessions.count_for_book(reader.id, book.id) == 2
    assert repos.users.get(reader.id).total_pages_read == 22


def test_progress_is_capped_but_lifetime_counter_is_not(repos, reader, book):
    repos.books.update(reader.id, book.id, current_page=95, status="reading")

    b = repos.sessions.log_pages(reader.id, book.id, 10, day=DAY)

    assert b.current_page == 100
    assert b.status == "completed"
    assert b.completed_at is not None
    assert repos.users.get(reader.id).total_pages_read == 10
    assert repos.sessions.find_for_day(reader.id, book.id, DAY).pages_read == 10


def test_ninety_plus_fifteen_completes_the_book(repos, reader, book):
    repos.books.update(reader.id, book.id, current_page=90)
    b = repos.sessions.log_pages(reader.id, book.id, 15, day=DAY)
    assert (b.current_page, b.status) == (100, "completed")
    assert repos.users.get(reader.id).total_pages_read == 15


def test_completed_book_stays_completed(repos, reader, book):
    repos.books.update(reader.id, book.id, status="completed")
    b = repos.sessions.log_pages(reader.id, book.id, 3, day=DAY)
    assert (b.status, b.current_page) == ("completed", 100)
    assert repos.users.get(reader.id).total_pages_read == 3


def test_sessions_feed_stats(repos, reader, book):
    repos.sessions.log_pages(reader.id, book.id, 20, day="2024-01-01")
    repos.sessions.log_pages(reader.id, book.id, 15, day="2024-01-02")

    sessions = repos.sessions.list_for_user(reader.id)
    assert compute_streak(sessions, as_of=DAY) == 2
    totals = aggregate_pages(sessions, as_of=DAY)
    assert (totals.today, totals.week, totals.month) == (15, 35, 35)


def test_list_for_user_range_and_limit(repos, reader, book):
    for i in range(5):
        repos.sessions.log_pages(reader.id, book.id, 1, day=DAY + dt.timedelta(days=i))

    window = repos.sessions.list_for_user(reader.id, start=DAY + dt.timedelta(days=1), end=DAY + dt.timedelta(days=3))
    assert [r.date.day for r in window] == [5, 4, 3]
    assert len(repos.sessions.list_for_user(reader.id, limit=2)) == 2


# -----------------------------------------------------------------------------
# Validations : aucune écriture
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("pages", [0, -4, "12", 2.5, None, True])
def test_invalid_page_count_writes_nothing(repos, reader, book, pages):
    before = snapshot(repos, reader.id, book.id)
    with pytest.raises(ValidationError):
        repos.sessions.log_pages(reader.id, book.id, pages, day=DAY)
    assert snapshot(repos, reader.id, book.id) == before


def test_unknown_or_foreign_book_writes_nothing(repos, reader, book):
    bob = repos.users.register("bob", "bob@example.com")
    with pytest.raises(NotFoundError):
        repos.sessions.log_pages(reader.id, 9999, 5, day=DAY)
    with pytest.raises(NotFoundError):
        repos.sessions.log_pages(bob.id, book.id, 5, day=DAY)

    assert repos.users.get(bob.id).total_pages_read == 0
    assert snapshot(repos, reader.id, book.id) == (0, 0, "to-read", [])


# -----------------------------------------------------------------------------
# Atomicité
# -----------------------------------------------------------------------------

def test_failure_on_last_step_rolls_back_everything(repos, reader, book, monkeypatch):
    """Si le crédit du user échoue, ni la session ni la progression du livre ne restent."""
    def boom(s, user_id, pages):
        raise OperationalError("UPDATE users", {}, Exception("disk I/O error"))

    monkeypatch.setattr(repos.sessions_module, "_credit_user", boom)

    with pytest.raises(TransactionFailure):
        repos.sessions.log_pages(reader.id, book.id, 30, day=DAY)

    assert snapshot(repos, reader.id, book.id) == (0, 0, "to-read", [])
    assert repos.sessions.find_for_day(reader.id, book.id, DAY) is None


def test_concurrent_session_creation_is_retried(repos, reader, book, monkeypatch):
    """
    Simule un autre écrivain ayant créé la session du jour entre la lecture et l'insert :
    la 1re tentative viole la contrainte unique, la 2e incrémente la ligne existante.
    """
    repos.sessions.log_pages(reader.id, book.id, 10, day=DAY)

    real_find = repos.sessions_module._find_session
    calls = {"n": 0}

    def stale_find(s, user_id, book_id, day):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(s, user_id, book_id, day)

    monkeypatch.setattr(repos.sessions_module, "_find_session", stale_find)
    b = repos.sessions.log_pages(reader.id, book.id, 5, day=DAY)

    assert calls["n"] == 2
    assert b.current_page == 15
    assert repos.users.get(reader.id).total_pages_read == 15
    rows = repos.sessions.list_for_user(reader.id)
    assert [(r.date, r.pages_read) for r in rows] == [(DAY, 15)]


def test_retry_gives_up_after_second_conflict(repos, reader, book, monkeypatch):
    repos.sessions.log_pages(reader.id, book.id, 10, day=DAY)
    monkeypatch.setattr(repos.sessions_module, "_find_session", lambda *a: None)

    with pytest.raises(TransactionFailure):
        repos.sessions.log_pages(reader.id, book.id, 5, day=DAY)

    assert snapshot(repos, reader.id, book.id) == (10, 10, "reading", [(DAY, 10)])


def test_parallel_same_day_logs_keep_every_page(repos, reader, book, monkeypatch):
    """
    Deux écrivains lisent la même session (10 pages) avant d'écrire chacun +5 :
    session, livre et compteur à vie doivent tous finir à 20.
    """
    repos.sessions.log_pages(reader.id, book.id, 10, day=DAY)

    real_find = repos.sessions_module._find_session
    both_read = threading.Barrier(2, timeout=10)

    def find_then_wait(s, user_id, book_id, day):
        rs = real_find(s, user_id, book_id, day)
        both_read.wait()
        return rs

    monkeypatch.setattr(repos.sessions_module, "_find_session", find_then_wait)
    errors = []

    def writer():
        try:
            repos.sessions.log_pages(reader.id, book.id, 5, day=DAY)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=writer) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    rows = repos.sessions.list_for_user(reader.id)
    assert [(r.date, r.pages_read) for r in rows] == [(DAY, 20)]
    assert repos.books.get(reader.id, book.id).current_page == 20
    assert repos.users.get(reader.id).total_pages_read == 20


@pytest.mark.parametrize("day", ["hier", "2024-13-01", 42, 3.5])
def test_invalid_day_is_a_validation_error(repos, reader, book, day):
    before = snapshot(repos, reader.id, book.id)
    with pytest.raises(ValidationError, match="Date invalide"):
        repos.sessions.log_pages(reader.id, book.id, 5, day=day)
    with pytest.raises(ValidationError):
        repos.sessions.list_for_user(reader.id, start=day)
    assert snapshot(repos, reader.id, book.id) == before


# -----------------------------------------------------------------------------
# Sessions minutées
# -----------------------------------------------------------------------------

def test_timed_session_without_pages(repos, reader, book):
    b = repos.sessions.log_timed_session(reader.id, book.id, 25, day=DAY)

    assert (b.current_page, b.status) == (0, "to-read")
    assert repos.users.get(reader.id).total_pages_read == 0
    rs = repos.sessions.find_for_day(reader.id, book.id, DAY)
    assert (rs.pages_read, rs.duration_minutes) == (0, 25)
    # Une session minutée compte comme jour de lecture
    assert compute_streak(repos.sessions.list_for_user(reader.id), as_of=DAY) == 1


def test_timed_session_merges_with_pages(repos, reader, book):
    repos.sessions.log_pages(reader.id, book.id, 12, day=DAY)
    repos.sessions.log_timed_session(reader.id, book.id, 10, pages_read=3, day=DAY)
    repos.sessions.log_timed_session(reader.id, book.id, 15, day=DAY)

    rs = repos.sessions.find_for_day(reader.id, book.id, DAY)
    assert (rs.pages_read, rs.duration_minutes) == (15, 25)
    assert repos.users.get(reader.id).total_pages_read == 15


@pytest.mark.parametrize("minutes, pages", [(0, 0), (-5, 0), (10, -1)])
def test_timed_session_validation(repos, reader, book, minutes, pages):
    with pytest.raises(ValidationError):
        repos.sessions.log_timed_session(reader.id, book.id, minutes, pages_read=pages, day=DAY)
    assert repos.sessions.find_for_day(reader.id, book.id, DAY) is None


# -----------------------------------------------------------------------------
# Suppression de livre
# -----------------------------------------------------------------------------

def test_delete_book_removes_sessions_keeps_lifetime_total(repos, reader, book):
    other = repos.books.create(reader.id, "Germinal", "Émile Zola", 592)
    repos.sessions.log_pages(reader.id, book.id, 10, day=DAY)
    repos.sessions.log_pages(reader.id, book.id, 10, day=DAY + dt.timedelta(days=1))
    repos.sessions.log_pages(reader.id, other.id, 4, day=DAY)

    assert repos.books.delete_book(reader.id, book.id) is True

    with pytest.raises(NotFoundError):
        repos.books.get(reader.id, book.id)
    assert repos.sessions.count_for_book(reader.id, book.id) == 0
    remaining = repos.sessions.list_for_user(reader.id)
    assert [(r.book_id, r.pages_read) for r in remaining] == [(other.id, 4)]
    assert aggregate_pages(remaining, as_of=DAY + dt.timedelta(days=1)).week == 4
    assert compute_streak(remaining, as_of=DAY + dt.timedelta(days=1)) == 0
    assert repos.users.get(reader.id).total_pages_read == 24


def test_display_title_prefers_book_then_stored_title(repos, reader, book):
    repos.sessions.log_pages(reader.id, book.id, 3, day=DAY)
    rs = repos.sessions.list_for_user(reader.id)[0]
    assert repos.sessions_module.display_title(rs) == "Le Comte de Monte-Cristo"

    orphan = repos.models.ReadingSession(user_id=reader.id, book_id=None, book_title="Livre perdu", date=DAY, pages_read=2)
    assert repos.sessions_module.display_title(orphan) == "Livre perdu"


def test_delete_foreign_book_is_refused(repos, reader, book):
    bob = repos.users.register("bob", "bob@example.com")
    with pytest.raises(NotFoundError):
        repos.books.delete_book(bob.id, book.id)
    assert repos.books.get(reader.id, book.id).id == book.id
