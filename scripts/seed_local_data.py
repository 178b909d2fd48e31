# scripts/seed_local_data.py
# -*- coding: utf-8 -*-
"""
Seed local pour Lireon : crée des lecteurs, des livres et un historique de lecture réaliste.

Caractéristiques :
- Passe par SessionRepository.log_pages : mêmes effets qu'en usage réel
  (session du jour, progression du livre, compteur de pages du lecteur)
- Paramétrable via CLI : nb de lecteurs, nb de livres, nb de jours, date de fin, trous aléatoires
- Option (--wipe) pour drop+recreate le schéma (utile en dev)

Attention : log_pages n'est pas idempotent. Relancer sans --wipe ajoute des pages.

Utilise :
- app/persistence/db.py            -> init_db()
- app/persistence/models.py        -> Base
- app/persistence/repositories/... -> UserRepository, BookRepository, SessionRepository

Exemples :
    # 3 lecteurs, 14 jours jusqu'à aujourd'hui
    python scripts/seed_local_data.py

    # 5 lecteurs, 4 livres chacun, 60 jours, quelques jours sans lecture
    python scripts/seed_local_data.py --users 5 --books 4 --days 60 --gap-rate 0.2

    # Recommencer à zéro avec une date de fin (YYYY-MM-DD)
    python scripts/seed_local_data.py --end 2025-10-01 --wipe
"""

from __future__ import annotations

import argparse
import datetime as dt
import logging
import random

# Persistance & modèles
from app.persistence.db import init_db
from app.persistence.models import Base, BookStatus
from app.persistence.repositories.users_repo import UserRepository
from app.persistence.repositories.books_repo import BookRepository
from app.persistence.repositories.sessions_repo import SessionRepository

CATALOGUE = [
    ("Le Petit Prince", "Antoine de Saint-Exupéry", 96),
    ("L'Étranger", "Albert Camus", 184),
    ("Madame Bovary", "Gustave Flaubert", 464),
    ("Les Misérables", "Victor Hugo", 1488),
    ("Le Comte de Monte-Cristo", "Alexandre Dumas", 1276),
    ("Germinal", "Émile Zola", 592),
    ("Bel-Ami", "Guy de Maupassant", 416),
    ("La Peste", "Albert Camus", 352),
]


# -------------------------------------------------------------------
# Utils
# -------------------------------------------------------------------

def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def sample_pages() -> int:
    """Pages lues sur une journée : ~25 en moyenne, jamais < 1."""
    return int(clamp(random.gauss(25, 12), 1, 120))


def daterange(end: dt.date, days: int):
    """Génère des dates [end - (days-1) .. end] incluses, en ordre croissant."""
    for i in range(days):
        yield end - dt.timedelta(days=(days - 1 - i))


# -------------------------------------------------------------------
# Seeding
# -------------------------------------------------------------------

def seed(
    *,
    users: int,
    books_per_user: int,
    days: int,
    end_date: dt.date,
    email_prefix: str,
    domain: str,
    gap_rate: float,
) -> None:
    """
    Remplit la base avec `users` lecteurs ayant chacun `books_per_user` livres,
    lus jour après jour (un livre à la fois, le suivant démarre quand il est terminé).
    """
    user_repo = UserRepository()
    book_repo = BookRepository()
    session_repo = SessionRepository()

    print(f"➡️  Seeding {users} lecteur(s), {books_per_user} livre(s), {days} jour(s), "
          f"fin au {end_date.isoformat()} | gaps ~{int(gap_rate*100)}%")

    total_logs = 0
    for i in range(1, users + 1):
        email = f"{email_prefix}{i}@{domain}".lower()
        u = user_repo.get_or_create(email, username=f"{email_prefix}{i}")
        print(f"   • Lecteur {u.id:>3}  {u.email:<30}")

        shelf = [
            book_repo.create(u.id, title, author, pages)
            for title, author, pages in random.sample(CATALOGUE, k=min(books_per_user, len(CATALOGUE)))
        ]
        queue = [b.id for b in shelf]

        for day in daterange(end=end_date, days=days):
            if not queue:
                break
            # Probabilité de "jour sans lecture" pour casser les séries
            if random.random() < gap_rate:
                continue
            book = session_repo.log_pages(u.id, queue[0], sample_pages(), day=day)
            total_logs += 1
            if book.status == BookStatus.COMPLETED.value:
                queue.pop(0)

    print(f"✅ Terminé : {users} lecteur(s), {total_logs} saisie(s) de pages.")


# -------------------------------------------------------------------
# CLI
# -------------------------------------------------------------------

def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed local data for Lireon")
    p.add_argument("--users", type=int, default=3, help="Nombre de lecteurs (défaut: 3)")
    p.add_argument("--books", type=int, default=3, help="Livres par lecteur (défaut: 3)")
    p.add_argument("--days", type=int, default=14, help="Nombre de jours (défaut: 14)")
    p.add_argument("--end", type=str, default=None, help="Date de fin (YYYY-MM-DD). Défaut: aujourd'hui")
    p.add_argument("--email-prefix", type=str, default="reader", help="Préfixe email (défaut: 'reader')")
    p.add_argument("--domain", type=str, default="example.com", help="Domaine email (défaut: example.com)")
    p.add_argument("--gap-rate", type=float, default=0.1, help="Probabilité de sauter un jour (0..1, défaut: 0.1)")
    p.add_argument("--seed", type=int, default=None, help="Seed du générateur aléatoire pour reproductibilité")
    p.add_argument("--wipe", action="store_true", help="Drop + recreate la base avant seeding")
    return p.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Seed random si demandé
    if args.seed is not None:
        random.seed(args.seed)

    # Date de fin
    end_date = dt.date.fromisoformat(args.end) if args.end else dt.date.today()

    # (Optionnel) wipe total
    if args.wipe:
        print("⚠️  Wipe : drop & recreate le schéma…")

    # Init DB schema
    init_db(Base, drop_and_recreate=bool(args.wipe))

    # Effectuer le seed
    seed(
        users=max(1, args.users),
        books_per_user=max(1, args.books),
        days=max(1, args.days),
        end_date=end_date,
        email_prefix=args.email_prefix,
        domain=args.domain,
        gap_rate=clamp(args.gap_rate, 0.0, 0.9),
    )


if __name__ == "__main__":
    main()
