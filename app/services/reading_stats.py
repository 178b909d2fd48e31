# app/services/reading_stats.py
# -*- coding: utf-8 -*-
"""
Statistiques de lecture dérivées de l'historique des sessions.

Fonctions pures : aucune écriture, aucune exception sur des données bancales
(une session illisible est ignorée, des pages manquantes/négatives valent 0).

Tous les calculs se font sur le JOUR CALENDAIRE LOCAL : un datetime « aware »
(ex. 2024-01-01T23:30:00Z) est converti dans le fuseau local avant d'en extraire
la date. Découper en UTC décale les séries d'un jour autour de minuit.
"""
from __future__ import annotations

import calendar
import datetime as dt
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

# Paliers de la heatmap (pages/jour) : 0 | 1–9 | 10–29 | 30–59 | 60+
HEAT_THRESHOLDS = (1, 10, 30, 60)

# Objectifs de repli si l'utilisateur n'a rien configuré
FALLBACK_GOALS = {"daily": 50, "weekly": 300, "monthly": 1200}


@dataclass(frozen=True)
class PageTotals:
    """Pages lues aujourd'hui / cette semaine (depuis dimanche) / ce mois."""
    today: int = 0
    week: int = 0
    month: int = 0


@dataclass(frozen=True)
class GoalProgress:
    label: str
    current: int
    target: int
    percentage: float       # 0..100 (plafonné)
    is_complete: bool


@dataclass(frozen=True)
class ReadingSummary:
    total_minutes: int
    sessions_last_7_days: int
    reading_days: int


# -----------------------------------------------------------------------------
# Normalisation
# -----------------------------------------------------------------------------

def _field(session, *names):
    for name in names:
        if isinstance(session, dict):
            if name in session:
                return session[name]
        elif hasattr(session, name):
            return getattr(session, name)
    return None


def local_day(value, tz: Optional[dt.tzinfo] = None) -> Optional[dt.date]:
    """
    Jour calendrier local d'une valeur date / datetime / chaîne ISO.

    - date             -> elle-même
    - datetime naïf    -> sa date (déjà exprimé en heure locale)
    - datetime aware   -> converti dans `tz` (défaut : fuseau du système) puis date
    - str ISO          -> parsée avec les mêmes règles ("Z" accepté)
    Renvoie None si la valeur est illisible.
    """
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        txt = value.strip()
        if not txt:
            return None
        if txt.endswith("Z"):
            txt = txt[:-1] + "+00:00"
        try:
            if len(txt) == 10:
                return dt.date.fromisoformat(txt)
            return local_day(dt.datetime.fromisoformat(txt), tz)
        except ValueError:
            return None
    return None


def _pages(session) -> int:
    raw = _field(session, "pages_read", "pagesRead")
    try:
        n = int(raw or 0)
    except (TypeError, ValueError):
        return 0
    return max(0, n)


def _minutes(session) -> int:
    raw = _field(session, "duration_minutes", "duration")
    try:
        n = int(raw or 0)
    except (TypeError, ValueError):
        return 0
    return max(0, n)


def _as_list(sessions) -> list:
    try:
        return list(sessions or ())
    except TypeError:
        return []


def _days_with_pages(sessions: Iterable, tz):
    for s in _as_list(sessions):
        day = local_day(_field(s, "date"), tz)
        if day is not None:
            yield day, _pages(s)


def reading_days(sessions: Iterable, tz: Optional[dt.tzinfo] = None) -> Set[dt.date]:
    """Ensemble des jours (locaux) ayant au moins une session."""
    return {day for day, _ in _days_with_pages(sessions, tz)}


def _today(as_of, tz) -> dt.date:
    if as_of is None:
        return dt.datetime.now(tz).date() if tz else dt.date.today()
    return local_day(as_of, tz) or dt.date.today()


# -----------------------------------------------------------------------------
# Séries
# -----------------------------------------------------------------------------

def compute_streak(sessions: Iterable, as_of=None, tz: Optional[dt.tzinfo] = None) -> int:
    """
    Nombre de jours consécutifs avec lecture, en remontant depuis `as_of` (inclus).

    Si `as_of` n'a aucune session, la série vaut 0 : on ne cherche pas plus loin.
    """
    days = reading_days(sessions, tz)
    day = _today(as_of, tz)
    streak = 0
    while day in days:
        streak += 1
        day -= dt.timedelta(days=1)
    return streak


def longest_streak(sessions: Iterable, tz: Optional[dt.tzinfo] = None) -> int:
    """Plus longue série de jours consécutifs sur tout l'historique."""
    best = run = 0
    prev = None
    for day in sorted(reading_days(sessions, tz)):
        run = run + 1 if prev is not None and (day - prev).days == 1 else 1
        best = max(best, run)
        prev = day
    return best


# -----------------------------------------------------------------------------
# Agrégats de pages
# -----------------------------------------------------------------------------

def week_start(day: dt.date) -> dt.date:
    """Dimanche le plus récent ≤ day."""
    # weekday(): lundi=0 … dimanche=6
    return day - dt.timedelta(days=(day.weekday() + 1) % 7)


def aggregate_pages(sessions: Iterable, as_of=None, tz: Optional[dt.tzinfo] = None) -> PageTotals:
    """
    Sommes de pages sur trois fenêtres se terminant à `as_of` (inclus) :
      - today : le jour même
      - week  : du dimanche précédent (inclus) à as_of
      - month : du 1er du mois à as_of
    Les sessions postérieures à as_of ne sont pas comptées.
    """
    today = _today(as_of, tz)
    sunday = week_start(today)
    first = today.replace(day=1)

    t = w = m = 0
    for day, pages in _days_with_pages(sessions, tz):
        if day > today:
            continue
        if day == today:
            t += pages
        if day >= sunday:
            w += pages
        if day >= first:
            m += pages
    return PageTotals(today=t, week=w, month=m)


def daily_heat(sessions: Iterable, year: int, month: int, tz: Optional[dt.tzinfo] = None) -> dict:
    """{jour du mois: pages} pour chaque jour 1..N du mois (0 si rien lu)."""
    try:
        year, month = int(year), int(month)
        n_days = calendar.monthrange(year, month)[1]
    except (TypeError, ValueError):
        return {}
    heat = {d: 0 for d in range(1, n_days + 1)}
    for day, pages in _days_with_pages(sessions, tz):
        if day.year == year and day.month == month:
            heat[day.day] += pages
    return heat


def heat_level(pages: int) -> int:
    """Palier d'affichage 0..4 de la heatmap."""
    return sum(1 for threshold in HEAT_THRESHOLDS if (pages or 0) >= threshold)


# -----------------------------------------------------------------------------
# Objectifs & résumé
# -----------------------------------------------------------------------------

def _progress(label: str, current: int, target: Optional[int], fallback: int) -> GoalProgress:
    target = target if isinstance(target, int) and target > 0 else fallback
    pct = min(current / target * 100.0, 100.0)
    return GoalProgress(label=label, current=current, target=target,
                        percentage=round(pct, 1), is_complete=pct >= 100.0)


def goal_progress(
    totals: PageTotals,
    daily_goal: Optional[int] = None,
    weekly_goal: Optional[int] = None,
    monthly_goal: Optional[int] = None,
) -> List[GoalProgress]:
    """Avancement vers les objectifs journalier / hebdo / mensuel."""
    return [
        _progress("Objectif du jour", totals.today, daily_goal, FALLBACK_GOALS["daily"]),
        _progress("Objectif de la semaine", totals.week, weekly_goal, FALLBACK_GOALS["weekly"]),
        _progress("Objectif du mois", totals.month, monthly_goal, FALLBACK_GOALS["monthly"]),
    ]


def reading_summary(sessions: Iterable, as_of=None, tz: Optional[dt.tzinfo] = None) -> ReadingSummary:
    sessions = _as_list(sessions)
    today = _today(as_of, tz)
    week_ago = today - dt.timedelta(days=6)
    recent = 0
    for s in sessions:
        day = local_day(_field(s, "date"), tz)
        if day is not None and week_ago <= day <= today:
            recent += 1
    return ReadingSummary(
        total_minutes=sum(_minutes(s) for s in sessions),
        sessions_last_7_days=recent,
        reading_days=len(reading_days(sessions, tz)),
    )


def book_progress(current_page: int, total_pages: int) -> int:
    """Avancement d'un livre en % arrondi."""
    if not total_pages or total_pages <= 0:
        return 0
    return round(max(0, min(current_page or 0, total_pages)) / total_pages * 100)
