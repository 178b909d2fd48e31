# app/services/timer.py
# -*- coding: utf-8 -*-
"""
Minuteur de lecture (compte à rebours côté client).

Aucune interaction serveur pendant le décompte : à la fin, la page appelle
`SessionRepository.log_timed_session(...)` avec `elapsed_minutes`.
L'horloge est injectable pour les tests (`clock=time.monotonic` par défaut).
"""
from __future__ import annotations

import time
from typing import Callable, Optional

PRESETS = (10, 25, 45)
DEFAULT_MINUTES = 25


class ReadingTimer:
    def __init__(self, minutes: int = DEFAULT_MINUTES, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.total_seconds = minutes * 60
        self.preset: Optional[int] = None
        self._started_at: Optional[float] = None
        self._elapsed_before = 0.0

    # --- commandes -------------------------------------------------------

    def start(self, minutes: int) -> None:
        if minutes <= 0:
            raise ValueError(f"Durée invalide: {minutes} min")
        self.total_seconds = minutes * 60
        self.preset = minutes if minutes in PRESETS else None
        self._elapsed_before = 0.0
        self._started_at = self._clock()

    def pause(self) -> None:
        if self._started_at is not None:
            self._elapsed_before += self._clock() - self._started_at
            self._started_at = None

    def resume(self) -> None:
        if self._started_at is None and not self.is_finished:
            self._started_at = self._clock()

    def reset(self) -> None:
        self.total_seconds = DEFAULT_MINUTES * 60
        self.preset = None
        self._started_at = None
        self._elapsed_before = 0.0

    # --- état ------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._started_at is not None and not self.is_finished

    @property
    def elapsed_seconds(self) -> float:
        running = self._clock() - self._started_at if self._started_at is not None else 0.0
        return min(self._elapsed_before + running, float(self.total_seconds))

    @property
    def remaining_seconds(self) -> int:
        return max(0, int(round(self.total_seconds - self.elapsed_seconds)))

    @property
    def is_finished(self) -> bool:
        return self.elapsed_seconds >= self.total_seconds

    @property
    def progress(self) -> float:
        """Temps restant en % de la durée initiale (100 -> 0)."""
        if self.total_seconds <= 0:
            return 0.0
        return max(0.0, self.remaining_seconds / self.total_seconds * 100.0)

    @property
    def elapsed_minutes(self) -> int:
        return int(self.elapsed_seconds // 60)

    def display(self) -> str:
        m, s = divmod(self.remaining_seconds, 60)
        return f"{m:02d}:{s:02d}"
