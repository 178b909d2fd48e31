# app/services/optimistic.py
# -*- coding: utf-8 -*-
"""
Mise à jour optimiste de l'état d'affichage.

On applique la valeur tentative tout de suite, on appelle le repository,
puis on garde le résultat réel (succès) ou on remet l'ancienne valeur (échec).
"""
from __future__ import annotations

from typing import Any, Callable, MutableMapping

_MISSING = object()


class OptimisticUpdate:
    def __init__(self, state: MutableMapping, key: Any, tentative: Any) -> None:
        self.state = state
        self.key = key
        self.tentative = tentative
        self._previous = _MISSING

    def apply(self) -> None:
        self._previous = self.state.get(self.key, _MISSING)
        self.state[self.key] = self.tentative

    def revert(self) -> None:
        if self._previous is _MISSING:
            self.state.pop(self.key, None)
        else:
            self.state[self.key] = self._previous

    def run(self, action: Callable[[], Any]) -> Any:
        """Applique, exécute `action`, puis confirme ou annule. Ré-émet l'erreur en cas d'échec."""
        self.apply()
        try:
            result = action()
        except Exception:
            self.revert()
            raise
        if result is not None:
            self.state[self.key] = result
        return result
