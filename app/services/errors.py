# app/services/errors.py
# -*- coding: utf-8 -*-
"""
Erreurs métier de Lireon.

Les pages Streamlit attrapent `LireonError` et affichent le message tel quel.
"""


class LireonError(Exception):
    """Base de toutes les erreurs remontées à l'UI."""


class ValidationError(LireonError, ValueError):
    """Entrée invalide : rejetée avant toute écriture."""


class NotFoundError(LireonError, LookupError):
    """Enregistrement absent OU appartenant à un autre utilisateur (volontairement indistinct)."""


class TransactionFailure(LireonError, RuntimeError):
    """Écriture échouée en cours de transaction : tout a été annulé (rollback)."""
