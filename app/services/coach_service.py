# app/services/coach_service.py
# -*- coding: utf-8 -*-
"""
Message d'accueil / encouragement du tableau de bord.

Deux providers :
- StubProvider : offline, déterministe, idéal pour tests/MVP.
- HuggingFaceProvider : utilise l'Inference API (si HF_TOKEN présent).

Usage:
    from app.services.coach_service import CoachService, ReadingContext

    ctx = ReadingContext(name="Alice", streak=4, today_pages=12, daily_goal=30)
    print(CoachService().welcome_message(ctx))
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadingContext:
    name: str
    streak: int = 0
    today_pages: int = 0
    daily_goal: int = 30


def display_name(raw: Optional[str]) -> str:
    """'aLiCe' -> 'Alice' ; vide -> 'Lecteur'."""
    raw = (raw or "").strip()
    return raw[:1].upper() + raw[1:].lower() if raw else "Lecteur"


# -----------------------------------------------------------------------------
# Provider: Stub (déterministe, offline)
# -----------------------------------------------------------------------------

class StubProvider:
    """Texte court selon la série et l'objectif du jour, sans appel réseau."""

    def generate(self, ctx: ReadingContext) -> str:
        parts = [f"Bon retour, {display_name(ctx.name)} !"]

        if ctx.streak <= 0:
            parts.append("Une page aujourd'hui suffit pour lancer une nouvelle série.")
        elif ctx.streak < 7:
            parts.append(f"{ctx.streak} jour(s) d'affilée : continue sur ta lancée.")
        elif ctx.streak < 30:
            parts.append(f"{ctx.streak} jours de suite, l'habitude s'installe.")
        else:
            parts.append(f"{ctx.streak} jours sans interruption. Impressionnant !")

        goal = ctx.daily_goal if ctx.daily_goal > 0 else 30
        remaining = goal - ctx.today_pages
        if remaining <= 0:
            parts.append("Objectif du jour atteint.")
        elif ctx.today_pages > 0:
            parts.append(f"Plus que {remaining} page(s) pour l'objectif du jour.")

        return " ".join(parts)


# -----------------------------------------------------------------------------
# Provider: Hugging Face Inference API
# -----------------------------------------------------------------------------

class HuggingFaceProvider:
    """
    Client simple pour l'Inference API de Hugging Face.

    Variables d'environnement supportées:
        HF_TOKEN           : token secret (obligatoire)
        HF_MODEL           : ex. 'mistralai/Mistral-7B-Instruct-v0.2'
        HF_API_URL         : URL override; sinon déduite du modèle
        HF_MAX_TOKENS      : int (par défaut 120)
        HF_TEMPERATURE     : float (par défaut 0.5)
        HF_TIMEOUT_SEC     : int/float (par défaut 12)

    Les erreurs réseau sont relevées : l'appelant décide du fallback.
    """

    def __init__(self) -> None:
        self.token = os.getenv("HF_TOKEN", "").strip()
        if not self.token:
            raise RuntimeError("HF_TOKEN manquant pour HuggingFaceProvider.")

        self.model = os.getenv("HF_MODEL", "mistralai/Mistral-7B-Instruct-v0.2").strip()
        self.api_url = os.getenv("HF_API_URL", f"https://api-inference.huggingface.co/models/{self.model}").strip()
        self.max_tokens = int(os.getenv("HF_MAX_TOKENS", "120"))
        self.temperature = float(os.getenv("HF_TEMPERATURE", "0.5"))
        self.timeout_sec = float(os.getenv("HF_TIMEOUT_SEC", "12"))

        self._headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    def _build_prompt(self, ctx: ReadingContext) -> str:
        return (
            "Tu es un coach de lecture bienveillant. En une ou deux phrases, accueille le lecteur "
            "et encourage-le à continuer.\n\n"
            f"Prénom: {display_name(ctx.name)}\n"
            f"Série en cours: {ctx.streak} jour(s)\n"
            f"Pages lues aujourd'hui: {ctx.today_pages} / objectif {ctx.daily_goal}\n"
            "Réponds en français, 2 phrases maximum."
        )

    def generate(self, ctx: ReadingContext) -> str:
        payload = {
            "inputs": self._build_prompt(ctx),
            "parameters": {
                "max_new_tokens": self.max_tokens,
                "temperature": self.temperature,
                "return_full_text": False,
            },
            "options": {"wait_for_model": True},
        }

        with httpx.Client(timeout=self.timeout_sec) as client:
            resp = client.post(self.api_url, headers=self._headers, json=payload)
            resp.raise_for_status()
            data = resp.json()

        if isinstance(data, list) and data and "generated_text" in data[0]:
            return str(data[0]["generated_text"]).strip()

        if isinstance(data, dict):
            for key in ("generated_text", "text", "content"):
                if key in data and isinstance(data[key], str):
                    return data[key].strip()

        return json.dumps(data, ensure_ascii=False)[:300].strip()


# -----------------------------------------------------------------------------
# Façade principale
# -----------------------------------------------------------------------------

class CoachService:
    """
    Choisit le provider selon l'environnement :
      - COACH_PROVIDER=hf  -> HuggingFaceProvider (si HF_TOKEN présent)
      - sinon              -> StubProvider (par défaut)

    Un provider peut être forcé via `provider=...`.
    """

    def __init__(self, provider: Optional[object] = None) -> None:
        if provider is not None:
            self._provider = provider
            return

        prov = os.getenv("COACH_PROVIDER", "stub").strip().lower()
        if prov == "hf":
            try:
                self._provider = HuggingFaceProvider()
            except RuntimeError as e:
                logger.warning("Config Hugging Face incomplète (%s), fallback stub", e)
                self._provider = StubProvider()
        else:
            self._provider = StubProvider()

    @property
    def provider(self):
        return self._provider

    def welcome_message(self, ctx: ReadingContext) -> str:
        """Message court pour la bannière d'accueil. Le stub prend le relais si le réseau échoue."""
        safe = ReadingContext(
            name=ctx.name,
            streak=max(0, int(ctx.streak)),
            today_pages=max(0, int(ctx.today_pages)),
            daily_goal=int(ctx.daily_goal),
        )
        try:
            return self._provider.generate(safe)
        except httpx.HTTPError:
            logger.warning("Provider coach indisponible, fallback stub", exc_info=True)
            return StubProvider().generate(safe)
