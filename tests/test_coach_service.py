# tests/test_coach_service.py
# -*- coding: utf-8 -*-
"""
Tests pour app/services/coach_service.py

Ce fichier couvre :
1) StubProvider : message selon la série et l'objectif du jour
2) CoachService (façade) :
   - stub par défaut, hf si demandé ET configuré
   - fallback vers le stub si HF_TOKEN manque
   - bornage des valeurs avant l'appel du provider
   - fallback vers le stub si le réseau échoue
3) HuggingFaceProvider : parsing des réponses sans réseau (httpx factice)

Notes :
- AUCUN appel réseau réel : on monkey-patche `coach_service.httpx`.
- Variables d'environnement isolées via `monkeypatch`.
"""

from __future__ import annotations

import types

import httpx
import pytest

import app.services.coach_service as coach_svc
from app.services.coach_service import (
    CoachService,
    HuggingFaceProvider,
    ReadingContext,
    StubProvider,
    display_name,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ["COACH_PROVIDER", "HF_TOKEN", "HF_MODEL", "HF_API_URL", "HF_MAX_TOKENS", "HF_TEMPERATURE", "HF_TIMEOUT_SEC"]:
        monkeypatch.delenv(key, raising=False)
    yield


class _FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        return None


class _FakeClient:
    """Remplace `httpx.Client(...)` utilisé en context manager."""

    def __init__(self, *, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.last_json = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def post(self, url, headers=None, json=None):
        self.last_json = json
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.payload)


def fake_httpx(client):
    # HTTPError reste la vraie classe : la façade l'attrape
    return types.SimpleNamespace(Client=lambda timeout=None: client, HTTPError=httpx.HTTPError)


# ---------------------------------------------------------------------
# 1) StubProvider
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "streak, snippet",
    [
        (0, "lancer une nouvelle série"),
        (3, "3 jour(s) d'affilée"),
        (12, "l'habitude s'installe"),
        (45, "Impressionnant"),
    ],
)
def test_stub_streak_buckets(streak, snippet):
    txt = StubProvider().generate(ReadingContext(name="alice", streak=streak))
    assert txt.startswith("Bon retour, Alice !")
    assert snippet in txt


def test_stub_goal_messages():
    stub = StubProvider()
    assert "Objectif du jour atteint" in stub.generate(ReadingContext("bob", 2, today_pages=30, daily_goal=30))
    assert "Plus que 18 page(s)" in stub.generate(ReadingContext("bob", 2, today_pages=12, daily_goal=30))
    # Rien lu aujourd'hui : pas de décompte
    assert "Plus que" not in stub.generate(ReadingContext("bob", 0, today_pages=0, daily_goal=30))


@pytest.mark.parametrize("raw, expected", [("aLiCe", "Alice"), ("  bob ", "Bob"), ("", "Lecteur"), (None, "Lecteur")])
def test_display_name(raw, expected):
    assert display_name(raw) == expected


# ---------------------------------------------------------------------
# 2) CoachService (façade)
# ---------------------------------------------------------------------

def test_default_provider_is_stub():
    assert isinstance(CoachService().provider, StubProvider)


def test_hf_without_token_falls_back_to_stub(monkeypatch):
    monkeypatch.setenv("COACH_PROVIDER", "hf")
    assert isinstance(CoachService().provider, StubProvider)


def test_values_are_clamped_before_provider():
    class SpyProvider:
        def __init__(self):
            self.ctx = None

        def generate(self, ctx):
            self.ctx = ctx
            return "ok"

    spy = SpyProvider()
    out = CoachService(provider=spy).welcome_message(ReadingContext("zoé", streak=-4, today_pages=-10))
    assert out == "ok"
    assert (spy.ctx.streak, spy.ctx.today_pages) == (0, 0)


def test_network_failure_falls_back_to_stub(monkeypatch):
    monkeypatch.setenv("COACH_PROVIDER", "hf")
    monkeypatch.setenv("HF_TOKEN", "dummy_token")
    client = _FakeClient(error=httpx.ConnectError("connexion refusée"))
    monkeypatch.setattr(coach_svc, "httpx", fake_httpx(client), raising=True)

    svc = CoachService()
    assert isinstance(svc.provider, HuggingFaceProvider)
    assert svc.welcome_message(ReadingContext("alice", streak=2)).startswith("Bon retour, Alice !")


# ---------------------------------------------------------------------
# 3) HuggingFaceProvider (httpx factice)
# ---------------------------------------------------------------------

def test_hf_parses_list_format(monkeypatch):
    monkeypatch.setenv("COACH_PROVIDER", "hf")
    monkeypatch.setenv("HF_TOKEN", "dummy_token")
    client = _FakeClient(payload=[{"generated_text": "  Belle série, Alice !  "}])
    monkeypatch.setattr(coach_svc, "httpx", fake_httpx(client), raising=True)

    out = CoachService().welcome_message(ReadingContext("alice", streak=5, today_pages=10, daily_goal=20))
    assert out == "Belle série, Alice !"
    assert "Série en cours: 5 jour(s)" in client.last_json["inputs"]
    assert client.last_json["parameters"]["return_full_text"] is False


def test_hf_parses_dict_variant(monkeypatch):
    monkeypatch.setenv("HF_TOKEN", "dummy_token")
    monkeypatch.setattr(coach_svc, "httpx", fake_httpx(_FakeClient(payload={"text": "Réponse variante"})), raising=True)

    assert HuggingFaceProvider().generate(ReadingContext("alice")) == "Réponse variante"


def test_hf_used_directly_propagates_errors(monkeypatch):
    monkeypatch.setenv("HF_TOKEN", "token")
    client = _FakeClient(error=httpx.ReadTimeout("trop lent"))
    monkeypatch.setattr(coach_svc, "httpx", fake_httpx(client), raising=True)

    with pytest.raises(httpx.HTTPError):
        HuggingFaceProvider().generate(ReadingContext("alice"))
