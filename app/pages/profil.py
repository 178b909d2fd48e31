# app/pages/profil.py
# -*- coding: utf-8 -*-

# --- bootstrap import path (page streamlit dans app/pages) ---
import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
# -------------------------------------------------------------

import streamlit as st

from app.persistence.db import init_db
from app.persistence.models import Base
from app.persistence.repositories.users_repo import UserRepository
from app.persistence.repositories import prefs_repo
from app.persistence.repositories.prefs_repo import DbPreferenceStore
from app.services.errors import LireonError

# Boot DB (no drop)
init_db(Base, drop_and_recreate=False)
users = UserRepository()

st.set_page_config(page_title="Profil — Lireon", page_icon="👤", layout="centered")
st.title("👤 Profil")

# Récup user courant (depuis main) ou fallback
default_email = os.getenv("LIREON_DEFAULT_EMAIL", "demo@example.com")
if "user_id" not in st.session_state or "user_email" not in st.session_state:
    u = users.get_or_create(default_email)
    st.session_state["user_id"] = u.id
    st.session_state["user_email"] = u.email

user_id = st.session_state["user_id"]
st.caption(f"Connecté en tant que **{st.session_state['user_email']}** (id={user_id})")

# --- Carte d'infos utilisateur ---
u = users.get(user_id)
colA, colB = st.columns(2)
with colA:
    st.subheader("Informations")
    st.write(f"**Nom :** {u.username}")
    st.write(f"**Email :** {u.email}")
    st.write(f"**Créé le :** {u.created_at.strftime('%Y-%m-%d %H:%M') if u.created_at else '—'}")

with colB:
    st.subheader("Lecture")
    st.metric("Pages lues (à vie)", u.total_pages_read)

# --- Objectifs ---
st.subheader("🎯 Objectifs")
with st.form("goals_form"):
    daily = st.number_input("Pages par jour", min_value=1, step=1, value=u.daily_goal)
    weekly = st.number_input("Pages par semaine", min_value=1, step=1, value=u.weekly_goal)
    monthly = st.number_input("Pages par mois", min_value=1, step=1, value=u.monthly_goal)
    if st.form_submit_button("Enregistrer les objectifs"):
        try:
            users.update_goals(user_id, daily=int(daily), weekly=int(weekly), monthly=int(monthly))
            st.success("✅ Objectifs mis à jour")
            st.rerun()
        except LireonError as e:
            st.error(f"Objectifs non enregistrés : {e}")

# --- Préférences d'interface ---
st.subheader("⚙️ Préférences")
prefs = DbPreferenceStore(user_id)
if st.button("Revoir le tutoriel"):
    prefs_repo.reset_tutorial(prefs)
    st.success("Le tutoriel s'affichera de nouveau sur le tableau de bord.")
if st.button("Réafficher la bannière d'accueil"):
    prefs.delete(prefs_repo.WELCOME_DISMISSED_ON)
    st.success("La bannière d'accueil est de retour.")
