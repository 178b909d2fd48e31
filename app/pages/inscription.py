# app/pages/inscription.py
# -*- coding: utf-8 -*-

# --- bootstrap import path (pages Streamlit) ---
import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
# ------------------------------------------------

import streamlit as st

from app.persistence.db import init_db
from app.persistence.models import Base, DEFAULT_DAILY_GOAL, DEFAULT_WEEKLY_GOAL, DEFAULT_MONTHLY_GOAL
from app.persistence.repositories.users_repo import UserRepository
from app.services.errors import ValidationError

# DB ready
init_db(Base, drop_and_recreate=False)
users = UserRepository()

st.set_page_config(page_title="Inscription — Lireon", page_icon="✍️", layout="centered")
st.title("✍️ Créer un compte")

st.markdown(
    f"""
    Lireon t'aide à installer une **habitude de lecture quotidienne** :
    minuteur, suivi des pages, séries de jours consécutifs et calendrier d'activité.

    Objectifs de départ : **{DEFAULT_DAILY_GOAL}** pages/jour, **{DEFAULT_WEEKLY_GOAL}**/semaine,
    **{DEFAULT_MONTHLY_GOAL}**/mois (modifiables dans le **Profil**).
    """
)

with st.form("register_form"):
    username = st.text_input("Nom d'utilisateur", help="3 caractères minimum")
    email = st.text_input("Email")
    submitted = st.form_submit_button("Créer mon compte")

if submitted:
    try:
        u = users.register(username, email)
        st.session_state["user_id"] = u.id
        st.session_state["user_email"] = u.email
        st.success(f"✅ Compte créé : {u.username} ({u.email}). Bonne lecture !")
    except ValidationError as e:
        st.error(str(e))

st.caption("💡 Astuce : le compte actif est rappelé en haut de chaque page.")
