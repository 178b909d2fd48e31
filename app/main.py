# app/main.py
# -*- coding: utf-8 -*-
# --- bootstrap import path (run as script via streamlit) ---
import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
# -----------------------------------------------------------
import calendar
import datetime as dt
import logging
import altair as alt
import pandas as pd
import streamlit as st

# DB init (assure que les tables existent)
from app.persistence.db import init_db
from app.persistence.models import Base, BookStatus
from app.persistence.repositories.users_repo import UserRepository
from app.persistence.repositories.books_repo import BookRepository
from app.persistence.repositories.sessions_repo import SessionRepository
from app.persistence.repositories import prefs_repo
from app.persistence.repositories.prefs_repo import DbPreferenceStore

# Statistiques, minuteur, message d'accueil
from app.services.errors import LireonError
from app.services.reading_stats import (
    aggregate_pages, compute_streak, daily_heat, goal_progress, heat_level, reading_summary, book_progress,
)
from app.services.timer import ReadingTimer, PRESETS
from app.services.coach_service import CoachService, ReadingContext

logging.basicConfig(
    level=os.getenv("LIREON_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

HEAT_COLORS = ["#FAF2E5", "#DBDAAE", "#C3CB98", "#AAB97E", "#5D6939"]

# ---------------------------------------------------------------------
# Bootstrapping
# ---------------------------------------------------------------------
init_db(Base, drop_and_recreate=False)
users_repo = UserRepository()
books_repo = BookRepository()
sessions_repo = SessionRepository()

st.set_page_config(page_title="Lireon", page_icon="📚", layout="wide")

# ---------------------------------------------------------------------
# Sidebar – Sélection / création utilisateur
# ---------------------------------------------------------------------
st.sidebar.title("👤 Lecteur")
default_email = os.getenv("LIREON_DEFAULT_EMAIL", "demo@example.com")
email = st.sidebar.text_input("Email", value=default_email, help="Créé s'il n'existe pas")

if st.sidebar.button("Charger/Créer le lecteur"):
    u = users_repo.get_or_create(email)
    st.session_state["user_id"] = u.id
    st.session_state["user_email"] = u.email
    st.sidebar.success(f"OK : {u.email} (id={u.id})")

# état par défaut au premier chargement
if "user_id" not in st.session_state:
    u = users_repo.get_or_create(default_email)
    st.session_state["user_id"] = u.id
    st.session_state["user_email"] = u.email

user_id = st.session_state["user_id"]
user = users_repo.get(user_id)
prefs = DbPreferenceStore(user_id)

st.caption(f"Connecté en tant que **{user.email}** (id={user_id})")

# ---------------------------------------------------------------------
# Données du jour
# ---------------------------------------------------------------------
today = dt.date.today()
sessions = sessions_repo.list_for_user(user_id)
books = books_repo.list_for_user(user_id, sort="status")
totals = aggregate_pages(sessions, as_of=today)
streak = compute_streak(sessions, as_of=today)
summary = reading_summary(sessions, as_of=today)

st.title("📚 Lireon — Tableau de bord")

# Tutoriel (une seule fois)
if not prefs_repo.tutorial_seen(prefs):
    with st.expander("👋 Premiers pas", expanded=True):
        st.markdown(
            """
            1. Ajoute un livre depuis la page **Livres**.
            2. Lance le **minuteur** ou saisis directement les pages lues.
            3. Suis ta **série**, tes **objectifs** et le **calendrier** de lecture.
            """
        )
        if st.button("Compris, ne plus afficher"):
            prefs_repo.mark_tutorial_seen(prefs)
            st.rerun()

# Bannière d'accueil (masquable pour la journée)
if prefs_repo.welcome_visible(prefs, today):
    col_msg, col_close = st.columns([12, 1])
    with col_msg:
        msg = CoachService().welcome_message(ReadingContext(
            name=user.username, streak=streak, today_pages=totals.today, daily_goal=user.daily_goal,
        ))
        st.info(f"{msg}  \n🔥 Série : **{streak} jour(s)**")
    with col_close:
        if st.button("✖", help="Masquer jusqu'à demain"):
            prefs_repo.dismiss_welcome(prefs, today)
            st.rerun()
else:
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Livres", len(books))
    c2.metric("Pages lues", user.total_pages_read)
    c3.metric("Temps de lecture", f"{summary.total_minutes // 60}h {summary.total_minutes % 60}m")
    c4.metric("Sessions (7 j)", summary.sessions_last_7_days)

# ---------------------------------------------------------------------
# Progression & objectifs
# ---------------------------------------------------------------------
tab_progress, tab_goals = st.tabs(["Progression", "Objectifs"])

with tab_progress:
    col1, col2, col3 = st.columns(3)
    col1.metric("Aujourd'hui", totals.today)
    col2.metric("Série 🔥", streak)
    col3.metric("Total", user.total_pages_read)

    reading = [b for b in books if b.status == BookStatus.READING.value]
    st.subheader(f"En cours ({len(reading)})")
    if not reading:
        st.caption("Aucun livre en cours.")
    for b in reading:
        pct = book_progress(b.current_page, b.total_pages)
        st.write(f"**{b.title}** — {b.author}  ·  {b.current_page}/{b.total_pages}")
        st.progress(pct / 100.0, text=f"{pct}%")

with tab_goals:
    for g in goal_progress(totals, user.daily_goal, user.weekly_goal, user.monthly_goal):
        st.write(f"**{g.label}** : {g.current}/{g.target}" + ("  ✅" if g.is_complete else ""))
        st.progress(g.percentage / 100.0)

# ---------------------------------------------------------------------
# Minuteur & saisie des pages
# ---------------------------------------------------------------------
left, right = st.columns(2)
active_books = [b for b in books if b.status != BookStatus.COMPLETED.value]
book_labels = {b.id: f"{b.title} ({b.current_page}/{b.total_pages})" for b in active_books}

with left:
    st.subheader("⏱️ Minuteur de lecture")
    timer: ReadingTimer = st.session_state.setdefault("timer", ReadingTimer())

    cols = st.columns(len(PRESETS))
    for col, mins in zip(cols, PRESETS):
        if col.button(f"{mins} min", type="primary" if timer.preset == mins else "secondary"):
            timer.start(mins)

    st.markdown(f"## {timer.display()}")
    st.progress(timer.progress / 100.0)

    c_pause, c_resume, c_reset, c_refresh = st.columns(4)
    if c_pause.button("Pause", disabled=not timer.is_running):
        timer.pause()
    if c_resume.button("Reprendre", disabled=timer.is_running or timer.is_finished):
        timer.resume()
    if c_reset.button("Réinitialiser"):
        timer.reset()
    c_refresh.button("Actualiser")

    if timer.is_finished and active_books:
        st.success("Session terminée !")
        with st.form("timed_session_form"):
            book_id = st.selectbox("Livre", options=list(book_labels), format_func=book_labels.get)
            pages = st.number_input("Pages lues pendant la session", min_value=0, step=1, value=0)
            if st.form_submit_button("Enregistrer la session"):
                try:
                    b = sessions_repo.log_timed_session(user_id, book_id, max(1, timer.elapsed_minutes), int(pages))
                    timer.reset()
                    st.success(f"✅ Session enregistrée — {b.title} : {b.current_page}/{b.total_pages}")
                    st.rerun()
                except LireonError as e:
                    st.error(f"Impossible d'enregistrer la session : {e}")

with right:
    st.subheader("📝 Pages lues")
    if not active_books:
        st.info("Ajoute un livre depuis la page **Livres** pour commencer.")
    else:
        with st.form("log_pages_form", clear_on_submit=True):
            book_id = st.selectbox("Livre", options=list(book_labels), format_func=book_labels.get, key="log_book")
            pages = st.number_input("Pages", min_value=1, step=1, value=10)
            if st.form_submit_button("Enregistrer"):
                try:
                    b = sessions_repo.log_pages(user_id, book_id, int(pages))
                    st.success(f"✅ {int(pages)} page(s) — {b.title} : {b.current_page}/{b.total_pages}"
                               + ("  🎉 Terminé !" if b.status == BookStatus.COMPLETED.value else ""))
                    st.rerun()
                except LireonError as e:
                    st.error(f"Impossible d'enregistrer la lecture : {e}")

# ---------------------------------------------------------------------
# Calendrier (heatmap du mois)
# ---------------------------------------------------------------------
def calendar_frame(heat: dict, year: int, month: int) -> pd.DataFrame:
    """Une ligne par jour du mois, positionnée semaine x jour (dimanche en premier)."""
    first_weekday = (calendar.monthrange(year, month)[0] + 1) % 7  # dimanche=0
    rows = []
    for day, pages in heat.items():
        slot = first_weekday + day - 1
        rows.append({
            "jour": day,
            "pages": pages,
            "niveau": heat_level(pages),
            "semaine": slot // 7,
            "jour_semaine": ["Dim", "Lun", "Mar", "Mer", "Jeu", "Ven", "Sam"][slot % 7],
        })
    return pd.DataFrame(rows)

st.subheader(f"📅 Activité — {today.strftime('%m/%Y')}")
df_cal = calendar_frame(daily_heat(sessions, today.year, today.month), today.year, today.month)
base = alt.Chart(df_cal).encode(
    x=alt.X("jour_semaine:O", sort=["Dim", "Lun", "Mar", "Mer", "Jeu", "Ven", "Sam"], title=None),
    y=alt.Y("semaine:O", axis=None),
)
heatmap = base.mark_rect(cornerRadius=4).encode(
    color=alt.Color("niveau:O", scale=alt.Scale(domain=[0, 1, 2, 3, 4], range=HEAT_COLORS), legend=None),
    tooltip=[alt.Tooltip("jour:Q", title="Jour"), alt.Tooltip("pages:Q", title="Pages")],
)
labels = base.mark_text(baseline="middle").encode(text="jour:Q")
st.altair_chart((heatmap + labels).properties(height=260), use_container_width=True)
