# app/pages/historique.py
# -*- coding: utf-8 -*-

# --- bootstrap import path (page streamlit dans app/pages) ---
import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
# -------------------------------------------------------------

import datetime as dt
import io
import pandas as pd
import streamlit as st
import altair as alt


from app.persistence.db import init_db
from app.persistence.models import Base
from app.persistence.repositories.users_repo import UserRepository
from app.persistence.repositories.sessions_repo import SessionRepository, display_title
from app.services.reading_stats import aggregate_pages, compute_streak, longest_streak, local_day

# Boot DB
init_db(Base, drop_and_recreate=False)
users = UserRepository()
sessions = SessionRepository()

st.set_page_config(page_title="Historique — Lireon", page_icon="📜", layout="wide")
st.title("📜 Historique de lecture")

# User courant ou fallback
default_email = os.getenv("LIREON_DEFAULT_EMAIL", "demo@example.com")
if "user_id" not in st.session_state or "user_email" not in st.session_state:
    u = users.get_or_create(default_email)
    st.session_state["user_id"] = u.id
    st.session_state["user_email"] = u.email

user_id = st.session_state["user_id"]
user_email = st.session_state["user_email"]
st.caption(f"Connecté en tant que **{user_email}** (id={user_id})")

# --- Filtres ---
st.sidebar.header("Filtres")
today = dt.date.today()
default_start = today - dt.timedelta(days=30)

start = st.sidebar.date_input("Du", value=default_start)
end = st.sidebar.date_input("Au", value=today)

# Séries calculées sur tout l'historique (pas seulement la période filtrée)
all_rows = sessions.list_for_user(user_id)
col1, col2, col3 = st.columns(3)
with col1:
    st.metric("Série actuelle 🔥", compute_streak(all_rows, as_of=today))
with col2:
    st.metric("Meilleure série", longest_streak(all_rows))
with col3:
    st.metric("Pages ce mois", aggregate_pages(all_rows, as_of=today).month)

rows = sessions.list_for_user(user_id, start=start, end=end)

if not rows:
    st.info("Aucune session dans cette période.")
    st.stop()

df = pd.DataFrame([{
    "date": r.date,
    "livre": display_title(r),
    "pages": r.pages_read,
    "minutes": r.duration_minutes or 0,
} for r in rows]).sort_values("date")

# Agrégation par jour : plusieurs livres le même jour -> somme
df["day"] = pd.to_datetime(df["date"]).dt.normalize()
df_day = df.groupby("day", as_index=False)[["pages", "minutes"]].sum().sort_values("day")

k1, k2, k3 = st.columns(3)
with k1:
    st.metric("Jours de lecture", len(df_day))
with k2:
    st.metric("Pages / jour (moy.)", f"{df_day['pages'].mean():.1f}")
with k3:
    st.metric("Minutes au total", int(df_day["minutes"].sum()))

pages_chart = (
    alt.Chart(df)
    .mark_bar()
    .encode(
        x=alt.X("yearmonthdate(day):T",
                title="Jour",
                axis=alt.Axis(format="%Y-%m-%d", labelAngle=-45)),
        y=alt.Y("sum(pages):Q", title="Pages"),
        color=alt.Color("livre:N", title="Livre"),
        tooltip=[alt.Tooltip("day:T", title="Jour", format="%Y-%m-%d"),
                 "livre:N", alt.Tooltip("pages:Q", title="Pages")],
    )
    .properties(height=300)
)

st.subheader("Pages lues (par jour)")
st.altair_chart(pages_chart, use_container_width=True)

st.subheader("Sessions")
st.dataframe(df[["date", "livre", "pages", "minutes"]].sort_values("date", ascending=False),
             use_container_width=True, hide_index=True)

# Export CSV
csv_buf = io.StringIO()
df[["date", "livre", "pages", "minutes"]].to_csv(csv_buf, index=False)
st.download_button("⬇️ Export CSV", data=csv_buf.getvalue(), file_name="historique_lireon.csv", mime="text/csv")

# =========================
# 🔀 Comparaison de périodes
# =========================
st.header("🔀 Comparaison de périodes")

preset = st.radio("Choix rapide", options=["7 derniers vs précédents", "30 derniers vs précédents"], horizontal=True)
span = 7 if preset.startswith("7") else 30

def pages_between(start_date: dt.date, end_date: dt.date) -> int:
    total = 0
    for r in all_rows:
        day = local_day(r.date)
        if day is not None and start_date <= day <= end_date:
            total += r.pages_read or 0
    return total

end_A = today
start_A = end_A - dt.timedelta(days=span - 1)
end_B = start_A - dt.timedelta(days=1)
start_B = end_B - dt.timedelta(days=span - 1)

pages_A = pages_between(start_A, end_A)
pages_B = pages_between(start_B, end_B)

c1, c2, c3 = st.columns(3)
with c1:
    st.metric(f"A ({start_A} → {end_A})", pages_A)
with c2:
    st.metric(f"B ({start_B} → {end_B})", pages_B)
with c3:
    st.metric("Δ A vs B", f"{pages_A - pages_B:+d}")
