# app/pages/livres.py
# -*- coding: utf-8 -*-

# --- bootstrap import path (page streamlit dans app/pages) ---
import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
# -------------------------------------------------------------

import streamlit as st

from app.persistence.db import init_db
from app.persistence.models import Base, BookStatus
from app.persistence.repositories.users_repo import UserRepository
from app.persistence.repositories.books_repo import BookRepository
from app.persistence.repositories.sessions_repo import SessionRepository
from app.services.errors import LireonError
from app.services.optimistic import OptimisticUpdate
from app.services.reading_stats import book_progress

# Boot DB
init_db(Base, drop_and_recreate=False)
users = UserRepository()
books = BookRepository()
sessions = SessionRepository()

st.set_page_config(page_title="Livres — Lireon", page_icon="📖", layout="wide")
st.title("📖 Mes livres")

# User courant ou fallback
default_email = os.getenv("LIREON_DEFAULT_EMAIL", "demo@example.com")
if "user_id" not in st.session_state or "user_email" not in st.session_state:
    u = users.get_or_create(default_email)
    st.session_state["user_id"] = u.id
    st.session_state["user_email"] = u.email

user_id = st.session_state["user_id"]
st.caption(f"Connecté en tant que **{st.session_state['user_email']}** (id={user_id})")

STATUS_LABELS = {
    BookStatus.TO_READ.value: "À lire",
    BookStatus.READING.value: "En cours",
    BookStatus.COMPLETED.value: "Terminé",
}

def book_row(b) -> dict:
    return {
        "id": b.id, "title": b.title, "author": b.author, "status": b.status, "rating": b.rating,
        "current_page": b.current_page, "total_pages": b.total_pages,
    }

# --- Ajout d'un livre ---
with st.expander("➕ Ajouter un livre"):
    with st.form("add_book", clear_on_submit=True):
        title = st.text_input("Titre")
        author = st.text_input("Auteur")
        total_pages = st.number_input("Nombre de pages", min_value=1, step=1, value=200)
        if st.form_submit_button("Ajouter"):
            try:
                b = books.create(user_id, title, author, int(total_pages))
                st.success(f"✅ « {b.title} » ajouté.")
            except LireonError as e:
                st.error(f"Impossible d'ajouter le livre : {e}")

# --- Filtres ---
counts = books.status_counts(user_id)
st.sidebar.header("Filtres")
status_filter = st.sidebar.radio(
    "Statut",
    options=["all", *STATUS_LABELS],
    format_func=lambda k: f"{STATUS_LABELS.get(k, 'Tous')} ({counts.get(k, 0)})",
)
sort = st.sidebar.selectbox(
    "Tri", options=["status", "recent", "title", "author", "progress"],
    format_func={"status": "Statut", "recent": "Récents", "title": "Titre",
                 "author": "Auteur", "progress": "Progression"}.get,
)
search = st.sidebar.text_input("Recherche (titre, auteur)")

rows = books.list_for_user(user_id, status=status_filter, sort=sort, search=search)

# État d'affichage (mis à jour de façon optimiste)
view = st.session_state.setdefault("books_view", {})
for b in rows:
    view[b.id] = book_row(b)

if not rows:
    st.info("Aucun livre pour ce filtre.")

for b in rows:
    shown = view[b.id]
    with st.container(border=True):
        col_info, col_status, col_actions = st.columns([5, 2, 2])

        with col_info:
            st.markdown(f"**{shown['title']}** — {shown['author']}")
            pct = book_progress(shown["current_page"], shown["total_pages"])
            st.progress(pct / 100.0, text=f"{shown['current_page']}/{shown['total_pages']} ({pct}%)")
            if shown["rating"]:
                st.caption("⭐" * shown["rating"] + f"  {shown['rating']}/5")

        with col_status:
            options = list(STATUS_LABELS)
            new_status = st.selectbox(
                "Statut", options=options, index=options.index(shown["status"]),
                format_func=STATUS_LABELS.get, key=f"status_{b.id}",
            )
            if new_status != shown["status"]:
                cmd = OptimisticUpdate(view, b.id, {**shown, "status": new_status})
                try:
                    cmd.run(lambda: book_row(books.update(user_id, b.id, status=new_status)))
                    st.rerun()
                except LireonError as e:
                    st.error(f"Statut non modifié : {e}")

            if shown["status"] == BookStatus.COMPLETED.value:
                rating = st.select_slider("Note", options=[0, 1, 2, 3, 4, 5],
                                          value=shown["rating"] or 0, key=f"rating_{b.id}")
                if rating != (shown["rating"] or 0):
                    cmd = OptimisticUpdate(view, b.id, {**shown, "rating": rating or None})
                    try:
                        cmd.run(lambda: book_row(books.update(user_id, b.id, rating=rating or None)))
                        st.rerun()
                    except LireonError as e:
                        st.error(f"Note non enregistrée : {e}")

        with col_actions:
            if shown["status"] != BookStatus.COMPLETED.value:
                pages = st.number_input("Pages lues", min_value=1, step=1, value=10, key=f"pages_{b.id}")
                if st.button("Enregistrer", key=f"log_{b.id}"):
                    try:
                        view[b.id] = book_row(sessions.log_pages(user_id, b.id, int(pages)))
                        st.rerun()
                    except LireonError as e:
                        st.error(f"Impossible d'enregistrer la lecture : {e}")

            confirm_key = f"confirm_delete_{b.id}"
            if st.session_state.get(confirm_key):
                st.warning("Supprimer ce livre et toutes ses sessions ?")
                c_yes, c_no = st.columns(2)
                if c_yes.button("Oui", key=f"yes_{b.id}"):
                    try:
                        books.delete_book(user_id, b.id)
                        view.pop(b.id, None)
                        st.session_state.pop(confirm_key, None)
                        st.rerun()
                    except LireonError as e:
                        st.error(f"Suppression impossible : {e}")
                if c_no.button("Non", key=f"no_{b.id}"):
                    st.session_state.pop(confirm_key, None)
                    st.rerun()
            elif st.button("🗑️ Supprimer", key=f"del_{b.id}"):
                st.session_state[confirm_key] = True
                st.rerun()

        with st.expander("✏️ Modifier"):
            with st.form(f"edit_{b.id}"):
                e_title = st.text_input("Titre", value=shown["title"])
                e_author = st.text_input("Auteur", value=shown["author"])
                e_total = st.number_input("Nombre de pages", min_value=1, step=1, value=shown["total_pages"])
                e_current = st.number_input("Page actuelle", min_value=0, step=1, value=shown["current_page"])
                if st.form_submit_button("Enregistrer les modifications"):
                    try:
                        updated = books.update(user_id, b.id, title=e_title, author=e_author,
                                               total_pages=int(e_total), current_page=int(e_current))
                        view[b.id] = book_row(updated)
                        st.rerun()
                    except LireonError as e:
                        st.error(f"Modification impossible : {e}")
