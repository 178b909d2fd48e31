# app/persistence/db.py
# -*- coding: utf-8 -*-
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
import logging
import os

DB_URL = os.getenv("DB_URL", "sqlite:///lireon.db")

logger = logging.getLogger(__name__)

engine = create_engine(DB_URL, echo=False, future=True)

if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_fk(dbapi_conn, _record):
        # SQLite ignore ON DELETE CASCADE sans ce pragma
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,  # important pour éviter DetachedInstanceError
    future=True,
)

@contextmanager
def get_session():
    """Contexte gérant automatiquement commit/rollback."""
    s = SessionLocal()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()

def init_db(Base, drop_and_recreate=False):
    """Crée les tables (et les recrée si demandé)."""
    if drop_and_recreate:
        logger.warning("Drop & recreate du schéma sur %s", engine.url)
        Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
