# app/persistence/models.py
# -*- coding: utf-8 -*-
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Date, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func
import datetime as dt
import enum

# Objectifs par défaut à l'inscription
DEFAULT_DAILY_GOAL = 30
DEFAULT_WEEKLY_GOAL = 200
DEFAULT_MONTHLY_GOAL = 1000


class BookStatus(str, enum.Enum):
    TO_READ = "to-read"
    READING = "reading"
    COMPLETED = "completed"


class Base(DeclarativeBase):
    pass

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)

    total_pages_read: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    daily_goal: Mapped[int] = mapped_column(Integer, default=DEFAULT_DAILY_GOAL, nullable=False)
    weekly_goal: Mapped[int] = mapped_column(Integer, default=DEFAULT_WEEKLY_GOAL, nullable=False)
    monthly_goal: Mapped[int] = mapped_column(Integer, default=DEFAULT_MONTHLY_GOAL, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=func.now(), nullable=False)

    books = relationship("Book", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    sessions = relationship("ReadingSession", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("current_page >= 0 AND current_page <= total_pages", name="ck_book_progress"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_book_rating"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False)
    current_page: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=BookStatus.TO_READ.value, nullable=False)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    started_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=func.now(), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="books")
    sessions = relationship("ReadingSession", back_populates="book", cascade="all, delete-orphan", passive_deletes=True)

class ReadingSession(Base):
    __tablename__ = "reading_sessions"
    # 1 session max par (user, livre, jour) : l'upsert incrémente
    __table_args__ = (UniqueConstraint("user_id", "book_id", "date", name="uq_user_book_day"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    book_id: Mapped[int | None] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"), index=True, nullable=True)
    book_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True, nullable=False)

    pages_read: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=func.now(), nullable=False)

    user = relationship("User", back_populates="sessions")
    book = relationship("Book", back_populates="sessions")

class UiPreference(Base):
    __tablename__ = "ui_preferences"
    __table_args__ = (UniqueConstraint("user_id", "key", name="uq_user_pref"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    key: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[str] = mapped_column(String(1024), nullable=False)
