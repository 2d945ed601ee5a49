"""
SQLAlchemy ORM models for the relational credential backend.

Column names follow the persisted layout ``users(id, email, passwordHash,
name, role, createdAt)`` so administrative scripts can query the table
directly.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    # stored lower-cased, which makes the unique constraint case-insensitive
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column("passwordHash", String(255), nullable=False)
    name = Column(String(128), nullable=False)
    role = Column(String(32), nullable=False, default="user")
    created_at = Column("createdAt", DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class PasswordOtp(Base):
    __tablename__ = "password_otps"

    email = Column(String(255), primary_key=True)
    code = Column(String(6), nullable=False)
    expires_at = Column("expiresAt", DateTime(timezone=True), nullable=False)
