"""SQLAlchemy models for users and their lounges."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_USER)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    lounges = relationship("Lounge", back_populates="owner", passive_deletes="all")


class Lounge(Base):
    __tablename__ = "lounges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="My Lounge")
    description = Column(Text, nullable=True)
    buttons = Column(JSON, nullable=False, default=list)
    icons = Column(JSON, nullable=False, default=list)
    profile_image = Column(String(1024), nullable=True)
    background_image = Column(String(1024), nullable=True)
    theme = Column(String(128), nullable=False, default="default")
    is_public = Column(Boolean, nullable=False, default=False)
    # "<username>/<title-slug>"; the unique index closes the check-then-insert race.
    url = Column(String(512), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    owner = relationship("User", back_populates="lounges", lazy="joined")
