"""
SQLAlchemy ORM models for database tables.

Only used by the SQL-backed store. For the domain model and the
request/response schemas, see schemas.py.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

# Base class for SQLAlchemy models
Base = declarative_base()


class MessageRecord(Base):
    """
    SQLAlchemy model for storing organization messages.

    Table: messages
    Primary Key: row_id (insertion order, breaks created_at ties)
    """
    __tablename__ = "messages"

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True, index=True)
    organization_id = Column(String(36), nullable=False, index=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
