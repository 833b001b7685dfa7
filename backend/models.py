from sqlalchemy import Column, String, DateTime, JSON, Index
from sqlalchemy.sql import func
from database import Base


class Document(Base):
    """A JSON document in one of the store's collections (users, projects, tasks)."""

    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_documents_collection", "collection"),
    )


class Account(Base):
    """Credentials owned by the authentication collaborator, separate from profiles."""

    __tablename__ = "accounts"

    uid = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
