"""
Declarative base and shared columns for all models.
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_id() -> str:
    """Opaque row identifier."""
    return str(uuid.uuid4())


class BaseModel(Base):
    """Abstract model with id and timestamps."""
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
