"""User model definitions."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, String
from backend.database import Base


class User(Base):
    """Represents an account issued by the authentication service."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    role = Column(String, default="customer")  # customer/braider/admin
    created_at = Column(DateTime, default=datetime.now)
