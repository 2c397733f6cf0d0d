"""Braider and service model definitions."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from backend.database import Base


class Braider(Base):
    """Represents a service provider profile."""
    __tablename__ = "braiders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String, nullable=False)
    contact_email = Column(String, unique=True, index=True, nullable=False)
    contact_phone = Column(String)
    location = Column(String)
    status = Column(String, default="pending")  # pending/approved/rejected
    created_at = Column(DateTime, default=datetime.now)


class Service(Base):
    """Represents a priced service offered by a braider."""
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    braider_id = Column(String(36), ForeignKey("braiders.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.now)
