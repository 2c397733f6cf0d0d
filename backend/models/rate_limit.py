"""Rate limit model definitions."""

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from backend.database import Base


class RateLimitBucket(Base):
    """One identifier and action pair. Admissions for the pair lock this row."""
    __tablename__ = "rate_limit_buckets"
    __table_args__ = (
        UniqueConstraint('identifier', 'action', name='uq_rate_limit_buckets_key'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    identifier = Column(String, nullable=False)
    action = Column(String, nullable=False)


class RateLimitHit(Base):
    """One admitted attempt."""
    __tablename__ = "rate_limit_hits"
    __table_args__ = (
        Index('idx_rate_limit_hits_bucket_time', 'bucket_id', 'hit_at'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    bucket_id = Column(Integer, ForeignKey("rate_limit_buckets.id"), nullable=False)
    hit_at = Column(Float, nullable=False)  # epoch seconds
