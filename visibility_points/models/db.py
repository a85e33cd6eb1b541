"""SQLAlchemy database models for storing daily points commitments"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class ClaimablePointsRecord(Base):
    """
    Merkle commitment of the points rewarded for one day.
    One row per day, recomputing a day overwrites it.
    """
    __tablename__ = 'claimable_points'

    id = Column(Integer, primary_key=True)
    day = Column(Date, unique=True, nullable=False, index=True)
    merkle_root = Column(String(66), nullable=False)
    decimals = Column(Integer, nullable=False)
    # Fixed-point strings at `decimals` places
    total_points = Column(String, nullable=False)
    effective_points = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class UserClaimablePointsRecord(Base):
    """
    Points of one user for one commitment, with the proof against its root.
    """
    __tablename__ = 'user_claimable_points'
    __table_args__ = (
        UniqueConstraint('claimable_points_id', 'user_address', name='uq_user_claimable_points'),
    )

    id = Column(Integer, primary_key=True)
    claimable_points_id = Column(Integer, ForeignKey('claimable_points.id', ondelete='CASCADE'), nullable=False)
    user_address = Column(String(42), nullable=False, index=True)
    points = Column(String, nullable=False)
    merkle_proof = Column(JSON, nullable=True)  # list of 0x-prefixed hashes
