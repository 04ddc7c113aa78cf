"""Access code database model.

This module defines the AccessCode database model using SQLAlchemy.
"""

from sqlalchemy import Column, Integer, String

from .base import Base


class AccessCodeModel(Base):
    """One-time access code database model."""

    __tablename__ = "access_codes"

    code = Column(String, primary_key=True, index=True)
    status = Column(String, nullable=True)  # 'AVAILABLE' or 'CLAIMED'
    notes = Column(String, nullable=True)
    created_at = Column(Integer, nullable=False)  # epoch seconds
    claimed_by = Column(String, nullable=True)  # claimant identity
    claimed_at = Column(Integer, nullable=True)  # epoch seconds
    expires_at = Column(Integer, nullable=True)  # epoch seconds
    purge_at = Column(Integer, nullable=True, index=True)  # epoch seconds
