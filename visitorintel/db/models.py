"""ORM models for tracked visitor sessions."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import relationship

from .base import Base


class VisitorRecord(Base):
    """One row per visitor IP with denormalised details of the latest session.

    The enrichment column holds the serialised success verdict at the time of
    the first enriched visit; filtered traffic is stored without enrichment.
    """

    __tablename__ = "visitor_records"

    ip_address = Column(String(45), primary_key=True, doc="IPv4 or IPv6 address, or 'unknown'")

    first_visit = Column(DateTime(timezone=True), nullable=False)
    last_visit = Column(DateTime(timezone=True), nullable=False)
    total_sessions = Column(Integer, nullable=False, server_default="1")

    latest_session_id = Column(String(128), nullable=False)
    latest_page_urls = Column(JSON, nullable=False, default=list)
    latest_session_duration_ms = Column(Integer, nullable=False, server_default="0")

    enrichment = Column(JSON, nullable=True, doc="Success verdict from the enrichment pipeline")

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    sessions = relationship(
        "VisitSession",
        back_populates="visitor",
        order_by="VisitSession.id",
        cascade="all, delete-orphan",
    )


class VisitSession(Base):
    """A single tracked browsing session."""

    __tablename__ = "visit_sessions"
    __table_args__ = (Index("ix_visit_sessions_ip_address", "ip_address"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip_address = Column(String(45), ForeignKey("visitor_records.ip_address"), nullable=False)
    session_id = Column(String(128), nullable=False)
    page_urls = Column(JSON, nullable=False, default=list)
    session_duration_ms = Column(Integer, nullable=False, server_default="0")
    user_agent = Column(String(512), nullable=False, server_default="unknown")
    timestamp = Column(DateTime(timezone=True), nullable=False)

    visitor = relationship("VisitorRecord", back_populates="sessions")


__all__ = ["VisitorRecord", "VisitSession"]
