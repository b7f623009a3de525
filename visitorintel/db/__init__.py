"""Database utilities for tracked visitor sessions."""

from .base import Base
from .engine import create_engine_from_settings, create_session_maker, init_database
from .models import VisitorRecord, VisitSession

__all__ = [
    "Base",
    "create_engine_from_settings",
    "create_session_maker",
    "init_database",
    "VisitorRecord",
    "VisitSession",
]
