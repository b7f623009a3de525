"""Visitor session tracking."""

from .visit_tracker import UNKNOWN_IP, VisitOutcome, VisitTracker

__all__ = ["UNKNOWN_IP", "VisitOutcome", "VisitTracker"]
