"""Record visitor sessions per IP address.

The tracker is the persistence collaborator of the enrichment core: the
caller enriches an IP, then hands the verdict here together with the session
details. One VisitorRecord exists per IP; every call appends a VisitSession
and refreshes the record's "latest session" columns.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import VisitorRecord, VisitSession
from ..enrichment.errors import InvalidInputError
from ..enrichment.models import EnrichmentResult, SuccessResult

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(slots=True, frozen=True)
class VisitOutcome:
    """Result of :meth:`VisitTracker.record_visit`.

    Attributes:
        record_id: Key of the visitor record (the IP address)
        session_count: Sessions stored for this IP after the call
        status: "new_ip" for a first visit, "session_added" otherwise
    """

    record_id: str
    session_count: int
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.record_id, "session_count": self.session_count, "status": self.status}


def _parse_duration(duration: Union[int, float, str, None]) -> int:
    """Return a millisecond duration; unparsable values become 0."""
    if duration is None or isinstance(duration, bool):
        return 0
    if isinstance(duration, int):
        return duration
    if isinstance(duration, float):
        return int(duration) if math.isfinite(duration) else 0
    match = _LEADING_INT.match(duration)
    return int(match.group(1)) if match else 0


class VisitTracker:
    """Persist visitor sessions through a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def record_visit(
        self,
        ip_address: Optional[str],
        session_id: str,
        page_urls: Optional[Sequence[str]] = None,
        duration: Union[int, float, str, None] = None,
        user_agent: Optional[str] = None,
        enrichment: Optional[EnrichmentResult] = None,
    ) -> VisitOutcome:
        """Store one session for ``ip_address``.

        Args:
            ip_address: Visitor IP; stored as "unknown" when missing
            session_id: Client session identifier (required)
            page_urls: Page history of the session
            duration: Session length in ms, as a number or numeric string
            user_agent: Client user agent
            enrichment: Pipeline verdict; only success verdicts are stored

        Returns:
            VisitOutcome describing whether the IP was new

        Raises:
            InvalidInputError: If ``session_id`` is empty
            sqlalchemy.exc.SQLAlchemyError: If the database operation fails
        """
        if not session_id or not session_id.strip():
            raise InvalidInputError("sessionId is required")

        client_ip = (ip_address or "").strip() or UNKNOWN_IP
        urls = list(page_urls or [])
        duration_ms = _parse_duration(duration)
        now = datetime.now(timezone.utc)
        enrichment_payload = enrichment.to_dict() if isinstance(enrichment, SuccessResult) else None

        visit = VisitSession(
            session_id=session_id,
            page_urls=urls,
            session_duration_ms=duration_ms,
            user_agent=user_agent or "unknown",
            timestamp=now,
        )

        with self.session_factory() as session, session.begin():
            record = session.get(VisitorRecord, client_ip)
            if record is None:
                record = VisitorRecord(
                    ip_address=client_ip,
                    first_visit=now,
                    last_visit=now,
                    total_sessions=1,
                    latest_session_id=session_id,
                    latest_page_urls=urls,
                    latest_session_duration_ms=duration_ms,
                    enrichment=enrichment_payload,
                    created_at=now,
                    updated_at=now,
                )
                record.sessions.append(visit)
                session.add(record)
                logger.info("New IP record created for %s (session %s)", client_ip, session_id)
                return VisitOutcome(record_id=client_ip, session_count=1, status="new_ip")

            record.sessions.append(visit)
            record.total_sessions = len(record.sessions)
            record.last_visit = now
            record.latest_session_id = session_id
            record.latest_page_urls = urls
            record.latest_session_duration_ms = duration_ms
            record.updated_at = now
            if enrichment_payload is not None and record.enrichment is None:
                record.enrichment = enrichment_payload
            session_count = record.total_sessions

        logger.info("Added session %s to existing IP %s (%d sessions)", session_id, client_ip, session_count)
        return VisitOutcome(record_id=client_ip, session_count=session_count, status="session_added")

    def get_visitor(self, ip_address: str) -> Optional[dict[str, Any]]:
        """Return the stored visitor record and its sessions, or None."""
        with self.session_factory() as session:
            record = session.execute(
                select(VisitorRecord).where(VisitorRecord.ip_address == ip_address)
            ).scalar_one_or_none()
            if record is None:
                return None
            return {
                "ip_address": record.ip_address,
                "first_visit": record.first_visit.isoformat() if record.first_visit else None,
                "last_visit": record.last_visit.isoformat() if record.last_visit else None,
                "total_sessions": record.total_sessions,
                "latest_session_id": record.latest_session_id,
                "latest_page_urls": record.latest_page_urls,
                "latest_session_duration_ms": record.latest_session_duration_ms,
                "enrichment": record.enrichment,
                "sessions": [
                    {
                        "session_id": visit.session_id,
                        "page_urls": visit.page_urls,
                        "session_duration_ms": visit.session_duration_ms,
                        "user_agent": visit.user_agent,
                        "timestamp": visit.timestamp.isoformat() if visit.timestamp else None,
                    }
                    for visit in record.sessions
                ],
            }


__all__ = ["UNKNOWN_IP", "VisitOutcome", "VisitTracker"]
