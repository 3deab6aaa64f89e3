"""Audit sinks for session lifecycle events"""

from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.clock import Clock, system_clock
from models.audit_logs import AuditLog
from utils.logger import get_logger

logger = get_logger(__name__)

SESSION_ISSUED = "SessionIssued"
SESSION_ROTATED = "SessionRotated"
SESSION_REVOKED = "SessionRevoked"
SESSIONS_REVOKED_FOR_SUBJECT = "SessionsRevokedForSubject"


class AuditSink(Protocol):
    """
    Fire-and-forget event sink.

    Implementations must not raise: a failed audit write never fails the
    operation that triggered it.
    """

    def record(self, subject_id: Optional[int], event: str, detail: Optional[str] = None) -> None: ...


class AuditService:
    """Persists audit events to the audit_logs table"""

    def __init__(self, db: Session, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    def record(self, subject_id, event, detail=None):
        try:
            self.db.add(AuditLog(
                user_id=subject_id,
                action=event,
                details=detail,
                occurred_at=self.clock.now()
            ))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Audit write failed",
                extra={"event_type": event, "user_id": subject_id}
            )
            return

        logger.info(
            f"Audit: {event}",
            extra={"event_type": event, "user_id": subject_id}
        )
