from core.database import Base
from sqlalchemy import Column, DateTime, String, Integer, Text


class AuditLog(Base):
    """
    Append-only trail of session lifecycle events
    (SessionIssued, SessionRotated, SessionRevoked, SessionsRevokedForSubject).
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    # no FK: audit rows outlive the accounts they mention
    user_id = Column(Integer, nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    details = Column(Text, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
