import uuid
from core.database import Base
from sqlalchemy import Column, DateTime, String, Integer, ForeignKey
from sqlalchemy.orm import relationship


class RefreshToken(Base):
    """
    One row per issued or rotated refresh token.

    Only the SHA-256 of the raw token is stored. A row is usable while
    revoked_at is NULL and expires_at is in the future; rotation and
    revocation both set revoked_at exactly once. replaced_by_token_hash
    links a rotated row to its successor. Rows are never deleted here.
    """
    __tablename__ = "refresh_tokens"

    #pk
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    #fk
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="refresh_tokens")

    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True, index=True)
    replaced_by_token_hash = Column(String(64), nullable=True)
