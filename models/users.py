from core.database import Base
from sqlalchemy import (Column, Integer, String, Boolean)
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin

class User(Base, CreatedAtMixin):
    """
    Account record the session services resolve identities and claims from.

    Registration and profile management live outside this service; only the
    columns needed to log in and to build access-token claims are mapped.
    """
    __tablename__ = "users"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user")

    email = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default="user", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
