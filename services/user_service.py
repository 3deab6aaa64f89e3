from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol
from sqlalchemy.orm import Session
from models.users import User
from utils.hashing import verify_password
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UserRecord:
    """Identity snapshot used to build access-token claims."""
    id: int
    email: str
    display_name: str
    role: str
    is_active: bool = True
    extra_claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def claims(self) -> Dict[str, Any]:
        return {"email": self.email, "role": self.role, **self.extra_claims}


class UserDirectory(Protocol):
    def find_user(self, user_id: int) -> Optional[UserRecord]: ...


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        is_active=bool(user.is_active),
    )


class UserService:
    """Reads accounts from the users table."""

    def __init__(self, db: Session):
        self.db = db

    def find_user(self, user_id: int) -> Optional[UserRecord]:
        user = self.db.query(User).filter(User.id == user_id).one_or_none()
        return _to_record(user) if user else None

    def authenticate(self, email: str, password: str) -> Optional[UserRecord]:
        """
        Verify email/password.

        Returns:
            UserRecord on success, None for unknown email or wrong password
        """
        user = self.db.query(User).filter(User.email == email.lower().strip()).first()
        if not user or not verify_password(password, user.hashed_password):
            return None
        return _to_record(user)
