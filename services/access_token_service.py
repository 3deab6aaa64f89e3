from datetime import datetime, timezone, timedelta
from typing import Any, Callable, Dict, Optional
from jose import jwt
from core.config import settings

Signer = Callable[[str, Dict[str, Any], timedelta], str]

# Claims the issuer owns; caller-supplied claims cannot override them
RESERVED_CLAIMS = {"sub", "type", "exp", "iat", "name"}


def sign_access_token(subject: str, claims: Dict[str, Any], ttl: timedelta) -> str:
    """
    Default signer: HS/RS JWT via python-jose using the configured key.

    Args:
        subject: Value for the "sub" claim
        claims: Extra claims to embed
        ttl: Lifetime of the token

    Returns:
        Encoded JWT string
    """
    issued_at = datetime.now(timezone.utc)
    payload = {
        **claims,
        "sub": subject,
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + ttl,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


class AccessTokenIssuer:
    """
    Mints short-lived access tokens for a subject.

    The lifetime is fixed by configuration; callers cannot negotiate it.
    """

    def __init__(self, signer: Optional[Signer] = None, ttl: Optional[timedelta] = None):
        self.signer = signer or sign_access_token
        self.ttl = ttl or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    def issue(self, subject_id, display_name: str, claims: Optional[Dict[str, Any]] = None) -> str:
        payload = {
            key: value for key, value in (claims or {}).items()
            if key not in RESERVED_CLAIMS
        }
        payload["name"] = display_name
        return self.signer(str(subject_id), payload, self.ttl)
