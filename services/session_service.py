"""
Session lifecycle: issue, rotate and revoke refresh tokens.

Every credential moves Active -> Rotated or Active -> Revoked, never back.
The only synchronization point is the store's conditional update; this
service keeps no mutable state of its own.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

from core.clock import Clock, system_clock
from core.config import settings
from services.access_token_service import AccessTokenIssuer
from services.audit_service import (
    AuditSink, SESSION_ISSUED, SESSION_ROTATED, SESSION_REVOKED, SESSIONS_REVOKED_FOR_SUBJECT
)
from services.errors import DuplicateTokenHash, TokenEntropyError
from services.refresh_token_store import RefreshCredential, RefreshTokenStore
from services.user_service import UserDirectory
from utils.hashing import hash_token
from utils.logger import get_logger, short_hash
from utils.tokens import generate_refresh_token

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class SessionError(Enum):
    # Not found, expired, already used, or lost a rotation race: deliberately one value
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"


@dataclass(frozen=True)
class RotationResult:
    tokens: Optional[TokenPair] = None
    error: Optional[SessionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, tokens: TokenPair) -> "RotationResult":
        return cls(tokens=tokens)

    @classmethod
    def invalid(cls) -> "RotationResult":
        return cls(error=SessionError.INVALID_OR_EXPIRED_TOKEN)


class SessionService:
    """
    Orchestrates refresh credentials and access tokens.

    Collaborators are passed in explicitly; see utils.deps for the
    request-scoped wiring used by the HTTP layer.
    """

    def __init__(
        self,
        store: RefreshTokenStore,
        access_tokens: AccessTokenIssuer,
        users: UserDirectory,
        audit: AuditSink,
        clock: Clock = system_clock,
        refresh_window: Optional[timedelta] = None,
        token_generator: Callable[[], str] = generate_refresh_token,
    ):
        self.store = store
        self.access_tokens = access_tokens
        self.users = users
        self.audit = audit
        self.clock = clock
        self.refresh_window = refresh_window or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        self.token_generator = token_generator

    def issue(self, subject_id: int, display_name: str, claims: Optional[Dict[str, Any]] = None) -> TokenPair:
        """
        Start a new session (fresh rotation chain) for an authenticated subject.

        The raw refresh token is returned here once and cannot be recovered
        from stored state afterwards.

        Raises:
            TokenEntropyError: Generated hashes collided twice in a row
            StoreUnavailable: Transient store failure
        """
        raw_token, credential = self._insert_credential(subject_id)
        access_token = self.access_tokens.issue(subject_id, display_name, claims)

        self._audit(subject_id, SESSION_ISSUED)
        logger.info(
            "Session issued",
            extra={"user_id": subject_id, "credential_id": credential.id}
        )
        return TokenPair(access_token=access_token, refresh_token=raw_token)

    def rotate(self, presented_token: str) -> RotationResult:
        """
        Exchange a usable refresh token for a new token pair.

        Flow:
        1. Look up a usable credential by hash
        2. Re-resolve the subject so claims reflect current roles
        3. Conditionally mark the old credential rotated (single winner)
        4. Insert the successor and mint the access token

        Returns:
            RotationResult with tokens, or error INVALID_OR_EXPIRED_TOKEN

        Raises:
            StoreUnavailable: Transient store failure, safe to retry
        """
        now = self.clock.now()
        current = self.store.find_usable_by_hash(hash_token(presented_token), now)
        if current is None:
            logger.info("Refresh rejected - token not usable")
            return RotationResult.invalid()

        user = self.users.find_user(current.subject_id)
        if user is None or not user.is_active:
            logger.info(
                "Refresh rejected - subject missing or inactive",
                extra={"user_id": current.subject_id}
            )
            return RotationResult.invalid()

        raw_token = self.token_generator()
        new_hash = hash_token(raw_token)

        # Revoke first: a crash before the insert leaves no live credential behind
        if not self.store.atomic_mark_rotated(current.id, new_hash, now):
            logger.info(
                "Refresh rejected - lost rotation race",
                extra={"user_id": current.subject_id, "credential_id": current.id}
            )
            return RotationResult.invalid()

        try:
            successor = self.store.insert(
                subject_id=current.subject_id,
                token_hash=new_hash,
                created_at=now,
                expires_at=now + self.refresh_window
            )
        except DuplicateTokenHash as exc:
            # The old credential is already linked to new_hash; no retry with another value
            logger.critical(
                "Successor refresh token hash collided",
                extra={"user_id": current.subject_id, "credential_id": current.id}
            )
            raise TokenEntropyError("successor refresh token hash collided") from exc

        access_token = self.access_tokens.issue(user.id, user.display_name, user.claims)

        self._audit(current.subject_id, SESSION_ROTATED, f"old_credential_id={current.id}")
        logger.info(
            "Session rotated",
            extra={
                "user_id": current.subject_id,
                "credential_id": current.id,
                "successor_id": successor.id,
                "token_hash": short_hash(new_hash)
            }
        )
        return RotationResult.success(TokenPair(access_token=access_token, refresh_token=raw_token))

    def revoke(self, presented_token: str) -> None:
        """
        End the session behind a refresh token (logout).

        Always succeeds from the caller's point of view: unknown, expired and
        already revoked tokens are indistinguishable from a fresh revocation.

        Raises:
            StoreUnavailable: Transient store failure
        """
        token_hash = hash_token(presented_token)
        if not self.store.atomic_mark_revoked(token_hash, self.clock.now()):
            logger.debug("Revoke was a no-op")
            return

        credential = self.store.get_by_hash(token_hash)
        subject_id = credential.subject_id if credential else None
        self._audit(subject_id, SESSION_REVOKED)
        logger.info("Session revoked", extra={"user_id": subject_id})

    def revoke_all_for_subject(self, subject_id: int) -> int:
        """
        Revoke every usable refresh token of a subject (logout everywhere).

        Returns:
            Number of sessions ended
        """
        count = self.store.revoke_all_for_subject(subject_id, self.clock.now())
        if count:
            self._audit(subject_id, SESSIONS_REVOKED_FOR_SUBJECT, f"count={count}")
        logger.info(
            "All sessions revoked for user",
            extra={"user_id": subject_id, "count": count}
        )
        return count

    def _insert_credential(self, subject_id: int) -> tuple[str, RefreshCredential]:
        now = self.clock.now()
        # One retry with a fresh token; a second collision means the random source is broken
        for attempt in (1, 2):
            raw_token = self.token_generator()
            try:
                credential = self.store.insert(
                    subject_id=subject_id,
                    token_hash=hash_token(raw_token),
                    created_at=now,
                    expires_at=now + self.refresh_window
                )
                return raw_token, credential
            except DuplicateTokenHash:
                logger.error(
                    "Refresh token hash collision",
                    extra={"user_id": subject_id, "attempt": attempt}
                )

        logger.critical("Refresh token hash collided twice; refusing to continue")
        raise TokenEntropyError("refresh token hash collided twice in a row")

    def _audit(self, subject_id: Optional[int], event: str, detail: Optional[str] = None) -> None:
        try:
            self.audit.record(subject_id, event, detail)
        except Exception:
            # audit is fire-and-forget; the session operation already committed
            logger.exception("Audit sink raised", extra={"event_type": event})
