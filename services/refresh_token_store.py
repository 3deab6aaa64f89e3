"""
Persistence boundary for refresh credentials.

``RefreshTokenStore`` is the contract the session service depends on. Every
state change is a single conditional write: a credential can only move
from usable (``revoked_at IS NULL AND expires_at > now``) to revoked once,
whichever caller commits first. Losing that race is reported as ``False``,
never as an error.

Two implementations:
- ``SqlAlchemyRefreshTokenStore``: ``UPDATE ... WHERE revoked_at IS NULL``
  and the affected-row count.
- ``InMemoryRefreshTokenStore``: the same semantics behind a lock, for unit
  tests and single-process tooling.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterator, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from core.clock import as_utc
from models.refresh_tokens import RefreshToken
from services.errors import DuplicateTokenHash, StoreUnavailable
from utils.logger import get_logger, short_hash

logger = get_logger(__name__)


@dataclass(frozen=True)
class RefreshCredential:
    """
    Read-model of a refresh token row.

    :ivar id: Opaque identifier assigned by the store.
    :ivar subject_id: Owning user id.
    :ivar token_hash: SHA-256 hex of the raw token.
    :ivar created_at: Creation time (UTC).
    :ivar expires_at: Absolute expiry (UTC), fixed at creation.
    :ivar revoked_at: Set once on rotation or revocation.
    :ivar replaced_by_token_hash: Successor hash when rotated.
    """

    id: str
    subject_id: int
    token_hash: str
    created_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    replaced_by_token_hash: str | None = None

    def is_usable(self, now: datetime) -> bool:
        return self.revoked_at is None and self.expires_at > as_utc(now)


class RefreshTokenStore(Protocol):
    """
    Store contract for refresh credentials.

    ``now`` is supplied by the caller's clock; the comparison against it
    happens inside the store, in the same statement as the read or write.
    """

    def insert(
        self,
        *,
        subject_id: int,
        token_hash: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> RefreshCredential:
        """
        Persist a new usable credential.

        :raises DuplicateTokenHash: ``token_hash`` already exists.
        :raises StoreUnavailable: transient store failure.
        """

    def find_usable_by_hash(self, token_hash: str, now: datetime) -> RefreshCredential | None:
        """Return the credential only if it is unrevoked and unexpired at ``now``."""

    def atomic_mark_rotated(
        self,
        credential_id: str,
        replacement_token_hash: str,
        now: datetime,
    ) -> bool:
        """
        Set ``revoked_at`` and ``replaced_by_token_hash`` iff still usable.

        :returns: ``False`` when another caller rotated or revoked it first.
        """

    def atomic_mark_revoked(self, token_hash: str, now: datetime) -> bool:
        """Set ``revoked_at`` iff still usable. :returns: True if a row changed."""

    def revoke_all_for_subject(self, subject_id: int, now: datetime) -> int:
        """Revoke every usable credential of a subject. :returns: rows changed."""

    def get_by_hash(self, token_hash: str) -> RefreshCredential | None:
        """Fetch a credential regardless of state (forensics, chain walks)."""


def walk_chain(store: RefreshTokenStore, token_hash: str) -> Iterator[RefreshCredential]:
    """
    Follow ``replaced_by_token_hash`` links starting at ``token_hash``.

    Yields each credential in rotation order, ending with the newest one.
    """
    seen = set()
    current = store.get_by_hash(token_hash)
    while current is not None and current.token_hash not in seen:
        seen.add(current.token_hash)
        yield current
        if current.replaced_by_token_hash is None:
            break
        current = store.get_by_hash(current.replaced_by_token_hash)


def _to_credential(row: RefreshToken) -> RefreshCredential:
    return RefreshCredential(
        id=row.id,
        subject_id=row.user_id,
        token_hash=row.token_hash,
        created_at=as_utc(row.created_at),
        expires_at=as_utc(row.expires_at),
        revoked_at=as_utc(row.revoked_at) if row.revoked_at else None,
        replaced_by_token_hash=row.replaced_by_token_hash,
    )


class SqlAlchemyRefreshTokenStore:
    """Relational store; each write is one statement followed by a commit."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except IntegrityError as exc:
            self.db.rollback()
            if "token_hash" in str(exc.orig):
                raise DuplicateTokenHash("refresh token hash already exists") from exc
            raise
        except (DBAPIError, PoolTimeoutError) as exc:
            self.db.rollback()
            logger.error(
                "Refresh token store unavailable",
                extra={"error_type": type(exc).__name__}
            )
            raise StoreUnavailable(str(exc)) from exc

    def insert(self, *, subject_id, token_hash, created_at, expires_at):
        row = RefreshToken(
            user_id=subject_id,
            token_hash=token_hash,
            created_at=created_at,
            expires_at=expires_at
        )
        with self._translate_errors():
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)

        logger.debug(
            "Refresh token stored",
            extra={"credential_id": row.id, "token_hash": short_hash(token_hash)}
        )
        return _to_credential(row)

    def find_usable_by_hash(self, token_hash, now):
        stmt = select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > now
        )
        with self._translate_errors():
            row = self.db.execute(stmt).scalar_one_or_none()
        return _to_credential(row) if row else None

    def atomic_mark_rotated(self, credential_id, replacement_token_hash, now):
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.id == credential_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now
            )
            .values(revoked_at=now, replaced_by_token_hash=replacement_token_hash)
            .execution_options(synchronize_session=False)
        )
        with self._translate_errors():
            result = self.db.execute(stmt)
            self.db.commit()
        return result.rowcount == 1

    def atomic_mark_revoked(self, token_hash, now):
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now
            )
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        with self._translate_errors():
            result = self.db.execute(stmt)
            self.db.commit()
        return result.rowcount == 1

    def revoke_all_for_subject(self, subject_id, now):
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.user_id == subject_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now
            )
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        with self._translate_errors():
            result = self.db.execute(stmt)
            self.db.commit()
        return result.rowcount

    def get_by_hash(self, token_hash):
        stmt = select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        with self._translate_errors():
            row = self.db.execute(stmt).scalar_one_or_none()
        return _to_credential(row) if row else None


class InMemoryRefreshTokenStore:
    """
    Process-local store with the same conditional-write semantics.

    .. note::
       A single lock makes each check-and-set indivisible; it does not
       survive restarts and is not shared between processes.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, RefreshCredential] = {}
        self._id_by_hash: dict[str, str] = {}
        self._lock = threading.Lock()

    def insert(self, *, subject_id, token_hash, created_at, expires_at):
        with self._lock:
            if token_hash in self._id_by_hash:
                raise DuplicateTokenHash("refresh token hash already exists")
            credential = RefreshCredential(
                id=str(uuid.uuid4()),
                subject_id=subject_id,
                token_hash=token_hash,
                created_at=as_utc(created_at),
                expires_at=as_utc(expires_at),
            )
            self._by_id[credential.id] = credential
            self._id_by_hash[token_hash] = credential.id
            return credential

    def find_usable_by_hash(self, token_hash, now):
        with self._lock:
            credential = self._get(token_hash)
        if credential is not None and credential.is_usable(now):
            return credential
        return None

    def atomic_mark_rotated(self, credential_id, replacement_token_hash, now):
        with self._lock:
            credential = self._by_id.get(credential_id)
            if credential is None or not credential.is_usable(now):
                return False
            self._by_id[credential_id] = replace(
                credential,
                revoked_at=as_utc(now),
                replaced_by_token_hash=replacement_token_hash,
            )
            return True

    def atomic_mark_revoked(self, token_hash, now):
        with self._lock:
            credential = self._get(token_hash)
            if credential is None or not credential.is_usable(now):
                return False
            self._by_id[credential.id] = replace(credential, revoked_at=as_utc(now))
            return True

    def revoke_all_for_subject(self, subject_id, now):
        with self._lock:
            targets = [
                c for c in self._by_id.values()
                if c.subject_id == subject_id and c.is_usable(now)
            ]
            for credential in targets:
                self._by_id[credential.id] = replace(credential, revoked_at=as_utc(now))
            return len(targets)

    def get_by_hash(self, token_hash):
        with self._lock:
            return self._get(token_hash)

    def all(self) -> list[RefreshCredential]:
        with self._lock:
            return list(self._by_id.values())

    def _get(self, token_hash: str) -> RefreshCredential | None:
        credential_id = self._id_by_hash.get(token_hash)
        return self._by_id.get(credential_id) if credential_id else None
