"""
Error types for the session services.

Logical outcomes (an unusable refresh token) are returned as values, see
services.session_service.RotationResult. Only infrastructure and fatal
conditions are raised.
"""


class SessionStoreError(Exception):
    """Base class for refresh token store failures."""


class StoreUnavailable(SessionStoreError):
    """Transient store failure (connection loss, timeout). Safe to retry with backoff."""


class DuplicateTokenHash(SessionStoreError):
    """A refresh token hash collided with an existing row. Internal only."""


class TokenEntropyError(RuntimeError):
    """
    Fatal: the token source produced a colliding value twice in a row.

    Indicates a broken or compromised random source; never retried.
    """
