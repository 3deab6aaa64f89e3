import secrets
from core.config import settings

MIN_TOKEN_BYTES = 32


def generate_refresh_token(num_bytes: int | None = None) -> str:
    """
    Opaque refresh token from the OS CSPRNG, base64url encoded.

    Args:
        num_bytes: Entropy in bytes (default: settings.REFRESH_TOKEN_BYTES)

    Raises:
        ValueError: If fewer than 32 bytes are requested
    """
    if num_bytes is None:
        num_bytes = settings.REFRESH_TOKEN_BYTES

    if num_bytes < MIN_TOKEN_BYTES:
        raise ValueError(f"Refresh tokens need at least {MIN_TOKEN_BYTES} bytes of entropy")

    return secrets.token_urlsafe(num_bytes)
