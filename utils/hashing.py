import hashlib
from passlib.context import CryptContext

bcrypt_context = CryptContext(schemes=['bcrypt'], deprecated='auto')

def get_password_hash(password: str):
    # Bcrypt has a 72-byte limit, truncate if necessary
    return bcrypt_context.hash(password[:72])


def verify_password(plain_password: str, hashed_password: str):
    return bcrypt_context.verify(plain_password[:72], hashed_password)


def hash_token(raw_token: str) -> str:
    """
    One-way lookup key for a refresh token (SHA-256 hex, 64 chars).

    No salt: the raw token already carries full entropy and the hash has to
    be deterministic so credentials can be found by it.
    """
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
