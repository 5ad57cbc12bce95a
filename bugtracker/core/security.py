"""
Password hashing for user accounts
"""

from passlib.context import CryptContext

from bugtracker.core.config import settings


password_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__default_rounds=settings.password_hash_rounds,
    pbkdf2_sha256__min_rounds=settings.password_hash_rounds,
)


def hash_password(plain: str) -> str:
    return password_context.hash(plain)


def verify_and_rehash(plain: str, hashed: str) -> tuple[bool, str | None]:
    """
    Check a login password against its stored hash.

    Returns ``(valid, new_hash)``; ``new_hash`` is set only when the stored
    hash was produced with outdated parameters and should be replaced.
    """
    return password_context.verify_and_update(plain, hashed)
