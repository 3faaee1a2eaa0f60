"""Password hashing and symmetric encryption for stored Meta tokens.

Meta access tokens are stored Fernet-encrypted (AES-128-CBC + HMAC-SHA256)
under ``ENCRYPTION_KEY``. Admin passwords are bcrypt hashes.
"""

import logging

import bcrypt
from cryptography.fernet import Fernet, InvalidToken

from polarad_admin.core.config import settings

logger = logging.getLogger(__name__)


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt (12 rounds)."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))


def _get_fernet() -> Fernet:
    if not settings.encryption_key:
        raise RuntimeError("ENCRYPTION_KEY is not set")
    return Fernet(settings.encryption_key.encode())


def encrypt_token(plaintext: str) -> str:
    """Encrypt an access token and return URL-safe base64 ciphertext."""
    return _get_fernet().encrypt(plaintext.encode("utf-8")).decode("utf-8")


def decrypt_token(ciphertext: str | None) -> str | None:
    """Decrypt a stored token. Returns None if empty or undecryptable."""
    if not ciphertext:
        return None
    try:
        return _get_fernet().decrypt(ciphertext.encode("utf-8")).decode("utf-8")
    except (InvalidToken, RuntimeError, ValueError):
        logger.warning("Failed to decrypt stored access token")
        return None
