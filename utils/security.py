"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT access/refresh token creation and verification via PyJWT
- JTI generation so two tokens minted in the same second never collide

Access and refresh tokens are signed with different secrets, so a leaked
access-signing key cannot be used to forge refresh tokens.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError, VerificationError

from flask import current_app

from utils.errors import InvalidToken, IntegrityFailure

logger = logging.getLogger(__name__)

ph = PasswordHasher()

# Used to spend the same argon2 work when the identifier is unknown.
_DUMMY_HASH = ph.hash("not-a-real-password")

_SECRET_KEYS = {
    "access": "ACCESS_TOKEN_SECRET",
    "refresh": "REFRESH_TOKEN_SECRET",
}
_EXPIRY_KEYS = {
    "access": "ACCESS_TOKEN_EXPIRES",
    "refresh": "REFRESH_TOKEN_EXPIRES",
}


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2 (random salt embedded in the output)
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against a stored argon2 hash.

    Returns False on mismatch. Raises IntegrityFailure when the stored hash
    cannot be parsed, which means the record is corrupted.
    """
    try:
        return ph.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError) as exc:
        logger.error("Stored password hash is unreadable: %s", exc.__class__.__name__)
        raise IntegrityFailure() from None


def burn_password_check(password: str) -> None:
    """Run a verify against a throwaway hash (unknown identifier path)."""
    try:
        ph.verify(_DUMMY_HASH, password)
    except VerifyMismatchError:
        pass


def needs_rehash(password_hash: str) -> bool:
    return ph.check_needs_rehash(password_hash)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _create_token(subject: str, token_type: str) -> str:
    now = _now()
    exp = now + current_app.config[_EXPIRY_KEYS[token_type]]
    payload = {
        "iss": current_app.config.get("JWT_ISSUER", "identity-core"),
        "sub": str(subject),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "type": token_type,
        "jti": generate_jti(),
    }
    return jwt.encode(
        payload,
        current_app.config[_SECRET_KEYS[token_type]],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def create_access_token(subject: str) -> str:
    return _create_token(subject, "access")


def create_refresh_token(subject: str) -> str:
    return _create_token(subject, "refresh")


def decode_token(token: str, expected_type: str = "access") -> Dict[str, Any]:
    """
    Decode and validate a JWT with the secret for expected_type ("access" or
    "refresh"). Raises InvalidToken on expiry, bad signature, bad structure or
    wrong token type; the reason is only logged.
    """
    if expected_type not in _SECRET_KEYS:
        raise ValueError(f"Unknown token type: {expected_type}")
    if not token:
        raise InvalidToken()
    try:
        decoded = jwt.decode(
            token,
            current_app.config[_SECRET_KEYS[expected_type]],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected %s token: expired", expected_type)
        raise InvalidToken() from None
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected %s token: %s", expected_type, exc)
        raise InvalidToken() from None

    if decoded.get("type") != expected_type:
        logger.debug("Rejected token: expected %s, got %s", expected_type, decoded.get("type"))
        raise InvalidToken()
    return decoded
