"""
Session lifecycle: register, login, refresh, logout, change_password.

One refresh token is active per user at any time. It is stored verbatim on
the User row, overwritten on every login and refresh (rotation) and cleared
on logout. A presented refresh token is only honoured while it equals the
stored value.

All functions need an application context (token settings live in
current_app.config) and commit through models.storage; a failed commit rolls
back so no token is persisted unless the whole operation succeeds.
"""
from __future__ import annotations

import hmac
import logging
from typing import Tuple

from flask import current_app

from models import storage
from models.db_storage import normalize_handle
from models.user import User
from utils.errors import Conflict, InvalidCredentials, InvalidToken, NotFound
from utils.security import (
    burn_password_check,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    needs_rehash,
    verify_password,
)

logger = logging.getLogger(__name__)


def _issue_pair(user: User) -> Tuple[str, str]:
    """Mint both tokens and make the refresh token the user's active one."""
    access_token = create_access_token(user.id)
    refresh_token = create_refresh_token(user.id)
    user.refresh_token = refresh_token
    storage.new(user)
    storage.save()
    return access_token, refresh_token


def get_user(user_id: str) -> User:
    user = storage.get(User, user_id)
    if not user:
        raise NotFound()
    return user


def register(username: str, email: str, full_name: str, password: str) -> User:
    """Create a new identity with no active session."""
    username = normalize_handle(username)
    email = normalize_handle(email)
    if storage.find_user_by_username(username) or storage.find_user_by_email(email):
        raise Conflict("User already exists with this email or username")

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
    )
    storage.new(user)
    storage.save()
    logger.info("Registered user %s", user.id)
    return user


def login(identifier: str, password: str) -> Tuple[User, str, str]:
    """
    Verify credentials and open a session.

    Unknown identifier and wrong password raise the same InvalidCredentials.
    Any session previously open for this user is superseded.
    """
    user = storage.find_user_by_identifier(identifier)
    if user is None:
        burn_password_check(password)
        logger.info("Login failed: unknown identifier")
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        logger.info("Login failed for user %s: bad password", user.id)
        raise InvalidCredentials()

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)

    access_token, refresh_token = _issue_pair(user)
    logger.info("User %s logged in", user.id)
    return user, access_token, refresh_token


def logout(user_id: str) -> None:
    """Clear the stored refresh token. Safe to call without an active session."""
    user = storage.get(User, user_id)
    if user is None or not user.has_session:
        return
    user.refresh_token = None
    storage.new(user)
    storage.save()
    logger.info("User %s logged out", user_id)


def refresh(presented_token: str) -> Tuple[str, str]:
    """Exchange the active refresh token for a new token pair (rotation)."""
    claims = decode_token(presented_token, expected_type="refresh")

    user = storage.get(User, claims["sub"])
    if user is None:
        logger.info("Refresh rejected: token subject does not exist")
        raise InvalidToken()

    stored = user.refresh_token
    if stored is None or not hmac.compare_digest(stored.encode(), presented_token.encode()):
        logger.info("Refresh rejected for user %s: session superseded or revoked", user.id)
        raise InvalidToken()

    access_token, refresh_token = _issue_pair(user)
    logger.debug("Rotated refresh token for user %s", user.id)
    return access_token, refresh_token


def change_password(user_id: str, old_password: str, new_password: str) -> None:
    """
    Re-verify the current password, then store a hash of the new one.

    Other sessions stay valid unless REVOKE_SESSIONS_ON_PASSWORD_CHANGE is set.
    """
    user = storage.get(User, user_id)
    if user is None:
        # an authenticated caller always has a row
        logger.error("Password change for missing user %s", user_id)
        raise NotFound()

    if not verify_password(old_password, user.password_hash):
        logger.info("Password change rejected for user %s: bad password", user_id)
        raise InvalidCredentials("Invalid old password")

    user.password_hash = hash_password(new_password)
    if current_app.config.get("REVOKE_SESSIONS_ON_PASSWORD_CHANGE"):
        user.refresh_token = None
    storage.new(user)
    storage.save()
    logger.info("Password changed for user %s", user_id)


def update_details(user_id: str, full_name: str | None = None, email: str | None = None) -> User:
    """Update the mutable profile fields."""
    user = get_user(user_id)
    email = normalize_handle(email)
    if email is not None and email != user.email:
        if storage.find_user_by_email(email):
            raise Conflict("Email already registered")
        user.email = email
    if full_name is not None:
        user.full_name = full_name
    storage.new(user)
    storage.save()
    return user
