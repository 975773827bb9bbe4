"""
Authorization guard.

authenticate() checks an access token without touching the database.
authorize_ownership() is what resource mutators call before a write.
"""
from __future__ import annotations

import logging

from utils.errors import Forbidden, InvalidToken, Unauthorized
from utils.security import decode_token

logger = logging.getLogger(__name__)


def authenticate(token: str | None) -> str:
    """Return the user id carried by a valid access token, else raise Unauthorized."""
    if not token:
        raise Unauthorized()
    try:
        claims = decode_token(token, expected_type="access")
    except InvalidToken:
        raise Unauthorized() from None
    return claims["sub"]


def authorize_ownership(resource_owner_id, caller_id) -> None:
    """Ids are compared as strings, so 42 and "42" name the same owner."""
    if resource_owner_id is None or caller_id is None or str(resource_owner_id) != str(caller_id):
        logger.info("Caller %s denied write on resource owned by %s", caller_id, resource_owner_id)
        raise Forbidden()
