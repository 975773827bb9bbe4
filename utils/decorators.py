from __future__ import annotations
from functools import wraps
from flask import request, g
from services.guard import authenticate

ACCESS_COOKIE = "access_token"


def bearer_token() -> str | None:
    """Access token from the Authorization header, falling back to the cookie."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(ACCESS_COOKIE)


def jwt_required():
    """Reject the request with 401 unless it carries a valid access token.

    The user id from the token is stored on g.current_user_id; the user row
    is not loaded here.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.current_user_id = authenticate(bearer_token())
            return fn(*args, **kwargs)

        return wrapper

    return decorator
