"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh-token
- POST /auth/logout
- POST /auth/change-password

Tokens are returned in the body and also set as HttpOnly cookies
(access_token, refresh_token). The refresh token may be presented either in
the JSON body or via its cookie; the access token via "Authorization: Bearer"
or its cookie.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import (
    UserCreateSchema,
    UserOutSchema,
    UserLoginSchema,
    ChangePasswordSchema,
    RefreshSchema,
)
from services import sessions
from utils.decorators import jwt_required, ACCESS_COOKIE
from utils.errors import InvalidToken

REFRESH_COOKIE = "refresh_token"

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
user_login_schema = UserLoginSchema()
change_password_schema = ChangePasswordSchema()
refresh_schema = RefreshSchema()


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config.get("COOKIE_SECURE", True),
        "samesite": current_app.config.get("COOKIE_SAMESITE", "Lax"),
    }


def _token_response(payload: dict, access_token: str, refresh_token: str, message: str):
    """Body + cookies for a freshly issued token pair."""
    config = current_app.config
    payload.update(
        {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": int(config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
        }
    )
    resp = jsonify({"data": payload, "message": message})
    options = _cookie_options()
    resp.set_cookie(
        ACCESS_COOKIE, access_token,
        max_age=int(config["ACCESS_TOKEN_EXPIRES"].total_seconds()), **options
    )
    resp.set_cookie(
        REFRESH_COOKIE, refresh_token,
        max_age=int(config["REFRESH_TOKEN_EXPIRES"].total_seconds()), **options
    )
    return resp, 200


@bp.post("/register")
def register():
    """
    register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [username, email, full_name, password]
          properties:
            username: { type: string }
            email: { type: string }
            full_name: { type: string }
            password: { type: string, minLength: 8 }
    responses:
      201:
        description: Created
      409:
        description: Username or email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)
    user = sessions.register(
        username=data["username"],
        email=data["email"],
        full_name=data["full_name"],
        password=data["password"],
    )
    return jsonify(
        {
            "data": user_out_schema.dump(user),
            "message": "User registered successfully",
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login with username or email: returns access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             username: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, sets cookies)
      401:
        description: Invalid credentials
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)
    identifier = next(
        (value for value in (data.get("username"), data.get("email")) if value and value.strip()),
        None,
    )

    user, access_token, refresh_token = sessions.login(identifier, data["password"])
    return _token_response(
        {"user": user_out_schema.dump(user)},
        access_token,
        refresh_token,
        "User logged in successfully",
    )


@bp.post("/refresh-token")
def refresh():
    """
    Use the refresh token to obtain new access and refresh tokens (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refresh_token: { type: string, description: "Falls back to the refresh_token cookie" }
    responses:
      200:
        description: OK (returns a new token pair, sets cookies)
      401:
        description: Invalid, expired, revoked or superseded refresh token
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_schema.load(payload)
    token = data.get("refresh_token") or request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise InvalidToken("Refresh token is required")

    access_token, refresh_token = sessions.refresh(token)
    return _token_response({}, access_token, refresh_token, "Access token refreshed")


@bp.post("/logout")
@jwt_required()
def logout():
    """
    logout: revokes the active refresh token and clears auth cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    sessions.logout(g.current_user_id)
    resp = jsonify({"data": {}, "message": "User logged out successfully"})
    options = _cookie_options()
    resp.delete_cookie(ACCESS_COOKIE, **options)
    resp.delete_cookie(REFRESH_COOKIE, **options)
    return resp, 200


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the current user's password
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [old_password, new_password]
           properties:
             old_password: { type: string }
             new_password: { type: string, minLength: 8 }
    responses:
      200:
        description: Password changed
      401:
        description: Unauthorized or wrong old password
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = change_password_schema.load(payload)
    sessions.change_password(g.current_user_id, data["old_password"], data["new_password"])
    return jsonify({"data": {}, "message": "Password changed successfully"}), 200
