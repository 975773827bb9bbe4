from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from models.schemas.user import UserOutSchema, UserUpdateSchema
from services import sessions
from utils.decorators import jwt_required

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()
user_update_schema = UserUpdateSchema()


@bp.get("/users/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User no longer exists
    """
    user = sessions.get_user(g.current_user_id)
    return jsonify(
        {
            "data": user_out_schema.dump(user)
        }
    ), 200


@bp.patch("/users/me")
@jwt_required()
def update_me():
    """
    Update display name and/or email of the current user.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             full_name: { type: string }
             email: { type: string }
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      409: { description: Email already registered }
      422: { description: Validation error }
    """
    payload = request.get_json(silent=True) or {}
    data = user_update_schema.load(payload)
    user = sessions.update_details(
        g.current_user_id,
        full_name=data.get("full_name"),
        email=data.get("email"),
    )
    return jsonify(
      {
        "data": user_out_schema.dump(user),
        "message": "Account details updated successfully"
      }
    ), 200
