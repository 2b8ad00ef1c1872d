# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/hydropak/routes/auth.py
"""
Authentication API routes

- POST /api/auth/login     {email, password} -> {token, user}
- POST /api/auth/register  {name, email, password} -> {token, user}
- GET  /api/auth/me        -> current user

Tokens are stateless JWTs; there is no server-side session or logout.
"""

from flask import Blueprint, request, jsonify, g

from ..services import auth_service
from ..services.auth_service import AuthError
from ..validation import ValidationError, ConflictError, require_json_object
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user) -> dict:
    return {
        "token": auth_service.issue_token(user),
        "user": {"id": user.id, "email": user.email, "name": user.name, "role": user.role},
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email + password.

    In dev mode an empty user table is seeded with the default admin first,
    so a fresh install can always log in.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        user = auth_service.authenticate(data.get("email"), data.get("password"))
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except AuthError:
        return jsonify({"error": "Invalid credentials"}), 401

    return jsonify(_session_payload(user)), 200


@auth_bp.post("/register")
def register_route():
    try:
        data = require_json_object(request.get_json(silent=True))
        user = auth_service.register_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
        )
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(_session_payload(user)), 201


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
