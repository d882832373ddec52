# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login   exchange username/password for a bearer token
- POST /api/auth/logout  revoke the current token
- GET  /api/auth/me      the authenticated user

Accounts are created by admins (CLI: flask users create); there is no
self-registration.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import bearer_token, require_auth
from ..extensions import db
from ..services import auth_service, session_service
from .common import json_body, unexpected_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = json_body()
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            db.session.rollback()
            return jsonify({"error": "Invalid credentials"}), 401

        db.session.commit()
        _, token = session_service.create_session(
            user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({"user": user.to_dict(), "token": token})

    except Exception:
        return unexpected_error("logging in")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    return jsonify({"status": "logged_out"})


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()})
