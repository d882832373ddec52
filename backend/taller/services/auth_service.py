# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every transition is attributed to a user, and the user's area claim is
what the workflow services authorize against. Uses bcrypt for password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters with upper, lower, digit and special char
- Session tokens managed separately (see session_service.py)
- Inactive users cannot authenticate
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..enums import Area, parse_enum
from ..errors import NotFoundError, ValidationError
from ..models import User
from ..time_utils import utcnow
from . import session_service


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt. Password is validated for strength before hashing."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def create_user(
    username: str,
    password: str,
    name: str,
    area,
    can_approve_completion: bool = False,
) -> User:
    """
    Create a workshop user with a bcrypt password hash.

    Raises:
        ValidationError: username taken, blank name, unknown area
        PasswordValidationError: weak password
    """
    username = (username or "").strip()
    name = (name or "").strip()
    if not username:
        raise ValidationError("username is required")
    if not name:
        raise ValidationError("name is required")
    area = parse_enum(Area, area, "area")

    existing = db.session.query(User.id).filter_by(username=username).first()
    if existing:
        raise ValidationError(f"Username {username!r} already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        name=name,
        area=area,
        can_approve_completion=bool(can_approve_completion),
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Return the user when credentials match an active account, else None.

    Updates last_login_at on success (caller commits).
    """
    user = db.session.query(User).filter_by(username=(username or "").strip()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    user.last_login_at = utcnow()
    db.session.flush()
    return user


def list_users(area=None) -> list[User]:
    query = db.session.query(User)
    if area is not None:
        query = query.filter(User.area == parse_enum(Area, area, "area"))
    return query.order_by(User.area, User.username).all()


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def deactivate_user(user_id: int, actor) -> tuple[User, int]:
    """
    Deactivate a user account and revoke all of its sessions.

    Users are never hard deleted: orders, transfers and history rows keep
    pointing at them. Returns (user, sessions_revoked).

    Raises:
        NotFoundError: unknown user
        ValidationError: already inactive, or actor deactivating itself
    """
    user = _get_user(user_id)
    if not user.is_active:
        raise ValidationError(f"User {user.username} is already deactivated")
    if user.id == actor.id:
        raise ValidationError("Cannot deactivate your own account")

    user.is_active = False
    revoked = session_service.revoke_all_user_sessions(user.id, reason="Account deactivated by admin")
    db.session.flush()
    return user, revoked


def reset_user_password(user_id: int, new_password: str) -> tuple[User, int]:
    """
    Replace a user's password and revoke all of its sessions.

    Returns (user, sessions_revoked). Raises PasswordValidationError for a
    weak password.
    """
    user = _get_user(user_id)
    if not new_password:
        raise ValidationError("new_password is required")

    user.password_hash = hash_password(new_password)
    revoked = session_service.revoke_all_user_sessions(user.id, reason="Password reset by admin")
    db.session.flush()
    return user, revoked
