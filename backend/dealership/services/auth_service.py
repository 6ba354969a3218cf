# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every write in the system is attributed to a user. Passwords are hashed with
bcrypt; session tokens are managed separately (see session_service.py).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS)
- Minimum 8 characters, must mix letters and digits
- Inactive users cannot authenticate
"""

import logging
import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, Warehouse
from ..models.auth import USER_ROLES
from dealership.time_utils import utcnow


logger = logging.getLogger(__name__)


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserError(Exception):
    """Raised for user management errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    role: str = "admin",
    display_name: str | None = None,
    phone: str | None = None,
    warehouse_id: int | None = None,
    commit: bool = True,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        UserError: unknown role, duplicate username/email, missing warehouse
        PasswordValidationError: weak password
    """
    if role not in USER_ROLES:
        raise UserError(f"Unknown role: {role}", details={"allowed": list(USER_ROLES)})

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise UserError("Username or email already exists")

    if warehouse_id is not None and db.session.get(Warehouse, warehouse_id) is None:
        raise UserError("Warehouse not found")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        display_name=display_name,
        phone=phone,
        warehouse_id=warehouse_id,
    )

    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username (or email) and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def set_user_active(user_id: int, is_active: bool) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise UserError("User not found")
    user.is_active = is_active
    db.session.commit()
    return user
