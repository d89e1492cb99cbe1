# Overview: Service-layer operations for back-office users; password hashing and user creation.

"""
User accounts

WHY: Every write in the back office is attributed to an acting user.
Session handling lives outside this application; requests name their acting
user and this module only owns the accounts themselves.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, mixed case, digit and special character
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..validation import ConflictError, ValidationError


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
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
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def create_user(username: str, email: str, password: str) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises ValidationError for a blank username/email or weak password and
    ConflictError if the username or email is taken.
    """
    username = (username or "").strip()
    email = (email or "").strip()
    if not username or not email:
        raise ValidationError("username and email are required")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
    )

    db.session.add(user)
    db.session.commit()
    return user
