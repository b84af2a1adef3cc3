# Overview: Password hashing and credential checks for admins, managers, and superadmins.

"""
Credential handling.

Passwords are hashed with bcrypt (cost factor 12). Lookups are by email,
case-insensitive. This module only answers "do these credentials match";
status checks (suspended, locked) belong to session_service.
"""

import re

import bcrypt

from ..errors import ValidationError
from ..extensions import db
from ..models import Admin, Manager, SuperAdmin

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def validate_password_strength(password: str) -> None:
    """
    Minimum 8 characters with at least one letter and one digit.

    Raises ValidationError if requirements not met.
    """
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[A-Za-z]", password):
        raise ValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one digit")


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValidationError("A valid email is required")
    return value


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12 (strength validated first)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def _check_credentials(model, email: str, password: str):
    try:
        email = normalize_email(email)
    except ValidationError:
        return None
    principal = db.session.query(model).filter(db.func.lower(model.email) == email).first()
    if principal is None or not verify_password(password, principal.password_hash):
        return None
    return principal


def check_admin_credentials(email: str, password: str) -> Admin | None:
    return _check_credentials(Admin, email, password)


def check_manager_credentials(email: str, password: str) -> Manager | None:
    return _check_credentials(Manager, email, password)


def _ensure_email_free(email: str) -> None:
    for model in (SuperAdmin, Admin, Manager):
        if db.session.query(model.id).filter(db.func.lower(model.email) == email).first():
            raise ValidationError("Email already in use")


def create_superadmin(name: str, email: str, password: str) -> SuperAdmin:
    email = normalize_email(email)
    _ensure_email_free(email)
    superadmin = SuperAdmin(name=name, email=email, password_hash=hash_password(password))
    db.session.add(superadmin)
    db.session.commit()
    return superadmin


def create_admin(name: str, email: str, password: str) -> Admin:
    email = normalize_email(email)
    _ensure_email_free(email)
    admin = Admin(name=name, email=email, password_hash=hash_password(password))
    db.session.add(admin)
    db.session.commit()
    return admin


def create_manager(admin_id: int, name: str, email: str, password: str) -> Manager:
    if db.session.get(Admin, admin_id) is None:
        raise ValidationError("Admin not found")
    email = normalize_email(email)
    _ensure_email_free(email)
    manager = Manager(admin_id=admin_id, name=name, email=email, password_hash=hash_password(password))
    db.session.add(manager)
    db.session.commit()
    return manager


def set_password(principal, new_password: str) -> None:
    principal.password_hash = hash_password(new_password)
    db.session.commit()
