# Overview: Service-layer operations for identities; users, passwords and roles.

"""
Identity Service

Every record is attributed to the user who wrote it (managerId), and the
role decides what that user can see. Passwords are hashed with bcrypt.

ROLES: "manager" (full access) and "staff" (sales and inventory).
BAN: status "inactive" blocks login and revokes every session of the user.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Session tokens managed separately (see session_service.py)
"""

import re
import secrets
import string

import bcrypt

from ..extensions import db
from ..models import User, ROLES, ROLE_STAFF, USER_STATUSES, STATUS_ACTIVE, STATUS_INACTIVE
from . import session_service
from ..time_utils import utcnow


BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8
GENERATED_PASSWORD_LENGTH = 8

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserValidationError(Exception):
    """Raised when user data fails validation."""
    pass


class UserNotFoundError(Exception):
    """Raised when a user is not found."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash."""
    if not isinstance(password, str) or not isinstance(password_hash, str):
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    """Random initial password handed to a new user by the admin."""
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _normalize_email(email) -> str:
    if not email or not isinstance(email, str):
        raise UserValidationError("email is required")
    email = email.strip().lower()
    if not _EMAIL.match(email):
        raise UserValidationError("email is not valid")
    return email


def _validate_role(role) -> str:
    if role not in ROLES:
        raise UserValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role


def _validate_status(status) -> str:
    if status not in USER_STATUSES:
        raise UserValidationError(f"status must be one of: {', '.join(USER_STATUSES)}")
    return status


def get_user(user_id: str) -> User:
    user = db.session.get(User, user_id) if user_id else None
    if not user:
        raise UserNotFoundError("User not found")
    return user


def find_user_by_email(email: str) -> User | None:
    if not email:
        return None
    return db.session.query(User).filter(User.email == email.strip().lower()).first()


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.name, User.email).all()


def create_user(
    *,
    name: str,
    email: str,
    password: str,
    role: str = ROLE_STAFF,
    status: str = STATUS_ACTIVE,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        UserValidationError: missing name, invalid email/role, email taken
        PasswordValidationError: password too short
    """
    if not name or not str(name).strip():
        raise UserValidationError("name is required")
    email = _normalize_email(email)
    role = _validate_role(role)
    status = _validate_status(status)

    if find_user_by_email(email):
        raise UserValidationError(f"A user with email {email} already exists")

    user = User(
        name=str(name).strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        status=status,
    )
    db.session.add(user)
    db.session.commit()
    return user


def update_user(
    user_id: str,
    *,
    name: str | None = None,
    email: str | None = None,
    role: str | None = None,
    status: str | None = None,
    password: str | None = None,
) -> User:
    """
    Update profile, role, status or password.

    Setting status to "inactive" bans the user; a password change also ends
    every open session of that user.
    """
    user = get_user(user_id)
    revoke_reason = None

    if name is not None:
        if not str(name).strip():
            raise UserValidationError("name cannot be blank")
        user.name = str(name).strip()

    if email is not None:
        email = _normalize_email(email)
        other = find_user_by_email(email)
        if other and other.id != user.id:
            raise UserValidationError(f"A user with email {email} already exists")
        user.email = email

    if role is not None:
        user.role = _validate_role(role)

    if status is not None:
        status = _validate_status(status)
        if status == STATUS_INACTIVE and user.status != STATUS_INACTIVE:
            revoke_reason = "User banned"
        user.status = status

    if password:
        user.password_hash = hash_password(password)
        revoke_reason = revoke_reason or "Password changed"

    db.session.commit()

    if revoke_reason:
        session_service.revoke_all_user_sessions(user.id, reason=revoke_reason)

    return user


def ban_user(user_id: str) -> User:
    return update_user(user_id, status=STATUS_INACTIVE)


def delete_user(user_id: str) -> None:
    user = get_user(user_id)
    db.session.delete(user)
    db.session.commit()


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid and the account is active, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = find_user_by_email(email) if isinstance(email, str) else None
    if not user or user.status != STATUS_ACTIVE:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def change_password(user_id: str, current_password: str, new_password: str) -> User:
    """Self-service password change; the current password must match."""
    user = get_user(user_id)
    if not current_password or not verify_password(current_password, user.password_hash):
        raise PasswordValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
    return user
