"""User model module.

This module defines the User model for library members, including
registration, authentication and role checks.

Class Hierarchy:
    User (base class) - Students borrowing books
    └── Admin - Administrators managing the catalog (admin.py)
"""
import logging
import sqlite3
from typing import Optional, Dict, Any

from flask import current_app
from werkzeug.security import generate_password_hash, check_password_hash

from library_api.errors import ConflictError, InvalidCredentialsError, ValidationError
from library_api.models.database import get_db
from library_api.utils.dates import to_timestamp, utcnow
from library_api.utils.validators import UserValidator

logger = logging.getLogger(__name__)

ROLES = ('student', 'admin')


class User:
    """Represents a library user (student or admin).

    Attributes:
        id (int): Unique user identifier.
        full_name (str): Display name.
        email (str): User's email address (unique, case-insensitive).
        role (str): User role ('student', 'admin').
        created_at (str): Registration timestamp.
        password_hash (str): Hashed password (only loaded when needed).
    """

    def __init__(self, id: int, full_name: str, email: str, role: str,
                 created_at: str, password_hash: Optional[str] = None,
                 **kwargs) -> None:
        """Initialize a User instance.

        Args:
            id: Unique identifier.
            full_name: Display name.
            email: Email address.
            role: User role.
            created_at: Registration timestamp.
            password_hash: Hashed password (optional).
            **kwargs: Additional fields from database queries (ignored).
        """
        self.id = id
        self.full_name = full_name
        self.email = email
        self.role = role
        self.created_at = created_at
        self.password_hash = password_hash

    @staticmethod
    def get_by_id(user_id: int) -> Optional['User']:
        """Retrieve a user by their ID.

        Args:
            user_id: The unique identifier of the user.

        Returns:
            User or Admin instance based on role. None if not found.
        """
        db = get_db()
        row = db.execute(
            'SELECT id, full_name, email, role, created_at FROM users WHERE id = ?',
            (user_id,)
        ).fetchone()
        if row:
            return get_user_by_role(dict(row))
        return None

    @staticmethod
    def get_by_email(email: str) -> Optional['User']:
        """Retrieve a user by their email address.

        Args:
            email: The email address to search for (case-insensitive).

        Returns:
            User or Admin instance with password hash if found, None otherwise.
        """
        if not isinstance(email, str):
            return None
        db = get_db()
        row = db.execute(
            'SELECT id, full_name, email, role, created_at, password_hash '
            'FROM users WHERE email = ?',
            (email.strip(),)
        ).fetchone()
        if row:
            return get_user_by_role(dict(row))
        return None

    @staticmethod
    def create(full_name: str, email: str, password: str, role: str = 'student') -> 'User':
        """Create a new user account.

        Args:
            full_name: Display name.
            email: Email address (must be unique).
            password: Plain text password (will be hashed).
            role: User role (default: 'student').

        Returns:
            The new User instance.

        Raises:
            ValidationError: If any field is missing or malformed.
            ConflictError: If the email is already registered.
        """
        full_name = UserValidator.validate_full_name(full_name)
        email = UserValidator.validate_email(email)
        UserValidator.validate_password(password, current_app.config['PASSWORD_MIN_LENGTH'])
        if role not in ROLES:
            role = 'student'

        if User.get_by_email(email):
            raise ConflictError('Email already registered')

        db = get_db()
        try:
            cursor = db.execute('''
                INSERT INTO users (full_name, email, password_hash, role, created_at)
                VALUES (?, ?, ?, ?, ?)
            ''', (full_name, email, generate_password_hash(password), role,
                  to_timestamp(utcnow())))
            db.commit()
        except sqlite3.IntegrityError:
            # lost a race with a concurrent registration for the same email
            db.rollback()
            raise ConflictError('Email already registered')

        logger.info('Registered %s user %s', role, email)
        return User.get_by_id(cursor.lastrowid)

    def check_password(self, password: str) -> bool:
        """Verify if the provided password is correct.

        Args:
            password: Plain text password to verify.

        Returns:
            True if password matches, False otherwise.
        """
        if not self.password_hash or not isinstance(password, str) or not password:
            return False
        return check_password_hash(self.password_hash, password)

    @staticmethod
    def login(email: str, password: str) -> 'User':
        """Authenticate user with email and password.

        Args:
            email: User's email address.
            password: Plain text password to verify.

        Returns:
            The authenticated User.

        Raises:
            ValidationError: Email or password is not a string.
            InvalidCredentialsError: Unknown email or wrong password.
        """
        for value in (email, password):
            if value is not None and not isinstance(value, str):
                raise ValidationError('Email and password must be strings')
        user = User.get_by_email(email) if email else None
        if not user:
            logger.warning('Login failed for unknown email %s', email)
            raise InvalidCredentialsError('User not found')
        if not user.check_password(password):
            logger.warning('Login failed for %s: wrong password', email)
            raise InvalidCredentialsError('Invalid password')
        logger.info('User %s (%s) logged in', user.email, user.role)
        return user

    # ==================== PERMISSION CHECK METHODS ====================

    def is_admin(self) -> bool:
        """Check if user has admin privileges."""
        return self.role == 'admin'

    def to_dict(self) -> Dict[str, Any]:
        """Convert user to dictionary representation.

        Note: Does not include the password hash.
        """
        return {
            'id': self.id,
            'full_name': self.full_name,
            'email': self.email,
            'role': self.role,
        }


# ==================== HELPER FUNCTIONS ====================

def _get_admin_class():
    """Lazy import Admin class to avoid circular imports."""
    from library_api.models.admin import Admin
    return Admin


def get_user_by_role(row_data: dict) -> 'User':
    """Factory function to create the User subclass matching the role.

    Args:
        row_data: Dictionary containing user data from database.

    Returns:
        User or Admin instance based on role.
    """
    if row_data.get('role') == 'admin':
        Admin = _get_admin_class()
        return Admin(**row_data)
    return User(**row_data)
