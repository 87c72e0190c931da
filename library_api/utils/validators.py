import re
from typing import Any, Dict, Optional

from library_api.errors import ValidationError

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


class UserValidator:
    """Registration input checks. Raise ValidationError on the first problem."""

    @staticmethod
    def validate_email(email: Optional[str]) -> str:
        if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
            raise ValidationError('Please enter a valid email address')
        return email.strip()

    @staticmethod
    def validate_password(password: Optional[str], min_length: int = 8) -> str:
        if password is not None and not isinstance(password, str):
            raise ValidationError('Password must be a string')
        if not password or len(password) < min_length:
            raise ValidationError(f'Password must be at least {min_length} characters')
        # at least one letter and one digit
        if not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
            raise ValidationError('Password must contain letters and numbers')
        return password

    @staticmethod
    def validate_full_name(full_name: Optional[str]) -> str:
        if not isinstance(full_name, str) or not full_name.strip():
            raise ValidationError('Full name is required')
        return full_name.strip()


class BookValidator:

    @staticmethod
    def _text(data: Dict[str, Any], key: str, required: bool = False) -> Optional[str]:
        value = data.get(key)
        if value is None:
            if required:
                raise ValidationError(f'{key.capitalize()} is required')
            return None
        if not isinstance(value, str):
            raise ValidationError(f'{key.capitalize()} must be a string')
        value = value.strip()
        if required and not value:
            raise ValidationError(f'{key.capitalize()} is required')
        return value or None

    @staticmethod
    def _flag(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return value != 0
        if isinstance(value, str) and value.lower() in ('true', '1', 'yes'):
            return True
        if isinstance(value, str) and value.lower() in ('false', '0', 'no'):
            return False
        raise ValidationError('Available must be true or false')

    @staticmethod
    def _copies(value: Any) -> int:
        try:
            copies = int(value)
        except (TypeError, ValueError):
            raise ValidationError('Copies must be a whole number')
        if copies < 1:
            raise ValidationError('Copies must be at least 1')
        return copies

    @staticmethod
    def clean(data: Optional[Dict[str, Any]], available_default: bool = True) -> Dict[str, Any]:
        """Normalize a create/update payload.

        Title and author are required. ``available`` falls back to
        ``available_default``; ``copies`` and ``location`` are optional.
        """
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')
        fields = {
            'title': BookValidator._text(data, 'title', required=True),
            'author': BookValidator._text(data, 'author', required=True),
            'isbn': BookValidator._text(data, 'isbn'),
            'category': BookValidator._text(data, 'category'),
            'available': BookValidator._flag(data.get('available', available_default)),
            'location': BookValidator._text(data, 'location'),
        }
        if data.get('copies') is not None:
            fields['copies'] = BookValidator._copies(data['copies'])
        return fields
