"""
Models package

Class Hierarchy:
    User (base) - Students borrowing books (user.py)
    └── Admin - Administrators with catalog access (admin.py)
"""
from library_api.models.user import User, get_user_by_role
from library_api.models.admin import Admin
from library_api.models.book import Book
from library_api.models.borrow import Borrow
from library_api.models.database import init_db, get_db, close_db, transaction

__all__ = [
    'User', 'Admin', 'get_user_by_role',
    'Book', 'Borrow',
    'init_db', 'get_db', 'close_db', 'transaction'
]
