"""Admin model module.

This module defines the Admin class for library administrators.
Admin inherits from User and is the only role allowed to change the
catalog or see every user's borrowing records.
"""
import logging
from typing import List

from library_api.models.user import User

logger = logging.getLogger(__name__)


class Admin(User):
    """Represents a library administrator.

    Admins can:
    - Add, edit and delete books
    - View all borrowing records

    Inherits all attributes and methods from User.
    """

    def __init__(self, *args, **kwargs):
        """Initialize an Admin instance."""
        super().__init__(*args, **kwargs)
        # Ensure role is set correctly
        self.role = 'admin'

    # ==================== ADMIN-SPECIFIC METHODS ====================

    def add_book(self, book_data: dict):
        """Add a new book to the library.

        Args:
            book_data: Book attributes (title, author, isbn, category, ...).

        Returns:
            The created Book, available by default.
        """
        from library_api.models.book import Book
        logger.info('Admin %s adding book "%s"', self.id, book_data.get('title'))
        return Book.create(book_data)

    def update_book(self, book_id: int, updates: dict):
        """Replace an existing book's fields.

        Raises:
            NotFoundError: If the book does not exist.
        """
        from library_api.models.book import Book
        return Book.get_or_404(book_id).update_fields(updates)

    def delete_book(self, book_id: int):
        """Delete a book from the library.

        Raises:
            NotFoundError: If the book does not exist.
            ConflictError: If borrow records still reference it.
        """
        from library_api.models.book import Book
        book = Book.get_or_404(book_id)
        book.delete()
        return book

    def get_all_borrows(self) -> List:
        """All borrow records joined with book and borrower details."""
        from library_api.models.borrow import Borrow
        return Borrow.get_all()

    @staticmethod
    def create_admin(full_name: str, email: str, password: str) -> 'Admin':
        """Create an administrator account (used by the ``create-admin`` command)."""
        return User.create(full_name, email, password, role='admin')
