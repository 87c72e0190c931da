import logging
import sqlite3
from typing import Optional, List, Dict, Any

from library_api.errors import ConflictError, NotFoundError
from library_api.models.database import get_db, transaction
from library_api.utils.dates import to_timestamp, utcnow
from library_api.utils.validators import BookValidator

logger = logging.getLogger(__name__)

BOOK_COLUMNS = 'id, title, author, isbn, category, available, copies, location, created_at'


class Book:
    """Represents a book in the library catalog.

    ``available`` is the single flag that gates borrowing: it is False while
    an open loan references the book. ``copies`` is informational only.

    Attributes:
        id (int): Unique identifier for the book.
        title (str): Book title.
        author (str): Book author name.
        isbn (str): ISBN number.
        category (str): Book category/genre.
        available (bool): True when no open loan references the book.
        copies (int): Number of copies owned (default 1).
        location (str): Physical shelf location (optional).
        created_at (str): When the book was added to the catalog.
    """

    def __init__(self, id: int, title: str, author: str, isbn: Optional[str],
                 category: Optional[str], available: int, copies: int,
                 location: Optional[str], created_at: str) -> None:
        """Initialize a Book instance."""
        self.id = id
        self.title = title
        self.author = author
        self.isbn = isbn
        self.category = category
        self.available = bool(available)
        self.copies = int(copies)
        self.location = location
        self.created_at = created_at

    @staticmethod
    def get_by_id(book_id: int) -> Optional['Book']:
        """Retrieve a book by its ID."""
        db = get_db()
        row = db.execute(
            f'SELECT {BOOK_COLUMNS} FROM books WHERE id = ?', (book_id,)
        ).fetchone()
        if row:
            return Book(**dict(row))
        return None

    @staticmethod
    def get_all() -> List['Book']:
        """Retrieve all books from the database."""
        db = get_db()
        rows = db.execute(f'SELECT {BOOK_COLUMNS} FROM books ORDER BY id').fetchall()
        return [Book(**dict(row)) for row in rows]

    @staticmethod
    def search(title: Optional[str] = None, author: Optional[str] = None,
               category: Optional[str] = None, limit: Optional[int] = None) -> List['Book']:
        """Search books by case-insensitive substring on each given field.

        Filters are independent and combined with AND; a missing or empty
        filter matches everything.
        """
        db = get_db()

        sql = f'SELECT {BOOK_COLUMNS} FROM books WHERE 1=1'
        params: List[Any] = []

        for column, value in (('title', title), ('author', author), ('category', category)):
            if value:
                sql += f" AND LOWER(COALESCE({column}, '')) LIKE ? ESCAPE '\\'"
                params.append(f'%{_escape_like(value.lower())}%')

        sql += ' ORDER BY id'
        if limit:
            sql += ' LIMIT ?'
            params.append(int(limit))

        rows = db.execute(sql, params).fetchall()
        return [Book(**dict(row)) for row in rows]

    @staticmethod
    def get_recent(limit: int = 5) -> List['Book']:
        """Newest additions to the catalog first."""
        db = get_db()
        rows = db.execute(
            f'SELECT {BOOK_COLUMNS} FROM books ORDER BY created_at DESC, id DESC LIMIT ?',
            (int(limit),)
        ).fetchall()
        return [Book(**dict(row)) for row in rows]

    @staticmethod
    def create(data: Dict[str, Any]) -> 'Book':
        """Create a new book in the database.

        Raises:
            ValidationError: If title or author is missing, or a field is malformed.
        """
        fields = BookValidator.clean(data)
        db = get_db()
        cursor = db.execute('''
            INSERT INTO books (title, author, isbn, category, available, copies,
                               location, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', (fields['title'], fields['author'], fields['isbn'], fields['category'],
              int(fields['available']), fields.get('copies', 1), fields['location'],
              to_timestamp(utcnow())))
        db.commit()

        book = Book.get_by_id(cursor.lastrowid)
        logger.info('Added book %s "%s"', book.id, book.title)
        return book

    def update_fields(self, data: Dict[str, Any]) -> 'Book':
        """Overwrite title, author, isbn, category and available.

        This is a full replace: omitted text fields are cleared, and an
        omitted ``available`` keeps its current value. ``copies`` and
        ``location`` change only when supplied.

        Raises:
            ConflictError: ``available`` is set to true while a loan of the
                book is still open.
        """
        fields = BookValidator.clean(data, available_default=self.available)
        fields.setdefault('copies', self.copies)
        if 'location' not in data:
            fields['location'] = self.location

        with transaction() as db:
            if fields['available']:
                open_loans = db.execute(
                    'SELECT COUNT(*) AS n FROM borrowed_books WHERE book_id = ? AND returned = 0',
                    (self.id,)
                ).fetchone()['n']
                if open_loans:
                    logger.warning('Refused to mark book %s available: %s open loan(s)',
                                   self.id, open_loans)
                    raise ConflictError('Book is on loan and cannot be marked available')

            db.execute('''
                UPDATE books
                SET title = ?, author = ?, isbn = ?, category = ?, available = ?,
                    copies = ?, location = ?
                WHERE id = ?
            ''', (fields['title'], fields['author'], fields['isbn'], fields['category'],
                  int(fields['available']), fields['copies'], fields['location'], self.id))

        for key, value in fields.items():
            setattr(self, key, value)
        logger.info('Updated book %s "%s"', self.id, self.title)
        return self

    def delete(self) -> None:
        """Delete this book from the database.

        Loans are never deleted, so a book that has ever been borrowed
        stays in the catalog.

        Raises:
            ConflictError: If any borrow record, open or returned, references
                the book.
        """
        db = get_db()
        try:
            db.execute('DELETE FROM books WHERE id = ?', (self.id,))
            db.commit()
        except sqlite3.IntegrityError:
            db.rollback()
            logger.warning('Refused to delete book %s: borrow records reference it', self.id)
            raise ConflictError('Book has borrow records and cannot be deleted')
        logger.info('Deleted book %s "%s"', self.id, self.title)

    @staticmethod
    def get_or_404(book_id: int) -> 'Book':
        book = Book.get_by_id(book_id)
        if not book:
            raise NotFoundError('Book not found')
        return book

    def to_dict(self) -> Dict[str, Any]:
        """Convert book to dictionary representation."""
        return {
            'id': self.id,
            'title': self.title,
            'author': self.author,
            'isbn': self.isbn,
            'category': self.category,
            'available': self.available,
            'copies': self.copies,
            'location': self.location,
            'created_at': self.created_at,
        }


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
