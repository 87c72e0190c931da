import logging
import math
import sqlite3
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from flask import current_app

from library_api.errors import (
    AlreadyBorrowedError, ForbiddenError, NotFoundError, UnavailableError
)
from library_api.models.database import get_db, transaction
from library_api.utils.dates import ensure_utc, parse_timestamp, to_timestamp

logger = logging.getLogger(__name__)

BORROW_COLUMNS = 'bb.id, bb.user_id, bb.book_id, bb.borrowed_date, bb.due_date, bb.returned'


class Borrow:
    """A loan: one user holding one book.

    Invariants kept by this class:
        * A book is marked unavailable exactly while an open loan references it.
        * A user holds at most one open loan per book.
        * ``due_date`` is ``borrowed_date`` + BORROW_DURATION_DAYS, and only
          ``renew`` moves it.
    """

    def __init__(self, id, user_id, book_id, borrowed_date, due_date, returned,
                 title=None, author=None, isbn=None, full_name=None, email=None):
        self.id = id
        self.user_id = user_id
        self.book_id = book_id
        self.borrowed_date = borrowed_date
        self.due_date = due_date
        self.returned = bool(returned)
        # joined display fields
        self.title = title
        self.author = author
        self.isbn = isbn
        self.full_name = full_name
        self.email = email

    @property
    def is_open(self) -> bool:
        return not self.returned

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if self.returned:
            return False
        return ensure_utc(now) > parse_timestamp(self.due_date)

    def days_left(self, now: Optional[datetime] = None) -> int:
        """Whole days until due, rounded up; negative once overdue."""
        remaining = parse_timestamp(self.due_date) - ensure_utc(now)
        return math.ceil(remaining.total_seconds() / 86400)

    # ==================== STATE TRANSITIONS ====================

    @staticmethod
    def create(user_id: int, book_id: int, now: Optional[datetime] = None) -> 'Borrow':
        """Borrow a book for a user.

        The loan insert and the availability flip happen in one transaction.

        Raises:
            NotFoundError: The book does not exist.
            UnavailableError: The book is already out.
            AlreadyBorrowedError: The user already holds an open loan for it.
        """
        borrowed = ensure_utc(now).replace(microsecond=0)
        due = borrowed + timedelta(days=current_app.config['BORROW_DURATION_DAYS'])

        with transaction() as db:
            book = db.execute(
                'SELECT id, title, available FROM books WHERE id = ?', (book_id,)
            ).fetchone()
            if not book:
                raise NotFoundError('Book not found')

            duplicate = db.execute(
                'SELECT id FROM borrowed_books WHERE user_id = ? AND book_id = ? AND returned = 0',
                (user_id, book_id)
            ).fetchone()
            if duplicate:
                logger.warning('User %s already holds book %s (loan %s)',
                               user_id, book_id, duplicate['id'])
                raise AlreadyBorrowedError('Book already borrowed')

            # guarded flip: only one writer can take the book
            flipped = db.execute(
                'UPDATE books SET available = 0 WHERE id = ? AND available = 1', (book_id,)
            ).rowcount
            if not flipped:
                logger.warning('Book %s is not available for user %s', book_id, user_id)
                raise UnavailableError('Book not available')

            try:
                cursor = db.execute('''
                    INSERT INTO borrowed_books (user_id, book_id, borrowed_date, due_date, returned)
                    VALUES (?, ?, ?, ?, 0)
                ''', (user_id, book_id, to_timestamp(borrowed), to_timestamp(due)))
            except sqlite3.IntegrityError:
                raise AlreadyBorrowedError('Book already borrowed')

        logger.info('User %s borrowed book %s "%s", due %s',
                    user_id, book_id, book['title'], to_timestamp(due))
        return Borrow.get_by_id(cursor.lastrowid)

    @staticmethod
    def return_book(user_id: int, borrow_id: int) -> 'Borrow':
        """Close an open loan owned by ``user_id`` and free the book.

        Returning an already-returned loan is NotFound and changes nothing.
        """
        with transaction() as db:
            row = db.execute(
                'SELECT id, book_id FROM borrowed_books '
                'WHERE id = ? AND user_id = ? AND returned = 0',
                (borrow_id, user_id)
            ).fetchone()
            if not row:
                logger.warning('User %s tried to return unknown or closed loan %s',
                               user_id, borrow_id)
                raise NotFoundError('Borrow record not found')

            db.execute('UPDATE borrowed_books SET returned = 1 WHERE id = ?', (borrow_id,))
            db.execute('UPDATE books SET available = 1 WHERE id = ?', (row['book_id'],))

        logger.info('User %s returned book %s (loan %s)', user_id, row['book_id'], borrow_id)
        return Borrow.get_by_id(borrow_id)

    @staticmethod
    def renew(user_id: int, borrow_id: int, now: Optional[datetime] = None) -> 'Borrow':
        """Move the due date to RENEWAL_EXTENSION_DAYS from now.

        Raises:
            NotFoundError: No such loan, or it is already returned.
            ForbiddenError: The loan belongs to someone else.
        """
        renewed = ensure_utc(now).replace(microsecond=0)
        due = renewed + timedelta(days=current_app.config['RENEWAL_EXTENSION_DAYS'])

        with transaction() as db:
            row = db.execute(
                'SELECT id, user_id, returned FROM borrowed_books WHERE id = ?', (borrow_id,)
            ).fetchone()
            if not row or row['returned']:
                raise NotFoundError('Borrow record not found')
            if row['user_id'] != user_id:
                logger.warning('User %s tried to renew loan %s of user %s',
                               user_id, borrow_id, row['user_id'])
                raise ForbiddenError('You can only renew your own books')

            db.execute('UPDATE borrowed_books SET due_date = ? WHERE id = ?',
                       (to_timestamp(due), borrow_id))

        logger.info('User %s renewed loan %s, new due date %s',
                    user_id, borrow_id, to_timestamp(due))
        return Borrow.get_by_id(borrow_id)

    # ==================== QUERIES ====================

    @staticmethod
    def get_by_id(borrow_id: int) -> Optional['Borrow']:
        db = get_db()
        row = db.execute(f'''
            SELECT {BORROW_COLUMNS}, b.title, b.author, b.isbn
            FROM borrowed_books bb
            LEFT JOIN books b ON bb.book_id = b.id
            WHERE bb.id = ?
        ''', (borrow_id,)).fetchone()
        if row:
            return Borrow(**dict(row))
        return None

    @staticmethod
    def get_user_borrows(user_id: int) -> List['Borrow']:
        """All loans of a user with book title/author/isbn, soonest due first."""
        db = get_db()
        rows = db.execute(f'''
            SELECT {BORROW_COLUMNS}, b.title, b.author, b.isbn
            FROM borrowed_books bb
            JOIN books b ON bb.book_id = b.id
            WHERE bb.user_id = ?
            ORDER BY bb.due_date ASC, bb.id ASC
        ''', (user_id,)).fetchall()
        return [Borrow(**dict(row)) for row in rows]

    @staticmethod
    def get_due_soon(user_id: int, days: Optional[int] = None,
                     now: Optional[datetime] = None) -> List['Borrow']:
        """Open loans of a user due within ``days`` (DUE_SOON_DAYS by default).

        Overdue loans are included since their due date is already past.
        """
        if days is None:
            days = current_app.config['DUE_SOON_DAYS']
        limit = to_timestamp(ensure_utc(now) + timedelta(days=days))
        db = get_db()
        rows = db.execute(f'''
            SELECT {BORROW_COLUMNS}, b.title, b.author, b.isbn
            FROM borrowed_books bb
            JOIN books b ON bb.book_id = b.id
            WHERE bb.user_id = ? AND bb.returned = 0 AND bb.due_date <= ?
            ORDER BY bb.due_date ASC, bb.id ASC
        ''', (user_id, limit)).fetchall()
        return [Borrow(**dict(row)) for row in rows]

    @staticmethod
    def get_all() -> List['Borrow']:
        """Every loan with book and borrower display fields (admin view)."""
        db = get_db()
        rows = db.execute(f'''
            SELECT {BORROW_COLUMNS}, b.title, b.author, b.isbn, u.full_name, u.email
            FROM borrowed_books bb
            JOIN users u ON bb.user_id = u.id
            JOIN books b ON bb.book_id = b.id
            ORDER BY bb.borrowed_date DESC, bb.id DESC
        ''').fetchall()
        return [Borrow(**dict(row)) for row in rows]

    @staticmethod
    def get_user_stats(user_id: int, now: Optional[datetime] = None) -> Dict[str, int]:
        """Dashboard counters for one user."""
        now = ensure_utc(now)
        warning_days = current_app.config['OVERDUE_WARNING_DAYS']
        borrows = Borrow.get_user_borrows(user_id)
        active = [b for b in borrows if b.is_open]
        overdue = [b for b in active if b.is_overdue(now)]
        due_soon = [b for b in active
                    if not b.is_overdue(now) and b.days_left(now) <= warning_days]
        return {
            'borrowed': len(active),
            'due_soon': len(due_soon),
            'overdue': len(overdue),
            'total_borrowed': len(borrows),
        }

    def to_dict(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'book_id': self.book_id,
            'borrowed_date': self.borrowed_date,
            'due_date': self.due_date,
            'returned': self.returned,
            'title': self.title,
            'author': self.author,
            'isbn': self.isbn,
            'is_overdue': self.is_overdue(now),
            'days_left': self.days_left(now),
        }
        if self.full_name is not None:
            data['full_name'] = self.full_name
            data['email'] = self.email
        return data
