"""SQLite access for the library service.

One connection is opened per application context and kept on ``flask.g``.
Compound writes go through ``transaction()`` so that a loan row and the
book availability flag are always written together.
"""
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from flask import current_app, g

logger = logging.getLogger(__name__)


SCHEMA = '''
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    full_name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'student' CHECK (role IN ('student', 'admin')),
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS books (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    author TEXT NOT NULL,
    isbn TEXT,
    category TEXT,
    available INTEGER NOT NULL DEFAULT 1,
    copies INTEGER NOT NULL DEFAULT 1,
    location TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS borrowed_books (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    book_id INTEGER NOT NULL REFERENCES books(id),
    borrowed_date TEXT NOT NULL,
    due_date TEXT NOT NULL,
    returned INTEGER NOT NULL DEFAULT 0
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_borrowed_books_open
    ON borrowed_books(user_id, book_id) WHERE returned = 0;
CREATE INDEX IF NOT EXISTS idx_borrowed_books_user ON borrowed_books(user_id);
CREATE INDEX IF NOT EXISTS idx_borrowed_books_book ON borrowed_books(book_id);
CREATE INDEX IF NOT EXISTS idx_books_title ON books(title);
CREATE INDEX IF NOT EXISTS idx_books_author ON books(author);
'''


def connect(path: str) -> sqlite3.Connection:
    """Open a connection with row access by column name and foreign keys on."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(path, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute('PRAGMA foreign_keys = ON')
    return conn


def get_db() -> sqlite3.Connection:
    """Return the connection bound to the current application context."""
    if 'db' not in g:
        g.db = connect(current_app.config['DATABASE_PATH'])
    return g.db


def close_db(exception=None) -> None:
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db() -> None:
    """Create tables and indexes if they do not exist yet."""
    db = get_db()
    db.executescript(SCHEMA)
    db.commit()
    logger.debug('Database schema ready at %s', current_app.config['DATABASE_PATH'])


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """Run a block of writes as one unit.

    ``BEGIN IMMEDIATE`` takes the database write lock up front, so two
    requests racing on the same book are serialized and the second one
    sees the first one's writes.
    """
    db = get_db()
    if db.in_transaction:
        db.commit()
    db.execute('BEGIN IMMEDIATE')
    try:
        yield db
    except BaseException:
        db.rollback()
        raise
    else:
        db.commit()
