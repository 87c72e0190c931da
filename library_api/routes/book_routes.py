from flask import Blueprint, current_app, g, jsonify, request

from library_api.errors import ValidationError
from library_api.models.book import Book
from library_api.utils.converters import SQLITE_MAX_INTEGER
from library_api.utils.decorators import role_required

# Create book blueprint
book_bp = Blueprint('books', __name__, url_prefix='/api/books')


def _limit_arg(default=None):
    value = request.args.get('limit')
    if value in (None, ''):
        return default
    try:
        limit = int(value)
    except ValueError:
        raise ValidationError('Limit must be a whole number')
    if limit < 1:
        raise ValidationError('Limit must be positive')
    return min(limit, SQLITE_MAX_INTEGER)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@book_bp.route('', methods=['GET'])
def list_books():
    """All books in the catalog."""
    return jsonify([book.to_dict() for book in Book.get_all()])


@book_bp.route('/search', methods=['GET'])
def search_books():
    """Filter by optional ``title``, ``author`` and ``category`` substrings."""
    books = Book.search(
        title=request.args.get('title'),
        author=request.args.get('author'),
        category=request.args.get('category'),
        limit=_limit_arg(),
    )
    return jsonify([book.to_dict() for book in books])


@book_bp.route('/recent', methods=['GET'])
def recent_books():
    limit = _limit_arg(current_app.config['RECENT_BOOKS_LIMIT'])
    return jsonify([book.to_dict() for book in Book.get_recent(limit)])


@book_bp.route('/<id:book_id>', methods=['GET'])
def get_book(book_id):
    return jsonify(Book.get_or_404(book_id).to_dict())


@book_bp.route('', methods=['POST'])
@role_required('admin')
def add_book():
    """Add a book (admin only). Returns 201 with the new book."""
    book = g.user.add_book(_json_body())
    return jsonify(book.to_dict()), 201


@book_bp.route('/<id:book_id>', methods=['PUT'])
@role_required('admin')
def update_book(book_id):
    """Replace a book's fields (admin only)."""
    book = g.user.update_book(book_id, _json_body())
    return jsonify(book.to_dict())


@book_bp.route('/<id:book_id>', methods=['DELETE'])
@role_required('admin')
def delete_book(book_id):
    book = g.user.delete_book(book_id)
    return jsonify({'message': 'Book deleted', 'book': book.to_dict()})
