from flask import Blueprint, g, jsonify, request

from library_api.errors import NotFoundError, ValidationError
from library_api.models.borrow import Borrow
from library_api.utils.converters import SQLITE_MAX_INTEGER
from library_api.utils.decorators import login_required, role_required

# Create borrow blueprint
borrow_bp = Blueprint('borrow', __name__, url_prefix='/api/borrow')


@borrow_bp.route('', methods=['POST'])
@login_required
def borrow_book():
    """Borrow the book given as ``book_id`` in the JSON body.

    Returns:
        201 with the new loan; 404 if the book does not exist; 400 if it is
        unavailable or already borrowed by this user.
    """
    data = request.get_json(silent=True) or {}
    book_id = data.get('book_id') if isinstance(data, dict) else None
    if isinstance(book_id, bool) or not isinstance(book_id, (int, str)):
        raise ValidationError('book_id is required')
    try:
        book_id = int(book_id)
    except ValueError:
        raise ValidationError('book_id must be a number')
    if abs(book_id) > SQLITE_MAX_INTEGER:
        raise NotFoundError('Book not found')

    borrow = Borrow.create(g.user.id, book_id)
    return jsonify(borrow.to_dict()), 201


@borrow_bp.route('/<id:borrow_id>/return', methods=['PUT'])
@login_required
def return_book(borrow_id):
    borrow = Borrow.return_book(g.user.id, borrow_id)
    return jsonify({'message': 'Book returned successfully', 'borrow': borrow.to_dict()})


@borrow_bp.route('/<id:borrow_id>/renew', methods=['PUT'])
@login_required
def renew_book(borrow_id):
    """Extend a loan for another renewal period counted from now."""
    borrow = Borrow.renew(g.user.id, borrow_id)
    return jsonify({
        'message': f'Book renewed successfully. New due date: {borrow.due_date}',
        'borrow': borrow.to_dict()
    })


@borrow_bp.route('/my', methods=['GET'])
@login_required
def my_borrows():
    """Loans of the current user, soonest due first."""
    return jsonify([b.to_dict() for b in Borrow.get_user_borrows(g.user.id)])


@borrow_bp.route('/due-soon', methods=['GET'])
@login_required
def due_soon():
    return jsonify([b.to_dict() for b in Borrow.get_due_soon(g.user.id)])


@borrow_bp.route('/stats', methods=['GET'])
@login_required
def stats():
    return jsonify(Borrow.get_user_stats(g.user.id))


@borrow_bp.route('', methods=['GET'])
@role_required('admin')
def all_borrows():
    """Every borrow record with borrower and book details (admin only)."""
    return jsonify([b.to_dict() for b in g.user.get_all_borrows()])
