from flask import Blueprint, g, jsonify, request
from flask_jwt_extended import create_access_token

from library_api.models.user import User
from library_api.utils.decorators import login_required

# Create auth blueprint
auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create a student account.

    Returns:
        201 with a confirmation message, 400 on invalid input,
        409 if the email is already registered.
    """
    data = _json_body()
    User.create(data.get('full_name'), data.get('email'), data.get('password'))
    return jsonify({'message': 'User registered successfully'}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Exchange email and password for an access token.

    Returns:
        ``{"token": ..., "user": {id, full_name, email, role}}``.
    """
    data = _json_body()
    user = User.login(data.get('email'), data.get('password'))
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})
    return jsonify({'token': token, 'user': user.to_dict()})


@auth_bp.route('/verify', methods=['GET'])
@login_required
def verify():
    """Resolve the bearer token to its user."""
    return jsonify({'user': g.user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    # Tokens are stateless; the client drops its copy.
    return jsonify({'message': 'Logged out successfully'})
