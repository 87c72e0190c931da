import logging

from flask import jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

logger = logging.getLogger(__name__)

# Initialize extensions without app binding
# Will be bound to app in create_app() function
jwt: JWTManager = JWTManager()
cors: CORS = CORS()


@jwt.unauthorized_loader
def missing_token(reason):
    return jsonify({'error': 'Access denied'}), 401


@jwt.invalid_token_loader
def invalid_token(reason):
    logger.warning('Rejected malformed token: %s', reason)
    return jsonify({'error': 'Invalid token'}), 401


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return jsonify({'error': 'Token has expired'}), 401
