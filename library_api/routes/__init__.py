from library_api.routes.auth_routes import auth_bp
from library_api.routes.book_routes import book_bp
from library_api.routes.borrow_routes import borrow_bp

__all__ = ['auth_bp', 'book_bp', 'borrow_bp']
