import pytest

from library_api import create_app
from library_api.config.config import TestingConfig
from library_api.models.admin import Admin
from library_api.models.user import User

ADMIN_EMAIL = 'admin@library.test'
STUDENT_EMAIL = 'alice@x.com'
PASSWORD = 'Passw0rd'


@pytest.fixture
def app(tmp_path, request):
    # Fresh database file per test
    db_file = str(tmp_path / f'test_{request.node.name}.db')
    app = create_app(TestingConfig, DATABASE_PATH=db_file)
    yield app


@pytest.fixture
def ctx(app):
    """Application context for model-level tests."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(ctx):
    return Admin.create_admin('Head Librarian', ADMIN_EMAIL, PASSWORD)


@pytest.fixture
def student(ctx):
    return User.create('Alice', STUDENT_EMAIL, PASSWORD)


@pytest.fixture
def book(admin):
    return admin.add_book({
        'title': 'The Left Hand of Darkness',
        'author': 'Ursula K. Le Guin',
        'isbn': '9780441478125',
        'category': 'Science Fiction',
    })


def login(client, email, password=PASSWORD):
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(client, admin):
    return auth_header(login(client, ADMIN_EMAIL))


@pytest.fixture
def student_headers(client, student):
    return auth_header(login(client, STUDENT_EMAIL))