"""HTTP client for the library API.

``Session`` replaces ad-hoc "current user" globals: it is filled by
``LibraryClient.login()`` / ``verify()`` and cleared by ``logout()`` or as
soon as the server answers 401 (expired or invalid token), at which point
callers should show the login view again.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """A failed API call. ``message`` is the server's reason, verbatim."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def requires_login(self) -> bool:
        return self.status_code == 401


@dataclass
class Session:
    token: Optional[str] = None
    user: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def is_admin(self) -> bool:
        return self.user.get('role') == 'admin'

    def start(self, token: str, user: Dict[str, Any]) -> None:
        self.token = token
        self.user = dict(user)

    def clear(self) -> None:
        self.token = None
        self.user = {}


class LibraryClient:
    """Thin wrapper over the REST endpoints holding one ``Session``."""

    def __init__(self, base_url: str = 'http://localhost:5000',
                 transport: Optional[httpx.BaseTransport] = None,
                 timeout: float = 10.0) -> None:
        self.session = Session()
        self._client = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _request(self, method: str, url: str, **kwargs) -> Any:
        headers = kwargs.pop('headers', {})
        if self.session.token:
            headers['Authorization'] = f'Bearer {self.session.token}'
        response = self._client.request(method, url, headers=headers, **kwargs)

        if response.is_success:
            return response.json()

        try:
            message = response.json().get('error') or response.reason_phrase
        except (ValueError, AttributeError):
            message = response.text or response.reason_phrase
        if response.status_code == 401 and self.session.is_authenticated:
            logger.info('Session expired for %s, clearing credentials',
                        self.session.user.get('email'))
            self.session.clear()
        raise ClientError(message, response.status_code)

    # ---------------------------- auth ---------------------------- #
    def register(self, full_name: str, email: str, password: str) -> Dict[str, Any]:
        return self._request('POST', '/api/auth/register', json={
            'full_name': full_name, 'email': email, 'password': password
        })

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self._request('POST', '/api/auth/login', json={
            'email': email, 'password': password
        })
        self.session.start(data['token'], data['user'])
        return data['user']

    def verify(self) -> Dict[str, Any]:
        """Refresh the session's user from its token."""
        data = self._request('GET', '/api/auth/verify')
        self.session.user = dict(data['user'])
        return data['user']

    def logout(self) -> None:
        try:
            if self.session.is_authenticated:
                self._request('POST', '/api/auth/logout')
        finally:
            self.session.clear()

    # ---------------------------- books ---------------------------- #
    def list_books(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/books')

    def search_books(self, title: Optional[str] = None, author: Optional[str] = None,
                     category: Optional[str] = None,
                     limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {k: v for k, v in (('title', title), ('author', author),
                                    ('category', category), ('limit', limit)) if v}
        return self._request('GET', '/api/books/search', params=params)

    def recent_books(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {'limit': limit} if limit else {}
        return self._request('GET', '/api/books/recent', params=params)

    def get_book(self, book_id: int) -> Dict[str, Any]:
        return self._request('GET', f'/api/books/{book_id}')

    def add_book(self, **fields) -> Dict[str, Any]:
        return self._request('POST', '/api/books', json=fields)

    def update_book(self, book_id: int, **fields) -> Dict[str, Any]:
        return self._request('PUT', f'/api/books/{book_id}', json=fields)

    def delete_book(self, book_id: int) -> Dict[str, Any]:
        return self._request('DELETE', f'/api/books/{book_id}')

    # ---------------------------- loans ---------------------------- #
    def borrow(self, book_id: int) -> Dict[str, Any]:
        return self._request('POST', '/api/borrow', json={'book_id': book_id})

    def return_book(self, borrow_id: int) -> Dict[str, Any]:
        return self._request('PUT', f'/api/borrow/{borrow_id}/return')

    def renew(self, borrow_id: int) -> Dict[str, Any]:
        return self._request('PUT', f'/api/borrow/{borrow_id}/renew')

    def my_borrows(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/borrow/my')

    def due_soon(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/borrow/due-soon')

    def stats(self) -> Dict[str, int]:
        return self._request('GET', '/api/borrow/stats')

    def all_borrows(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/borrow')
