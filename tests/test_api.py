from datetime import timedelta

from flask_jwt_extended import create_access_token

from conftest import ADMIN_EMAIL, PASSWORD, auth_header, login


def add_book(client, headers, **fields):
    payload = {'title': 'Dune', 'author': 'Frank Herbert', 'isbn': '9780441013593',
               'category': 'Fiction'}
    payload.update(fields)
    response = client.post('/api/books', json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


# ---------------------------- auth ---------------------------- #

def test_register_and_login(client):
    response = client.post('/api/auth/register', json={
        'full_name': 'Alice', 'email': 'a@x.com', 'password': 'Passw0rd'
    })
    assert response.status_code == 201

    response = client.post('/api/auth/login', json={'email': 'a@x.com', 'password': 'Passw0rd'})
    data = response.get_json()

    assert response.status_code == 200
    assert data['token']
    assert data['user']['role'] == 'student'
    assert data['user']['full_name'] == 'Alice'
    assert 'password_hash' not in data['user']


def test_register_duplicate_email_is_conflict(client, student):
    response = client.post('/api/auth/register', json={
        'full_name': 'Alice Again', 'email': 'ALICE@x.com', 'password': 'Passw0rd'
    })
    assert response.status_code == 409
    assert response.get_json()['error'] == 'Email already registered'


def test_register_validation(client):
    response = client.post('/api/auth/register', json={
        'full_name': 'Alice', 'email': 'not-an-email', 'password': 'Passw0rd'
    })
    assert response.status_code == 400
    assert 'email' in response.get_json()['error']

    response = client.post('/api/auth/register', json={
        'full_name': 'Alice', 'email': 'a@x.com', 'password': 'short1'
    })
    assert response.status_code == 400

    response = client.post('/api/auth/register', json={
        'full_name': 'Alice', 'email': 'a@x.com', 'password': 'lettersonly'
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Password must contain letters and numbers'


def test_login_failures(client, student):
    response = client.post('/api/auth/login', json={'email': 'nobody@x.com', 'password': PASSWORD})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'User not found'

    response = client.post('/api/auth/login', json={'email': 'alice@x.com', 'password': 'Wr0ngpass'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid password'


def test_verify(client, student_headers):
    response = client.get('/api/auth/verify', headers=student_headers)
    assert response.status_code == 200
    assert response.get_json()['user']['email'] == 'alice@x.com'


def test_verify_without_token(client):
    response = client.get('/api/auth/verify')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Access denied'


def test_verify_with_garbage_token(client):
    response = client.get('/api/auth/verify', headers=auth_header('not.a.token'))
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid token'


def test_verify_with_expired_token(app, client, student):
    token = create_access_token(identity=str(student.id), expires_delta=timedelta(seconds=-10))
    response = client.get('/api/auth/verify', headers=auth_header(token))
    assert response.status_code == 401


def test_token_for_deleted_user(app, client, ctx):
    token = create_access_token(identity='4242')
    response = client.get('/api/auth/verify', headers=auth_header(token))
    assert response.status_code == 401
    assert response.get_json()['error'] == 'User not found'


# ---------------------------- books ---------------------------- #

def test_search_filters(client, admin_headers):
    add_book(client, admin_headers, title='Dune', category='Science Fiction')
    add_book(client, admin_headers, title='Emma', author='Jane Austen', category='Classic')
    add_book(client, admin_headers, title='Non-fiction Notes', author='X', category='Essays')

    everything = client.get('/api/books/search').get_json()
    fic = client.get('/api/books/search?category=fic').get_json()
    austen = client.get('/api/books/search?author=AUSTEN&title=em').get_json()
    none = client.get('/api/books/search?author=austen&title=dune').get_json()

    assert len(everything) == 3
    assert [b['title'] for b in fic] == ['Dune']
    assert [b['title'] for b in austen] == ['Emma']
    assert none == []


def test_search_limit(client, admin_headers):
    for i in range(3):
        add_book(client, admin_headers, title=f'Volume {i}')
    assert len(client.get('/api/books/search?limit=2').get_json()) == 2
    assert client.get('/api/books/search?limit=zero').status_code == 400


def test_search_treats_wildcards_literally(client, admin_headers):
    add_book(client, admin_headers, title='100% Wool')
    add_book(client, admin_headers, title='Wool Socks')
    assert [b['title'] for b in client.get('/api/books/search?title=%25').get_json()] == ['100% Wool']


def test_recent_books(client, admin_headers):
    for i in range(3):
        add_book(client, admin_headers, title=f'Volume {i}')
    recent = client.get('/api/books/recent?limit=2').get_json()
    assert [b['title'] for b in recent] == ['Volume 2', 'Volume 1']


def test_add_book_defaults(client, admin_headers):
    book = add_book(client, admin_headers)
    assert book['available'] is True
    assert book['copies'] == 1
    assert client.get(f"/api/books/{book['id']}").get_json()['title'] == 'Dune'


def test_add_book_requires_title(client, admin_headers):
    response = client.post('/api/books', json={'author': 'Nobody'}, headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Title is required'


def test_update_book_replaces_fields(client, admin_headers):
    book = add_book(client, admin_headers)
    response = client.put(f"/api/books/{book['id']}", headers=admin_headers, json={
        'title': 'Dune Messiah', 'author': 'Frank Herbert', 'available': False
    })
    data = response.get_json()

    assert response.status_code == 200
    assert data['title'] == 'Dune Messiah'
    assert data['available'] is False
    assert data['isbn'] is None
    assert data['category'] is None


def test_update_and_delete_missing_book(client, admin_headers):
    response = client.put('/api/books/999', headers=admin_headers,
                          json={'title': 'X', 'author': 'Y'})
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Book not found'
    assert client.delete('/api/books/999', headers=admin_headers).status_code == 404


def test_delete_book(client, admin_headers):
    book = add_book(client, admin_headers)
    response = client.delete(f"/api/books/{book['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert client.get(f"/api/books/{book['id']}").status_code == 404


def test_delete_book_with_loans_is_conflict(client, admin_headers, student_headers):
    book = add_book(client, admin_headers)
    client.post('/api/borrow', json={'book_id': book['id']}, headers=student_headers)

    response = client.delete(f"/api/books/{book['id']}", headers=admin_headers)

    assert response.status_code == 409
    assert client.get(f"/api/books/{book['id']}").status_code == 200


def test_student_cannot_change_catalog(client, admin_headers, student_headers):
    book = add_book(client, admin_headers)

    responses = [
        client.post('/api/books', json={'title': 'X', 'author': 'Y'}, headers=student_headers),
        client.put(f"/api/books/{book['id']}", json={'title': 'X', 'author': 'Y'},
                   headers=student_headers),
        client.delete(f"/api/books/{book['id']}", headers=student_headers),
        client.get('/api/borrow', headers=student_headers),
    ]

    assert [r.status_code for r in responses] == [403, 403, 403, 403]
    assert responses[0].get_json()['error'] == 'Admin access required'
    books = client.get('/api/books').get_json()
    assert len(books) == 1
    assert books[0]['title'] == 'Dune'


def test_catalog_changes_need_a_token(client):
    assert client.post('/api/books', json={'title': 'X', 'author': 'Y'}).status_code == 401


# ---------------------------- borrowing ---------------------------- #

def test_borrow_errors(client, admin_headers, student_headers):
    book = add_book(client, admin_headers)

    missing = client.post('/api/borrow', json={'book_id': 999}, headers=student_headers)
    no_id = client.post('/api/borrow', json={}, headers=student_headers)
    first = client.post('/api/borrow', json={'book_id': book['id']}, headers=student_headers)
    again = client.post('/api/borrow', json={'book_id': book['id']}, headers=student_headers)

    assert missing.status_code == 404
    assert no_id.status_code == 400
    assert first.status_code == 201
    assert again.status_code == 400
    assert again.get_json()['error'] == 'Book already borrowed'


def test_borrow_unavailable(client, admin_headers, student_headers):
    book = add_book(client, admin_headers, available=False)
    response = client.post('/api/borrow', json={'book_id': book['id']}, headers=student_headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Book not available'


def test_return_unknown_loan(client, student_headers):
    response = client.put('/api/borrow/77/return', headers=student_headers)
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Borrow record not found'


def test_renew_and_lists(client, admin_headers, student_headers):
    book = add_book(client, admin_headers)
    loan = client.post('/api/borrow', json={'book_id': book['id']},
                       headers=student_headers).get_json()

    renewed = client.put(f"/api/borrow/{loan['id']}/renew", headers=student_headers)
    mine = client.get('/api/borrow/my', headers=student_headers).get_json()
    due_soon = client.get('/api/borrow/due-soon', headers=student_headers).get_json()
    stats = client.get('/api/borrow/stats', headers=student_headers).get_json()

    assert renewed.status_code == 200
    assert renewed.get_json()['borrow']['due_date'] >= loan['due_date']
    assert [m['title'] for m in mine] == ['Dune']
    assert mine[0]['isbn'] == '9780441013593'
    assert due_soon == []
    assert stats == {'borrowed': 1, 'due_soon': 0, 'overdue': 0, 'total_borrowed': 1}


def test_admin_lists_all_borrows(client, admin_headers, student_headers):
    book = add_book(client, admin_headers)
    client.post('/api/borrow', json={'book_id': book['id']}, headers=student_headers)

    rows = client.get('/api/borrow', headers=admin_headers).get_json()

    assert len(rows) == 1
    assert rows[0]['full_name'] == 'Alice'
    assert rows[0]['title'] == 'Dune'


def test_unknown_route_is_json(client):
    response = client.get('/api/nothing-here')
    assert response.status_code == 404
    assert 'error' in response.get_json()


def test_end_to_end_borrow_and_return(client, admin):
    admin_token = login(client, ADMIN_EMAIL)
    add_book(client, auth_header(admin_token))

    assert client.post('/api/auth/register', json={
        'full_name': 'Alice', 'email': 'a@x.com', 'password': 'Passw0rd'
    }).status_code == 201
    session = client.post('/api/auth/login', json={
        'email': 'a@x.com', 'password': 'Passw0rd'
    }).get_json()
    assert session['user']['role'] == 'student'
    headers = auth_header(session['token'])

    books = client.get('/api/books/search').get_json()
    assert books[0]['available'] is True

    response = client.post('/api/borrow', json={'book_id': books[0]['id']}, headers=headers)
    assert response.status_code == 201
    loan = response.get_json()
    assert client.get('/api/books/search').get_json()[0]['available'] is False

    response = client.put(f"/api/borrow/{loan['id']}/return", headers=headers)
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Book returned successfully'
    assert client.get('/api/books/search').get_json()[0]['available'] is True


# ---------------------------- malformed input ---------------------------- #

def test_register_rejects_non_string_fields(client):
    bad_payloads = [
        {'full_name': 'Alice', 'email': 'a@x.com', 'password': 12345678},
        {'full_name': 'Alice', 'email': ['a@x.com'], 'password': 'Passw0rd'},
        {'full_name': {'first': 'Alice'}, 'email': 'a@x.com', 'password': 'Passw0rd'},
    ]
    for payload in bad_payloads:
        response = client.post('/api/auth/register', json=payload)
        assert response.status_code == 400, payload
        assert 'error' in response.get_json()


def test_login_rejects_non_string_fields(client, student):
    for payload in ({'email': 123, 'password': PASSWORD},
                    {'email': 'alice@x.com', 'password': 12345678}):
        response = client.post('/api/auth/login', json=payload)
        assert response.status_code == 400, payload
        assert response.get_json()['error'] == 'Email and password must be strings'


def test_out_of_range_ids_are_not_found(client, admin_headers, student_headers):
    huge = '99999999999999999999'

    assert client.get(f'/api/books/{huge}').status_code == 404
    assert client.delete(f'/api/books/{huge}', headers=admin_headers).status_code == 404
    assert client.put(f'/api/borrow/{huge}/return', headers=student_headers).status_code == 404
    response = client.post('/api/borrow', json={'book_id': int(huge)}, headers=student_headers)
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Book not found'
    assert client.get(f'/api/books/search?limit={huge}').status_code == 200


# ---------------------------- catalog edits vs loans ---------------------------- #

def test_loaned_book_cannot_be_marked_available(client, admin_headers, student_headers):
    book = add_book(client, admin_headers)
    client.post('/api/borrow', json={'book_id': book['id']}, headers=student_headers)

    response = client.put(f"/api/books/{book['id']}", headers=admin_headers, json={
        'title': 'Dune', 'author': 'Frank Herbert', 'available': True
    })

    assert response.status_code == 409
    assert client.get(f"/api/books/{book['id']}").get_json()['available'] is False


def test_returned_loans_still_block_delete(client, admin_headers, student_headers):
    book = add_book(client, admin_headers)
    loan = client.post('/api/borrow', json={'book_id': book['id']},
                       headers=student_headers).get_json()
    client.put(f"/api/borrow/{loan['id']}/return", headers=student_headers)

    response = client.delete(f"/api/books/{book['id']}", headers=admin_headers)

    assert response.status_code == 409
    assert response.get_json()['error'] == 'Book has borrow records and cannot be deleted'


# ---------------------------- cors ---------------------------- #

def test_api_allows_cross_origin_requests(client):
    origin = 'http://localhost:5500'
    response = client.get('/api/books', headers={'Origin': origin})

    assert response.status_code == 200
    assert response.headers['Access-Control-Allow-Origin'] in ('*', origin)


def test_cors_preflight_for_catalog_changes(client):
    response = client.options('/api/books', headers={
        'Origin': 'http://localhost:5500',
        'Access-Control-Request-Method': 'POST',
        'Access-Control-Request-Headers': 'Authorization, Content-Type',
    })

    assert response.status_code == 200
    assert 'Access-Control-Allow-Origin' in response.headers
    assert 'POST' in response.headers['Access-Control-Allow-Methods']
