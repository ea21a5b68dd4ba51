"""
Unit Tests for Authentication API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker
from sqlalchemy import select

from feedback_app.models.feedback import Feedback
from feedback_app.models.settings import SystemSettings
from feedback_app.models.user import User, UserRole
from helpers import auth_headers_for, ratings_for

fake = Faker()


def registration_data(**overrides) -> dict:
    data = {
        'name': fake.name(),
        'email': fake.unique.email(),
        'password': 'securePassword123',
        'branch': 'CSE',
        'year': 2,
    }
    data.update(overrides)
    return data


class TestRegistration:
    """Student self-registration"""

    async def test_register_success(self, client: AsyncClient):
        data = registration_data(email='New.Student@Example.com')

        response = await client.post('/api/v1/auth/register', json=data)

        assert response.status_code == 201
        body = response.json()
        assert body['token']
        assert body['user']['email'] == 'new.student@example.com'
        assert body['user']['role'] == 'student'
        assert body['user']['branch'] == 'CSE'
        assert body['user']['password_reset_required'] is False
        assert 'hashed_password' not in body['user']

    async def test_register_generates_roll_number(self, client: AsyncClient):
        first = await client.post('/api/v1/auth/register', json=registration_data())
        second = await client.post('/api/v1/auth/register', json=registration_data())

        assert first.json()['user']['roll_number'] == '232P4R0001'
        assert second.json()['user']['roll_number'] == '232P4R0002'

    async def test_register_keeps_given_roll_number(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json=registration_data(roll_number=' 21CS042 '))

        assert response.status_code == 201
        assert response.json()['user']['roll_number'] == '21CS042'

    async def test_register_duplicate_email(self, client: AsyncClient, student_user: User):
        response = await client.post('/api/v1/auth/register', json=registration_data(email=student_user.email))

        assert response.status_code == 409
        assert response.json()['code'] == 'DUPLICATE_EMAIL'

    async def test_register_duplicate_roll_number(self, client: AsyncClient, student_user: User):
        response = await client.post(
            '/api/v1/auth/register',
            json=registration_data(roll_number=student_user.roll_number)
        )

        assert response.status_code == 409

    async def test_register_invalid_email(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json=registration_data(email='not-an-email'))

        assert response.status_code == 422

    async def test_register_short_password(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json=registration_data(password='123'))

        assert response.status_code == 422

    async def test_register_unknown_branch(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json=registration_data(branch='Astrology'))

        assert response.status_code == 422

    async def test_register_when_disabled(self, client: AsyncClient, db_session):
        db_session.add(SystemSettings(registration_enabled=False))
        await db_session.commit()

        response = await client.post('/api/v1/auth/register', json=registration_data())

        assert response.status_code == 403

    async def test_register_in_maintenance(self, client: AsyncClient, db_session):
        db_session.add(SystemSettings(maintenance_mode=True))
        await db_session.commit()

        response = await client.post('/api/v1/auth/register', json=registration_data())

        assert response.status_code == 503
        assert response.json()['code'] == 'MAINTENANCE'


class TestLogin:

    async def test_login_success(self, client: AsyncClient, student_user: User):
        response = await client.post(
            '/api/v1/auth/login',
            json={'email': student_user.email, 'password': 'testpassword123'}
        )

        assert response.status_code == 200
        body = response.json()
        assert body['token']
        assert body['user']['id'] == str(student_user.id)
        assert body['password_reset_required'] is False
        assert body['user']['last_login'] is not None

    async def test_login_email_is_case_insensitive(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.FACULTY, email='mixed.case@example.com')

        response = await client.post(
            '/api/v1/auth/login',
            json={'email': 'Mixed.Case@Example.com', 'password': 'testpassword123'}
        )

        assert response.status_code == 200
        assert response.json()['user']['id'] == str(user.id)

    async def test_login_wrong_password(self, client: AsyncClient, student_user: User):
        response = await client.post(
            '/api/v1/auth/login',
            json={'email': student_user.email, 'password': 'wrongpassword'}
        )

        assert response.status_code == 401
        assert response.json()['detail'] == 'Invalid credentials'

    async def test_login_unknown_email(self, client: AsyncClient):
        response = await client.post(
            '/api/v1/auth/login',
            json={'email': 'nobody@example.com', 'password': 'whatever'}
        )

        assert response.status_code == 401

    async def test_login_inactive_user(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.STUDENT, is_active=False)

        response = await client.post(
            '/api/v1/auth/login',
            json={'email': user.email, 'password': 'testpassword123'}
        )

        assert response.status_code == 403

    async def test_token_from_login_is_accepted(self, client: AsyncClient, student_user: User):
        login = await client.post(
            '/api/v1/auth/login',
            json={'email': student_user.email, 'password': 'testpassword123'}
        )
        token = login.json()['token']

        response = await client.get('/api/v1/auth/me', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 200
        assert response.json()['email'] == student_user.email


class TestCurrentUser:

    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/me')

        assert response.status_code == 401
        assert response.json()['detail'] == 'Not authorized, no token'

    async def test_me_with_garbage_token(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/me', headers={'Authorization': 'Bearer not.a.jwt'})

        assert response.status_code == 401

    async def test_update_profile_password(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.HOD, branch='CSE', password_reset_required=True)

        response = await client.put(
            '/api/v1/auth/me',
            json={'name': 'Renamed', 'password': 'brandnew123'},
            headers=auth_headers_for(user)
        )

        assert response.status_code == 200
        assert response.json()['name'] == 'Renamed'
        assert response.json()['password_reset_required'] is False

        login = await client.post('/api/v1/auth/login', json={'email': user.email, 'password': 'brandnew123'})
        assert login.status_code == 200


class TestUserAdministration:

    async def test_create_user_with_default_password(self, client: AsyncClient, admin_headers):
        response = await client.post(
            '/api/v1/auth/users',
            json={'name': 'New HOD', 'email': 'hod.ece@example.com', 'role': 'hod', 'branch': 'Electronics'},
            headers=admin_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body['role'] == 'hod'
        assert body['password_reset_required'] is True
        assert body['roll_number'] is None

        login = await client.post('/api/v1/auth/login', json={'email': 'hod.ece@example.com', 'password': 'hod@123'})
        assert login.status_code == 200
        assert login.json()['password_reset_required'] is True

    async def test_create_student_gets_roll_number(self, client: AsyncClient, admin_headers):
        response = await client.post(
            '/api/v1/auth/users',
            json={'name': 'New Student', 'email': 'stu@example.com', 'role': 'student', 'year': 1},
            headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()['roll_number'] == '232P4R0001'

    async def test_create_user_requires_admin(self, client: AsyncClient, hod_headers):
        response = await client.post(
            '/api/v1/auth/users',
            json={'name': 'X', 'email': 'x@example.com', 'role': 'faculty'},
            headers=hod_headers
        )

        assert response.status_code == 403
        assert response.json()['code'] == 'ROLE_REQUIRED'

    async def test_list_users_filters(self, client: AsyncClient, admin_headers, make_user):
        await make_user(UserRole.STUDENT, name='Alice Student', branch='CSE')
        await make_user(UserRole.STUDENT, name='Bob Student', branch='Civil')
        await make_user(UserRole.FACULTY, name='Carol Faculty', branch='CSE')

        response = await client.get('/api/v1/auth/users?role=student&branch=CSE', headers=admin_headers)
        assert [u['name'] for u in response.json()] == ['Alice Student']

        response = await client.get('/api/v1/auth/users?search=carol', headers=admin_headers)
        assert [u['name'] for u in response.json()] == ['Carol Faculty']

    async def test_update_user(self, client: AsyncClient, admin_headers, student_user: User):
        response = await client.put(
            f'/api/v1/auth/users/{student_user.id}',
            json={'year': 3, 'is_active': False},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()['year'] == 3
        assert response.json()['is_active'] is False

    async def test_update_ignores_null_required_fields(self, client: AsyncClient, admin_headers, student_user: User):
        response = await client.put(
            f'/api/v1/auth/users/{student_user.id}',
            json={'email': None, 'role': None, 'is_active': None, 'year': 4},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()['email'] == student_user.email
        assert response.json()['role'] == 'student'
        assert response.json()['is_active'] is True
        assert response.json()['year'] == 4

    async def test_blank_roll_number_clears_it(self, client: AsyncClient, admin_headers, make_user):
        first = await make_user(UserRole.STUDENT)
        second = await make_user(UserRole.STUDENT)

        for user in (first, second):
            response = await client.put(
                f'/api/v1/auth/users/{user.id}',
                json={'roll_number': '   '},
                headers=admin_headers
            )
            assert response.status_code == 200
            assert response.json()['roll_number'] is None

    async def test_update_duplicate_roll_number(self, client: AsyncClient, admin_headers, make_user):
        taken = await make_user(UserRole.STUDENT, roll_number='232P4R0100')
        other = await make_user(UserRole.STUDENT)

        response = await client.put(
            f'/api/v1/auth/users/{other.id}',
            json={'roll_number': ' 232P4R0100 '},
            headers=admin_headers
        )

        assert response.status_code == 409
        assert taken.roll_number == '232P4R0100'

    async def test_update_missing_user(self, client: AsyncClient, admin_headers):
        response = await client.put(
            '/api/v1/auth/users/00000000-0000-0000-0000-000000000000',
            json={'year': 3},
            headers=admin_headers
        )

        assert response.status_code == 404

    async def test_delete_user_removes_feedback(
        self, client: AsyncClient, admin_headers, student_user: User, subject, db_session
    ):
        submit = await client.post(
            '/api/v1/feedback',
            json={'subject_id': str(subject.id), 'answers': ratings_for(subject)},
            headers=auth_headers_for(student_user)
        )
        assert submit.status_code == 201

        response = await client.delete(f'/api/v1/auth/users/{student_user.id}', headers=admin_headers)

        assert response.status_code == 200
        remaining = await db_session.execute(select(Feedback).where(Feedback.subject_id == subject.id))
        assert remaining.scalars().all() == []

    async def test_cannot_delete_self(self, client: AsyncClient, admin_user: User, admin_headers):
        response = await client.delete(f'/api/v1/auth/users/{admin_user.id}', headers=admin_headers)

        assert response.status_code == 400

    async def test_reset_password(self, client: AsyncClient, admin_headers, student_user: User):
        response = await client.post(f'/api/v1/auth/reset-password/{student_user.id}', headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['temporary_password'] == 'student@123'

        login = await client.post('/api/v1/auth/login', json={'email': student_user.email, 'password': 'student@123'})
        assert login.status_code == 200
        assert login.json()['password_reset_required'] is True


class TestBulkRegistration:

    async def test_bulk_register_reports_failures(self, client: AsyncClient, admin_headers, student_user: User):
        payload = {
            'students': [
                {'name': 'One', 'email': 'one@example.com', 'branch': 'CSE', 'year': 1},
                {'name': 'Two', 'email': 'two@example.com', 'branch': 'CSE', 'year': 1},
                {'name': 'Dup', 'email': 'one@example.com', 'branch': 'CSE', 'year': 1},
                {'name': 'Existing', 'email': student_user.email},
            ],
            'send_emails': False,
        }

        response = await client.post('/api/v1/auth/register/bulk', json=payload, headers=admin_headers)

        assert response.status_code == 200
        results = response.json()['results']
        assert results['total'] == 4
        assert [r['email'] for r in results['successful']] == ['one@example.com', 'two@example.com']
        assert [r['roll_number'] for r in results['successful']] == ['232P4R0001', '232P4R0002']
        assert len(results['failed']) == 2

    async def test_bulk_register_rejects_empty_list(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/v1/auth/register/bulk', json={'students': []}, headers=admin_headers)

        assert response.status_code == 422
