"""
Unit Tests for Subject API Endpoints
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from feedback_app.models.feedback import Feedback
from feedback_app.models.subject import STANDARD_QUESTIONS
from feedback_app.models.user import UserRole
from helpers import auth_headers_for, ratings_for


class TestSubjectCrud:

    async def test_create_subject_uses_standard_questions(self, client: AsyncClient, admin_headers):
        response = await client.post(
            '/api/v1/subjects',
            json={'name': 'Operating Systems', 'code': 'CS401', 'instructor': 'Dr. Rao', 'semester': 4, 'branch': 'CSE'},
            headers=admin_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body['questions'] == STANDARD_QUESTIONS
        assert body['year'] == 2

    async def test_create_subject_with_custom_questions(self, client: AsyncClient, admin_headers):
        response = await client.post(
            '/api/v1/subjects',
            json={'name': 'Compilers', 'code': 'CS601', 'questions': ['  Clarity?  ', '', 'Pace?']},
            headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()['questions'] == ['Clarity?', 'Pace?']

    async def test_create_subject_requires_admin(self, client: AsyncClient, student_headers):
        response = await client.post('/api/v1/subjects', json={'name': 'X', 'code': 'X1'}, headers=student_headers)

        assert response.status_code == 403

    async def test_create_subject_invalid_semester(self, client: AsyncClient, admin_headers):
        response = await client.post(
            '/api/v1/subjects',
            json={'name': 'X', 'code': 'X1', 'semester': 9},
            headers=admin_headers
        )

        assert response.status_code == 422

    async def test_list_subjects_filters(self, client: AsyncClient, student_headers, make_subject):
        await make_subject(name='Data Structures', branch='CSE', semester=3)
        await make_subject(name='Thermodynamics', branch='Mechanical', semester=3)
        await make_subject(name='Networks', branch='CSE', semester=5)

        response = await client.get('/api/v1/subjects?branch=CSE', headers=student_headers)
        assert [s['name'] for s in response.json()] == ['Data Structures', 'Networks']

        response = await client.get('/api/v1/subjects?semester=3', headers=student_headers)
        assert len(response.json()) == 2

    async def test_list_subjects_requires_login(self, client: AsyncClient):
        response = await client.get('/api/v1/subjects')

        assert response.status_code == 401

    async def test_get_missing_subject(self, client: AsyncClient, student_headers):
        response = await client.get(
            '/api/v1/subjects/00000000-0000-0000-0000-000000000000',
            headers=student_headers
        )

        assert response.status_code == 404
        assert response.json()['code'] == 'SUBJECT_NOT_FOUND'

    async def test_update_subject(self, client: AsyncClient, admin_headers, subject):
        response = await client.put(
            f'/api/v1/subjects/{subject.id}',
            json={'instructor': 'Prof. Shah', 'semester': 5},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()['instructor'] == 'Prof. Shah'
        assert response.json()['year'] == 3

    async def test_update_ignores_null_name_and_code(self, client: AsyncClient, admin_headers, subject):
        response = await client.put(
            f'/api/v1/subjects/{subject.id}',
            json={'name': None, 'code': None, 'instructor': None},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()['name'] == subject.name
        assert response.json()['code'] == subject.code
        assert response.json()['instructor'] is None

    async def test_delete_subject_removes_feedback(
        self, client: AsyncClient, admin_headers, student_user, subject, db_session
    ):
        await client.post(
            '/api/v1/feedback',
            json={'subject_id': str(subject.id), 'answers': ratings_for(subject)},
            headers=auth_headers_for(student_user)
        )

        response = await client.delete(f'/api/v1/subjects/{subject.id}', headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['deleted_feedback'] == 1
        remaining = await db_session.execute(select(Feedback))
        assert remaining.scalars().all() == []


class TestStudentSubjects:

    async def test_subjects_for_student_year(self, client: AsyncClient, make_user, make_subject):
        student = await make_user(UserRole.STUDENT, branch='CSE', year=2)
        await make_subject(name='Year Two A', branch='CSE', semester=3)
        await make_subject(name='Year Two B', branch='CSE', semester=4)
        await make_subject(name='Year One', branch='CSE', semester=2)
        await make_subject(name='Other Branch', branch='Civil', semester=3)

        response = await client.get('/api/v1/subjects/student', headers=auth_headers_for(student))

        assert response.status_code == 200
        assert [s['name'] for s in response.json()] == ['Year Two A', 'Year Two B']

    async def test_student_without_branch_gets_nothing(self, client: AsyncClient, make_user, subject):
        student = await make_user(UserRole.STUDENT, branch=None)

        response = await client.get('/api/v1/subjects/student', headers=auth_headers_for(student))

        assert response.json() == []

    async def test_student_subjects_only_for_students(self, client: AsyncClient, hod_headers):
        response = await client.get('/api/v1/subjects/student', headers=hod_headers)

        assert response.status_code == 403
