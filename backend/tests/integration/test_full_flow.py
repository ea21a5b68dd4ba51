"""
Integration Tests for the end-to-end feedback cycle
"""
from datetime import datetime, timedelta
from httpx import AsyncClient
from faker import Faker

fake = Faker()


class TestFeedbackCycle:
    """Student registers, admin opens a period, student answers, staff read the reports"""

    async def test_register_submit_and_report(self, client: AsyncClient, admin_headers, hod_headers, dean_headers):
        # Student registers and logs in
        email = fake.unique.email()
        password = 'securePassword123'
        register = await client.post('/api/v1/auth/register', json={
            'name': fake.name(),
            'email': email,
            'password': password,
            'branch': 'CSE',
            'year': 2,
        })
        assert register.status_code == 201

        login = await client.post('/api/v1/auth/login', json={'email': email, 'password': password})
        assert login.status_code == 200
        student_headers = {'Authorization': f"Bearer {login.json()['token']}"}

        # Admin creates a subject and opens a period for it
        subject = await client.post(
            '/api/v1/subjects',
            json={'name': 'Computer Networks', 'code': 'CS305', 'instructor': 'Dr. Rao', 'semester': 3, 'branch': 'CSE'},
            headers=admin_headers
        )
        assert subject.status_code == 201
        subject = subject.json()

        now = datetime.utcnow()
        period = await client.post('/api/v1/feedback-periods', json={
            'title': 'Midterm Feedback',
            'description': 'First half of the semester',
            'feedback_type': 'midterm',
            'term': 1,
            'start_date': (now - timedelta(hours=1)).isoformat(),
            'end_date': (now + timedelta(days=7)).isoformat(),
            'subjects': [subject['id']],
        }, headers=admin_headers)
        assert period.status_code == 201
        period = period.json()['feedback_period']

        # Student sees the subject and the open period
        subjects = await client.get('/api/v1/subjects/student', headers=student_headers)
        assert [s['id'] for s in subjects.json()] == [subject['id']]

        active = await client.get('/api/v1/feedback-periods/active', headers=student_headers)
        assert [p['id'] for p in active.json()] == [period['id']]

        # Student answers every question
        answers = [{'question': q, 'answer': 4} for q in subject['questions']]
        submitted = await client.post(
            '/api/v1/feedback',
            json={'subject_id': subject['id'], 'answers': answers, 'comments': 'Clear lectures'},
            headers=student_headers
        )
        assert submitted.status_code == 201
        assert submitted.json()['feedback_period_id'] == period['id']
        assert submitted.json()['feedback_type'] == 'midterm'

        mine = await client.get('/api/v1/feedback/me', headers=student_headers)
        assert len(mine.json()) == 1

        # Staff see it in their reports
        stats = await client.get(f"/api/v1/feedback-periods/{period['id']}/stats", headers=admin_headers)
        assert stats.json()['statistics']['total_feedbacks'] == 1

        hod_reports = await client.get('/api/v1/hod/reports', headers=hod_headers)
        assert hod_reports.status_code == 200
        assert hod_reports.json()[0]['average_rating'] == 4.0

        dean_stats = await client.get('/api/v1/dean/dashboard-stats', headers=dean_headers)
        assert dean_stats.status_code == 200
        assert dean_stats.json()['stats']['total_feedback'] == 1
