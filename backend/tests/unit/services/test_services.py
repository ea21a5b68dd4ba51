"""
Unit Tests for Services
"""
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from feedback_app.models.user import UserRole
from feedback_app.services.email_service import EmailService
from feedback_app.services.roll_numbers import next_roll_number, next_roll_number_from
from feedback_app.utils.pagination import pagination_meta


class TestRollNumbers:

    def test_first_roll_number(self):
        assert next_roll_number_from([], '232P4R') == '232P4R0001'

    def test_after_highest_suffix(self):
        existing = ['232P4R0007', '232P4R0003', None, '232P4RX001', '21CS0099', '232P4R12345']

        assert next_roll_number_from(existing, '232P4R') == '232P4R0008'

    async def test_reads_existing_from_database(self, make_user, db_session):
        await make_user(UserRole.STUDENT, roll_number='232P4R0041')
        await make_user(UserRole.STUDENT, roll_number='OTHER0100')

        assert await next_roll_number(db_session) == '232P4R0042'
        assert await next_roll_number(db_session, prefix='OTHER') == 'OTHER0101'


class TestPagination:

    def test_meta(self):
        assert pagination_meta(45, 2, 20) == {
            'total': 45,
            'page': 2,
            'page_size': 20,
            'total_pages': 3,
            'has_next': True,
            'has_previous': True,
        }

    def test_empty_result_has_one_page(self):
        meta = pagination_meta(0, 1, 10)

        assert meta['total_pages'] == 1
        assert meta['has_next'] is False


class TestEmailService:
    """EmailService with SMTP mocked out"""

    @pytest.fixture
    def service(self):
        service = EmailService()
        service.smtp_host = 'smtp.example.com'
        service.smtp_port = 587
        service.smtp_user = 'mailer@example.com'
        service.smtp_password = 'app-password-1234'
        service.use_tls = True
        return service

    @pytest.fixture
    def user(self):
        return SimpleNamespace(
            name='Asha',
            email='asha@example.com',
            role=UserRole.STUDENT,
            roll_number='232P4R0001',
        )

    def test_unconfigured(self):
        service = EmailService()
        service.smtp_user = ''
        service.smtp_password = ''

        config = service.check_configuration()

        assert service.is_configured is False
        assert config['is_configured'] is False
        assert 'SMTP_USER is not set' in config['issues']

    def test_gmail_hints(self, service):
        service.smtp_host = 'smtp.gmail.com'
        service.smtp_password = 'short'

        config = service.check_configuration()

        assert 'SMTP_USER should be a Gmail address when using Gmail' in config['issues']
        assert 'SMTP_PASSWORD looks too short for a Gmail App Password' in config['issues']

    def test_masked_user(self, service):
        assert service.masked_user == 'ma***@example.com'

    def test_tls_mode_by_port(self, service):
        assert service._smtp_kwargs()['start_tls'] is True
        assert service._smtp_kwargs()['use_tls'] is False

        service.smtp_port = 465

        assert service._smtp_kwargs()['use_tls'] is True
        assert service._smtp_kwargs()['start_tls'] is False

    async def test_send_password_email(self, service, user):
        with patch('feedback_app.services.email_service.aiosmtplib.send', new_callable=AsyncMock) as send:
            sent = await service.send_password_email(user, 'student@123')

        assert sent is True
        message = send.await_args.args[0]
        assert message['To'] == 'asha@example.com'
        body = message.as_string()
        assert 'student@123' in body
        assert '232P4R0001' in body
        assert send.await_args.kwargs['username'] == 'mailer@example.com'

    async def test_send_failure_returns_false(self, service, user):
        failing = AsyncMock(side_effect=OSError('connection refused'))
        with patch('feedback_app.services.email_service.aiosmtplib.send', failing):
            sent = await service.send_password_email(user, 'student@123')

        assert sent is False

    async def test_skips_when_unconfigured(self, user):
        service = EmailService()
        service.smtp_user = ''

        with patch('feedback_app.services.email_service.aiosmtplib.send', new_callable=AsyncMock) as send:
            sent = await service.send_password_email(user, 'x')

        assert sent is False
        send.assert_not_awaited()

    async def test_bulk_summary_lists_failures(self, service):
        results = {
            'successful': [{'email': 'a@example.com'}],
            'failed': [{'email': 'b@example.com', 'reason': 'Email already exists'}],
            'total': 2,
        }
        with patch('feedback_app.services.email_service.aiosmtplib.send', new_callable=AsyncMock) as send:
            await service.send_bulk_registration_summary('admin@example.com', results)

        message = send.await_args.args[0]
        assert message['Subject'] == 'Bulk registration: 1 created, 1 failed'
        assert 'b@example.com' in message.as_string()

    async def test_verify_connection(self, service):
        smtp = MagicMock()
        smtp.__aenter__ = AsyncMock(return_value=smtp)
        smtp.__aexit__ = AsyncMock(return_value=False)
        smtp.login = AsyncMock()

        with patch('feedback_app.services.email_service.aiosmtplib.SMTP', return_value=smtp):
            assert await service.verify_connection() is True

        smtp.login.assert_awaited_once_with('mailer@example.com', 'app-password-1234')
