"""
Unit Tests for request schemas
"""
import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from feedback_app.schemas.email import EmailTestRequest
from feedback_app.schemas.feedback import Answer, FeedbackSubmit
from feedback_app.schemas.feedback_period import FeedbackPeriodCreate, to_naive_utc
from feedback_app.schemas.settings import SystemSettingsUpdate
from feedback_app.schemas.subject import SubjectCreate
from feedback_app.schemas.user import UserUpdate


class TestAnswers:

    @pytest.mark.parametrize("rating", [1, 3, 5, 4.5])
    def test_rating_in_range(self, rating):
        assert Answer(question='Q', answer=rating).is_rating

    @pytest.mark.parametrize("rating", [0, 5.5, -1])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValidationError):
            Answer(question='Q', answer=rating)

    def test_comment_only_answer(self):
        answer = Answer(question='Anything else?', comment='More labs')

        assert answer.is_rating is False

    def test_submission_needs_a_rating(self):
        with pytest.raises(ValidationError):
            FeedbackSubmit(subject_id='s1', answers=[{'question': 'Q', 'comment': 'ok'}])

    def test_submission_needs_answers(self):
        with pytest.raises(ValidationError):
            FeedbackSubmit(subject_id='s1', answers=[])


class TestPeriods:

    def payload(self, **overrides):
        data = {
            'title': 'Midterm feedback',
            'description': 'Mid-semester review',
            'feedback_type': 'midterm',
            'term': 1,
            'start_date': datetime(2024, 9, 1),
            'end_date': datetime(2024, 9, 15),
        }
        data.update(overrides)
        return data

    def test_aware_dates_become_naive_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))

        period = FeedbackPeriodCreate(**self.payload(start_date=datetime(2024, 9, 1, 5, 30, tzinfo=ist)))

        assert period.start_date == datetime(2024, 9, 1, 0, 0)
        assert period.start_date.tzinfo is None

    @pytest.mark.parametrize("years", [[0], [1, 5]])
    def test_years_out_of_range(self, years):
        with pytest.raises(ValidationError):
            FeedbackPeriodCreate(**self.payload(years=years))

    def test_term_out_of_range(self):
        with pytest.raises(ValidationError):
            FeedbackPeriodCreate(**self.payload(term=5))

    def test_to_naive_utc_passes_naive_through(self):
        value = datetime(2024, 1, 1, 12)

        assert to_naive_utc(value) is value
        assert to_naive_utc(None) is None


class TestSubjects:

    def test_questions_are_cleaned(self):
        subject = SubjectCreate(name='DBMS', code='CS302', questions=['  Pace? ', '', '   ', 'Clarity?'])

        assert subject.questions == ['Pace?', 'Clarity?']

    def test_questions_optional(self):
        assert SubjectCreate(name='DBMS', code='CS302').questions is None


class TestSystemSettings:

    def test_flags_must_be_booleans(self):
        with pytest.raises(ValidationError):
            SystemSettingsUpdate(
                feedback_enabled='yes',
                registration_enabled=True,
                maintenance_mode=False,
                allow_anonymous_feedback=False,
            )

    def test_deadline_normalised(self):
        update = SystemSettingsUpdate(
            feedback_enabled=True,
            registration_enabled=True,
            maintenance_mode=False,
            allow_anonymous_feedback=False,
            feedback_deadline=datetime(2024, 12, 31, 18, 0, tzinfo=timezone.utc),
        )

        assert update.feedback_deadline == datetime(2024, 12, 31, 18, 0)


class TestUserUpdate:

    @pytest.mark.parametrize("raw,expected", [
        ('', None),
        ('   ', None),
        (' 232P4R0009 ', '232P4R0009'),
    ])
    def test_roll_number_cleaned(self, raw, expected):
        assert UserUpdate(roll_number=raw).roll_number == expected


class TestEmailTest:

    def test_requires_valid_address(self):
        with pytest.raises(ValidationError):
            EmailTestRequest(email='nope')
