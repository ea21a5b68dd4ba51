"""
Student Feedback System - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Callable
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment before the app reads its settings
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_feedback.db'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = TEST_DATABASE_URL
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''
os.environ['LOG_LEVEL'] = 'WARNING'

from feedback_app.main import app
from feedback_app.core.database import Base, get_db
from feedback_app.core.security import get_password_hash
from feedback_app.models.subject import Subject, STANDARD_QUESTIONS
from feedback_app.models.user import User, UserRole
from helpers import auth_headers_for

fake = Faker()

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)

TEST_PASSWORD = 'testpassword123'


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory for persisted users: await make_user(UserRole.HOD, branch='CSE')"""
    async def _make_user(role: UserRole = UserRole.STUDENT, **fields) -> User:
        data = {
            'name': fake.name(),
            'email': fake.unique.email(),
            'hashed_password': get_password_hash(TEST_PASSWORD),
            'role': role,
            'is_active': True,
            'password_reset_required': False,
        }
        if role == UserRole.STUDENT:
            data.update({
                'roll_number': f"TST{fake.unique.random_int(min=1000, max=9999)}",
                'branch': 'CSE',
                'year': 2,
            })
        data.update(fields)
        user = User(**data)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_subject(db_session: AsyncSession) -> Callable:
    async def _make_subject(**fields) -> Subject:
        data = {
            'name': 'Data Structures',
            'code': f"CS{fake.unique.random_int(min=100, max=999)}",
            'instructor': 'Dr. Arjun Verma',
            'department': 'Engineering',
            'semester': 3,
            'branch': 'CSE',
            'questions': list(STANDARD_QUESTIONS[:3]),
        }
        data.update(fields)
        subject = Subject(**data)
        db_session.add(subject)
        await db_session.commit()
        await db_session.refresh(subject)
        return subject

    return _make_subject


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user(UserRole.ADMIN, name='Admin User')


@pytest.fixture
async def student_user(make_user) -> User:
    return await make_user(UserRole.STUDENT, branch='CSE', year=2)


@pytest.fixture
async def hod_user(make_user) -> User:
    return await make_user(UserRole.HOD, branch='CSE')


@pytest.fixture
async def dean_user(make_user) -> User:
    return await make_user(UserRole.DEAN)


@pytest.fixture
async def subject(make_subject) -> Subject:
    return await make_subject()


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def student_headers(student_user: User) -> dict:
    return auth_headers_for(student_user)


@pytest.fixture
def hod_headers(hod_user: User) -> dict:
    return auth_headers_for(hod_user)


@pytest.fixture
def dean_headers(dean_user: User) -> dict:
    return auth_headers_for(dean_user)
