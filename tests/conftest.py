"""
Thesis Repository - Test Configuration and Fixtures
"""
import os
from datetime import datetime
from typing import AsyncGenerator, Callable, Optional
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['DEBUG'] = 'false'

from thesis_repository.main import app
from thesis_repository.core.database import Base, get_db
from thesis_repository.core.security import get_password_hash, create_access_token
from thesis_repository.models.document import Document, DocumentStatus
from thesis_repository.models.user import User, UserRole

fake = Faker()

TEST_PASSWORD = 'testpassword123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
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


async def _create_user(session: AsyncSession, role: UserRole, **overrides) -> User:
    user = User(
        email=overrides.pop('email', fake.unique.email()),
        first_name=fake.first_name(),
        last_name=fake.last_name(),
        hashed_password=get_password_hash(TEST_PASSWORD),
        role=role,
        is_active=overrides.pop('is_active', True),
        department=overrides.pop('department', 'Computer Science' if role != UserRole.STUDENT else None),
        **overrides,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
def user_factory(db_session: AsyncSession) -> Callable:
    async def factory(role: UserRole = UserRole.STUDENT, **overrides) -> User:
        return await _create_user(db_session, role, **overrides)
    return factory


@pytest.fixture
async def student_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.STUDENT, program='BS Computer Science')


@pytest.fixture
async def other_student(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.STUDENT)


@pytest.fixture
async def faculty_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.FACULTY)


@pytest.fixture
async def librarian_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.LIBRARIAN)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.ADMIN)


def make_auth_headers(user: User) -> dict:
    """Bearer header for a user, with the same claims the login endpoint issues"""
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers(student_user: User) -> dict:
    return make_auth_headers(student_user)


@pytest.fixture
def faculty_headers(faculty_user: User) -> dict:
    return make_auth_headers(faculty_user)


@pytest.fixture
def librarian_headers(librarian_user: User) -> dict:
    return make_auth_headers(librarian_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return make_auth_headers(admin_user)


@pytest.fixture
def document_factory(db_session: AsyncSession) -> Callable:
    """Insert a document directly, bypassing the workflow"""
    async def factory(
        owner: User,
        status: DocumentStatus = DocumentStatus.PENDING,
        adviser: Optional[User] = None,
        program: str = 'BS Computer Science',
        title: Optional[str] = None,
        created_at: Optional[datetime] = None,
        **overrides,
    ) -> Document:
        document = Document(
            title=title or fake.sentence(nb_words=6).rstrip('.'),
            abstract=fake.paragraph(nb_sentences=4),
            authors=[owner.full_name],
            program=program,
            year=2024,
            user_id=owner.id,
            adviser_id=adviser.id if adviser else owner.id,
            adviser_name=adviser.full_name if adviser else None,
            status=status,
            created_at=created_at or datetime.utcnow(),
            published_at=datetime.utcnow() if status == DocumentStatus.PUBLISHED else None,
            **overrides,
        )
        db_session.add(document)
        await db_session.commit()
        await db_session.refresh(document)
        return document
    return factory


@pytest.fixture
def document_payload() -> dict:
    return {
        'title': 'Machine Learning Approaches to Crop Yield Prediction',
        'abstract': fake.paragraph(nb_sentences=5),
        'program': 'BS Computer Science',
        'year': 2024,
        'authors': ['Maria Santos', 'Juan Dela Cruz'],
        'keywords': ['Machine Learning', 'agriculture', 'machine learning'],
    }
