"""
IFQE Portal - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Awaitable, Callable
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_ifqe.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['S3_BUCKET_NAME'] = 'test-bucket'
os.environ['LOG_FILE'] = ''

from ifqe_portal.main import app
from ifqe_portal.core.database import Base, get_db
from ifqe_portal.core.security import create_access_token
from ifqe_portal.models import (
    Department,
    School,
    Submission,
    SubmissionStatus,
    User,
    UserRole,
)
from ifqe_portal.services.storage_service import StorageService, get_storage_service

from mocks.mock_s3 import InMemoryS3Client

fake = Faker()

TEST_BUCKET = 'test-bucket'
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_ifqe.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
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
def s3_client() -> InMemoryS3Client:
    return InMemoryS3Client()


@pytest.fixture
def storage(s3_client: InMemoryS3Client) -> StorageService:
    return StorageService(client=s3_client, bucket_name=TEST_BUCKET)


@pytest.fixture
async def client(db_session: AsyncSession, storage: StorageService) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and storage overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== Organisation ====================

@pytest.fixture
async def school(db_session: AsyncSession) -> School:
    school = School(name="School of Engineering")
    db_session.add(school)
    await db_session.commit()
    return school


@pytest.fixture
async def department(db_session: AsyncSession, school: School) -> Department:
    department = Department(name="Computer Science", school=school)
    db_session.add(department)
    await db_session.commit()
    return department


@pytest.fixture
async def other_department(db_session: AsyncSession, school: School) -> Department:
    department = Department(name="Mechanical Engineering", school=school)
    db_session.add(department)
    await db_session.commit()
    return department


# ==================== Users ====================

async def _create_user(db_session: AsyncSession, role: UserRole, department: Department = None) -> User:
    user = User(
        email=fake.unique.email(),
        full_name=fake.name(),
        role=role,
        department_id=department.id if department else None,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.ADMIN)


@pytest.fixture
async def superuser_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.SUPERUSER)


@pytest.fixture
async def qaa_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.QAA)


@pytest.fixture
async def department_user(db_session: AsyncSession, department: Department) -> User:
    return await _create_user(db_session, UserRole.DEPARTMENT, department)


@pytest.fixture
async def other_department_user(db_session: AsyncSession, other_department: Department) -> User:
    return await _create_user(db_session, UserRole.DEPARTMENT, other_department)


def headers_for(user: User) -> dict:
    """Generate authentication headers for a user"""
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def superuser_auth_headers(superuser_user: User) -> dict:
    return headers_for(superuser_user)


@pytest.fixture
def qaa_auth_headers(qaa_user: User) -> dict:
    return headers_for(qaa_user)


@pytest.fixture
def department_auth_headers(department_user: User) -> dict:
    return headers_for(department_user)


@pytest.fixture
def other_department_auth_headers(other_department_user: User) -> dict:
    return headers_for(other_department_user)


# ==================== Submissions ====================

@pytest.fixture
def make_submission(
    db_session: AsyncSession, school: School, department: Department
) -> Callable[..., Awaitable[Submission]]:
    """Factory creating a completed submission; override any column via kwargs"""
    async def _make(**overrides) -> Submission:
        values = {
            "title": "Annual Report",
            "academic_year": "2024-25",
            "status": SubmissionStatus.COMPLETED,
            "school": school,
            "department": department,
            "part_a": None,
            "part_b": None,
        }
        values.update(overrides)
        submission = Submission(**values)
        db_session.add(submission)
        await db_session.commit()
        return submission

    return _make
