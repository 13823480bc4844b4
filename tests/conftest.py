"""
Innovation Portal - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Callable, Awaitable, Optional
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'

from app.main import app
from app.core.database import Database, get_db
from app.core.security import hash_password, create_access_token
from app.models.notification import Notification
from app.models.project import Project, ProjectComment
from app.models.request import FundingRequest, CertificateRequest, RequestStatus
from app.models.user import User, Admin, Role
from app.models.verification import VerificationApplication, ApplicationStatus, Sector

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
PASSWORD = 'testpassword123'


@pytest.fixture(scope='function')
async def test_database() -> AsyncGenerator[Database, None]:
    """Fresh schema for each test"""
    database = Database(TEST_DATABASE_URL)
    database.connect()
    await database.drop_all()
    await database.create_all()
    yield database
    await database.drop_all()
    await database.disconnect()


@pytest.fixture(scope='function')
async def db_session(test_database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_database.session() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(test_database: Database, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.database = test_database

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers_for(account) -> dict:
    """Bearer header for a user or admin account"""
    token = create_access_token(account.id, account.email, account.role.value)
    return {'Authorization': f'Bearer {token}'}


async def notifications_for(db_session: AsyncSession, recipient_id: str, kind: Optional[str] = None):
    query = select(Notification).where(Notification.user_id == recipient_id)
    if kind:
        query = query.where(Notification.type == kind)
    result = await db_session.execute(query.order_by(Notification.created_at))
    return list(result.scalars().all())


# ==================== Factories ====================

@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def _make_user(verified: bool = False, **fields) -> User:
        user = User(
            email=fields.pop('email', fake.unique.email()),
            hashed_password=hash_password(PASSWORD),
            first_name=fields.pop('first_name', fake.first_name()),
            last_name=fields.pop('last_name', fake.last_name()),
            role=fields.pop('role', Role.USER),
            verified=verified,
            **fields
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_admin(db_session: AsyncSession) -> Callable[..., Awaitable[Admin]]:
    async def _make_admin(role: Role = Role.ADMIN) -> Admin:
        admin = Admin(
            email=fake.unique.email(),
            hashed_password=hash_password(PASSWORD),
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            role=role,
            verified=True,
        )
        db_session.add(admin)
        await db_session.commit()
        await db_session.refresh(admin)
        return admin

    return _make_admin


@pytest.fixture
def make_project(db_session: AsyncSession) -> Callable[..., Awaitable[Project]]:
    async def _make_project(author: User, **fields) -> Project:
        project = Project(
            title=fields.pop('title', fake.catch_phrase()),
            description=fields.pop('description', fake.paragraph()),
            sector=fields.pop('sector', 'Technology'),
            author_id=author.id,
            author_name=author.full_name,
            **fields
        )
        db_session.add(project)
        await db_session.commit()
        await db_session.refresh(project)
        return project

    return _make_project


@pytest.fixture
def make_legacy_comment(db_session: AsyncSession) -> Callable[..., Awaitable[ProjectComment]]:
    """Marker comment as older data stored it, with no structured request"""
    async def _make_comment(project: Project, author: User, content: str = "[COLLAB REQUEST] Count me in") -> ProjectComment:
        comment = ProjectComment(
            project_id=project.id,
            user_id=author.id,
            user_name=author.full_name,
            content=content,
        )
        db_session.add(comment)
        await db_session.commit()
        await db_session.refresh(comment)
        return comment

    return _make_comment


@pytest.fixture
def make_funding_request(db_session: AsyncSession) -> Callable[..., Awaitable[FundingRequest]]:
    async def _make_request(user: User, status: RequestStatus = RequestStatus.PENDING) -> FundingRequest:
        request = FundingRequest(
            user_id=user.id,
            title=fake.catch_phrase(),
            amount=25000.0,
            status=status,
        )
        db_session.add(request)
        await db_session.commit()
        await db_session.refresh(request)
        return request

    return _make_request


@pytest.fixture
def make_certificate_request(db_session: AsyncSession) -> Callable[..., Awaitable[CertificateRequest]]:
    async def _make_request(user: User, status: RequestStatus = RequestStatus.PENDING) -> CertificateRequest:
        request = CertificateRequest(
            user_id=user.id,
            certificate_type='Innovation',
            description=fake.sentence(),
            link=fake.url(),
            status=status,
        )
        db_session.add(request)
        await db_session.commit()
        await db_session.refresh(request)
        return request

    return _make_request


@pytest.fixture
def make_application(db_session: AsyncSession) -> Callable[..., Awaitable[VerificationApplication]]:
    async def _make_application(
        user: User,
        status: ApplicationStatus = ApplicationStatus.PENDING,
        **fields
    ) -> VerificationApplication:
        application = VerificationApplication(
            user_id=user.id,
            sector=fields.pop('sector', Sector.TECHNOLOGY),
            project_title=fields.pop('project_title', fake.catch_phrase()),
            user_email=user.email,
            user_name=user.full_name,
            status=status,
            **fields
        )
        db_session.add(application)
        await db_session.commit()
        await db_session.refresh(application)
        return application

    return _make_application


# ==================== Common accounts ====================

@pytest.fixture
async def test_user(make_user) -> User:
    """Unverified member"""
    return await make_user()


@pytest.fixture
async def verified_user(make_user) -> User:
    return await make_user(verified=True)


@pytest.fixture
async def admin_user(make_admin) -> Admin:
    return await make_admin()


@pytest.fixture
async def superadmin_user(make_admin) -> Admin:
    return await make_admin(role=Role.SUPERADMIN)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return auth_headers_for(test_user)


@pytest.fixture
def admin_auth_headers(admin_user: Admin) -> dict:
    """Generate authentication headers for admin user"""
    return auth_headers_for(admin_user)


@pytest.fixture
def superadmin_auth_headers(superadmin_user: Admin) -> dict:
    return auth_headers_for(superadmin_user)


@pytest.fixture
def headers_for() -> Callable[..., dict]:
    return auth_headers_for


@pytest.fixture
def fetch_notifications(db_session: AsyncSession):
    async def _fetch(recipient_id: str, kind: Optional[str] = None):
        return await notifications_for(db_session, recipient_id, kind)

    return _fetch
