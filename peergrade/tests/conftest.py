"""
Shared fixtures: in-memory database, pinned clock and random source, and
small factories for users, projects and deliverables.
"""
import random
from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from peergrade.config.settings import Settings
from peergrade.database import Database
from peergrade.main import create_app
from peergrade.orm.deliverable import Deliverable, DeliverableStatus
from peergrade.orm.project import Project, ProjectStatus
from peergrade.orm.user import User, UserRole
from peergrade.rbac import create_access_token
from peergrade.security.access_policy import Subject

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
START_TIME = datetime(2026, 3, 2, 9, 0, 0)


class FrozenClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, start: datetime = START_TIME):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        jwt_secret_key="test-secret",
        random_seed=1234,
        environment="test",
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    database = Database(TEST_DATABASE_URL)
    await database.init_db()
    yield database
    await database.drop_all()
    await database.close_db()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


# ==========================================
# Factories
#
# Factories return detached rows, so a service call that rolls back
# cannot expire them under the test.
# ==========================================

async def make_user(
    db: AsyncSession,
    name: str,
    role: UserRole = UserRole.student
) -> User:
    user = User(
        full_name=name.title(),
        email=f"{name.lower().replace(' ', '.')}@test.com",
        password_hash="hashed",
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    db.expunge(user)
    return user


async def make_project(db: AsyncSession, owner: User, title: str = "Capstone Project") -> Project:
    project = Project(
        title=title,
        description="Final year project",
        user_id=owner.id,
        status=ProjectStatus.active,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    db.expunge(project)
    return project


async def make_deliverable(
    db: AsyncSession,
    project: Project,
    status: DeliverableStatus = DeliverableStatus.pending,
    title: str = "Milestone 1"
) -> Deliverable:
    deliverable = Deliverable(
        project_id=project.id,
        title=title,
        due_date=START_TIME + timedelta(days=7),
        status=status,
    )
    db.add(deliverable)
    await db.commit()
    await db.refresh(deliverable)
    db.expunge(deliverable)
    return deliverable


def subject_of(user: User) -> Subject:
    return Subject.of(user)


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    return await make_user(db_session, "owner")


@pytest_asyncio.fixture
async def professor(db_session: AsyncSession) -> User:
    return await make_user(db_session, "professor", UserRole.professor)


@pytest_asyncio.fixture
async def students(db_session: AsyncSession) -> list:
    return [await make_user(db_session, f"student {i}") for i in range(1, 6)]


@pytest_asyncio.fixture
async def project(db_session: AsyncSession, owner: User) -> Project:
    return await make_project(db_session, owner)


@pytest_asyncio.fixture
async def deliverable(db_session: AsyncSession, project: Project) -> Deliverable:
    return await make_deliverable(db_session, project)


@pytest_asyncio.fixture
async def open_deliverable(db_session: AsyncSession, project: Project) -> Deliverable:
    return await make_deliverable(db_session, project, DeliverableStatus.open_for_grading)


# ==========================================
# HTTP
# ==========================================

@pytest_asyncio.fixture
async def app(settings: Settings, clock: FrozenClock, rng: random.Random):
    app = create_app(settings, clock=clock, rng=rng)
    await app.state.database.init_db()
    yield app
    await app.state.database.close_db()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def app_session(app) -> AsyncGenerator[AsyncSession, None]:
    async with app.state.database.session() as session:
        yield session


def auth_headers(settings: Settings, user: User) -> dict:
    token = create_access_token(
        settings,
        {"sub": user.email, "user_id": user.id, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}
