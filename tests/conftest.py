"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, tables created and dropped per test
- User / workspace / member factories
- HTTPX AsyncClient with CSRF header and a helper to log in as a user
"""
import os
import uuid
from typing import AsyncGenerator, Callable, Generator

# Must be set before crm modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from crm.core.config import settings
from crm.core.deps import get_db
from crm.core.security import hash_password
from crm.db import models  # noqa: F401 - registers tables
from crm.db.base import Base
from crm.db.enums import Role
from crm.db.models import Member, User, Workspace
from crm.db.session import SessionLocal, engine
from crm.main import app
from crm.services import session_service, workspace_service

TEST_PASSWORD = "secret123"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code may commit freely."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory for users with a known password."""

    def _make(email: str | None = None, *, is_platform_admin: bool = False) -> User:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@test.com",
            password_hash=hash_password(TEST_PASSWORD),
            is_platform_admin=is_platform_admin,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def owner(make_user) -> User:
    return make_user("owner@test.com")


@pytest.fixture
def workspace(db: Session, owner: User) -> Workspace:
    """Workspace owned by ``owner`` with the default task templates."""
    return workspace_service.create_workspace(
        db, name="Test Workspace", slug=f"ws-{uuid.uuid4().hex[:8]}", owner_user_id=owner.id
    )


@pytest.fixture
def add_member(db: Session, make_user) -> Callable[..., tuple[User, Member]]:
    """Factory: new user joined to a workspace with the given role."""

    def _add(workspace: Workspace, role: Role | str, user: User | None = None) -> tuple[User, Member]:
        user = user or make_user()
        member = Member(
            workspace_id=workspace.id,
            user_id=user.id,
            role=role.value if isinstance(role, Role) else role,
        )
        db.add(member)
        db.commit()
        return user, member

    return _add


@pytest.fixture
def member_of(db: Session) -> Callable[[Workspace, User], Member]:
    """Look up the membership row of a user in a workspace."""

    def _lookup(workspace: Workspace, user: User) -> Member:
        return db.query(Member).filter(
            Member.workspace_id == workspace.id, Member.user_id == user.id
        ).one()

    return _lookup


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient sharing the test session, with the CSRF header preset.

    Unauthenticated until ``login_as`` is used.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://test",
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def login_as(db: Session, client: AsyncClient) -> Callable[[User], str]:
    """Switch the client's session cookie to a fresh session for ``user``."""

    def _login(user: User) -> str:
        session = session_service.create_session(db, user.id)
        client.cookies.clear()
        client.cookies.set(settings.SESSION_COOKIE_NAME, session.token)
        return session.token

    return _login
