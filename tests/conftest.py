"""
Global pytest configuration and fixtures for the organization access test suite.

Environment variables are set before any ``orgaccess`` import so the
config module picks them up.
"""
import os
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional

os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["RATE_LIMIT"] = "10000/minute"
os.environ["NO_ROLE_PERMISSIONS"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from orgaccess.core.database.base import Base
from orgaccess.core.database.engine import enable_sqlite_foreign_keys, get_db, init_db  # noqa: F401
from orgaccess.features.organizations.models import Organization, OrganizationMember
from orgaccess.features.permissions.catalog import Permission
from orgaccess.features.permissions.models import Role, RolePermission, AuditLog  # noqa: F401
from orgaccess.features.events.models import Event, EventComment, EventReview  # noqa: F401
from orgaccess.features.permissions.roles import create_default_roles, create_role
from orgaccess.features.users.models import User
from orgaccess.main import create_app


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so every session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by tests to arrange and inspect data."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Application
# ============================================================================

@pytest.fixture
def app(session_factory):
    """Application whose requests each open a session on the test database."""
    application = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def factory(handle: str, is_active: bool = True) -> User:
        user = User(subject=f"subject-{handle}", handle=handle, is_active=is_active)
        db.add(user)
        await db.commit()
        return user

    return factory


@pytest.fixture
def make_organization(db: AsyncSession) -> Callable[..., Awaitable[Organization]]:
    """Organization with its owner membership and the default roles."""
    async def factory(owner: User, registry_id: str = "ORG1", with_default_roles: bool = True) -> Organization:
        organization = Organization(registry_id=registry_id, name=f"Org {registry_id}", owner_id=owner.id)
        db.add(organization)
        await db.flush()
        db.add(OrganizationMember(organization_id=organization.id, user_id=owner.id))
        if with_default_roles:
            await create_default_roles(db, organization.id)
        await db.commit()
        return organization

    return factory


@pytest.fixture
def make_membership(db: AsyncSession) -> Callable[..., Awaitable[OrganizationMember]]:
    async def factory(
        organization: Organization,
        user: User,
        role: Optional[Role] = None,
        is_active: bool = True
    ) -> OrganizationMember:
        membership = OrganizationMember(
            organization_id=organization.id,
            user_id=user.id,
            role_id=role.id if role is not None else None,
            is_active=is_active,
        )
        db.add(membership)
        await db.commit()
        return membership

    return factory


@pytest.fixture
def make_role(db: AsyncSession) -> Callable[..., Awaitable[Role]]:
    async def factory(
        organization: Organization,
        name: str,
        permissions: frozenset = frozenset(),
        rank: int = 0
    ) -> Role:
        return await create_role(db, organization.id, name, permissions, rank=rank)

    return factory


# ============================================================================
# Shared scenario
# ============================================================================

@pytest.fixture
async def community(make_user, make_organization, make_role, make_membership) -> Dict[str, Any]:
    """
    alice owns ORG1; bob is a Moderator (delete_events); carol is a member
    without a role; dave is an outsider.
    """
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    dave = await make_user("dave")

    organization = await make_organization(alice, "ORG1")
    moderator = await make_role(organization, "Moderator", frozenset({Permission.DELETE_EVENTS}), rank=50)
    await make_membership(organization, bob, moderator)
    await make_membership(organization, carol)

    return {
        "alice": alice,
        "bob": bob,
        "carol": carol,
        "dave": dave,
        "organization": organization,
        "moderator": moderator,
    }
