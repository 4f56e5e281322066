"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with savepoint (rollback after each test)
- Organization and user factories for every role
- JWT-authenticated HTTPX AsyncClient per user
"""
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, Generator

# Must be set before the application reads its settings
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from triage_catalog.main import app
from triage_catalog.db.base import Base
from triage_catalog.db.session import engine, SessionLocal
from triage_catalog.core.deps import get_db, COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE
from triage_catalog.core.security import create_session_token
from triage_catalog.db.enums import DiagnosisScope, Role
from triage_catalog.db.models import Diagnosis, Organization, User
from triage_catalog.schemas.auth import Principal


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def schema() -> Generator[None, None, None]:
    """Create all tables once for the in-memory database."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session inside an outer transaction.

    App code can call commit() and rollback(); both only touch a
    savepoint, and the outer transaction is rolled back at the end.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture(scope="function")
def make_org(db: Session) -> Callable[..., Organization]:
    def _make(name: str = "Test Clinic") -> Organization:
        org = Organization(
            id=uuid.uuid4(),
            name=name,
            slug=f"org-{uuid.uuid4().hex[:8]}",
        )
        db.add(org)
        db.flush()
        return org
    return _make


@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    # Spread created_at so "earliest admin" is deterministic
    clock = {"now": datetime(2024, 1, 1, tzinfo=timezone.utc)}

    def _make(
        role: Role,
        org: Organization | None = None,
        is_active: bool = True,
    ) -> User:
        clock["now"] += timedelta(minutes=1)
        user = User(
            id=uuid.uuid4(),
            email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
            display_name=f"Test {role.value}",
            role=role.value,
            organization_id=org.id if org else None,
            is_active=is_active,
            created_at=clock["now"],
        )
        db.add(user)
        db.flush()
        return user
    return _make


@pytest.fixture(scope="function")
def make_entry(db: Session) -> Callable[..., Diagnosis]:
    """Insert a diagnosis directly, bypassing the write service."""
    clock = {"now": datetime(2024, 6, 1, tzinfo=timezone.utc)}

    def _make(
        owner: User,
        scope: DiagnosisScope,
        name: str | None = None,
        symptoms: list[str] | None = None,
        **fields,
    ) -> Diagnosis:
        clock["now"] += timedelta(minutes=1)
        entry = Diagnosis(
            name=name or f"Disorder {uuid.uuid4().hex[:6]}",
            scope=scope.value,
            owner_id=owner.id,
            organization_id=owner.organization_id if scope == DiagnosisScope.ORGANIZATION else None,
            symptoms=symptoms or [],
            created_at=fields.pop("created_at", clock["now"]),
            **fields,
        )
        db.add(entry)
        db.flush()
        return entry
    return _make


def principal_for(user: User) -> Principal:
    """Build the request principal the auth dependency would build."""
    return Principal(
        user_id=user.id,
        role=Role(user.role),
        org_id=user.organization_id,
        email=user.email,
        display_name=user.display_name,
    )


@pytest.fixture(scope="function")
def as_principal() -> Callable[[User], Principal]:
    return principal_for


# =============================================================================
# Common tenants
# =============================================================================

@pytest.fixture(scope="function")
def org(make_org) -> Organization:
    return make_org("Calm Clinic")


@pytest.fixture(scope="function")
def other_org(make_org) -> Organization:
    return make_org("Other Clinic")


@pytest.fixture(scope="function")
def super_admin(make_user) -> User:
    return make_user(Role.SUPER_ADMIN)


@pytest.fixture(scope="function")
def company_admin(make_user, org) -> User:
    return make_user(Role.COMPANY_ADMIN, org)


@pytest.fixture(scope="function")
def psychologist(make_user, org, company_admin) -> User:
    return make_user(Role.PSYCHOLOGIST, org)


@pytest.fixture(scope="function")
def colleague(make_user, org, company_admin) -> User:
    return make_user(Role.PSYCHOLOGIST, org)


@pytest.fixture(scope="function")
def other_admin(make_user, other_org) -> User:
    return make_user(Role.COMPANY_ADMIN, other_org)


@pytest.fixture(scope="function")
def individual(make_user) -> User:
    return make_user(Role.PSYCHOLOGIST)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client_for(db: Session) -> AsyncGenerator[Callable[[User], AsyncClient], None]:
    """
    Factory for authenticated AsyncClients with JWT cookie and CSRF header.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    clients: list[AsyncClient] = []

    def _make(user: User, csrf: bool = True) -> AsyncClient:
        token = create_session_token(
            user_id=user.id,
            org_id=user.organization_id,
            role=user.role,
            token_version=user.token_version,
        )
        headers = {CSRF_HEADER: CSRF_HEADER_VALUE} if csrf else {}
        c = AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={COOKIE_NAME: token},
            headers=headers,
        )
        clients.append(c)
        return c

    yield _make

    for c in clients:
        await c.aclose()
    app.dependency_overrides.clear()
