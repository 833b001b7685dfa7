"""
Test configuration and fixtures for taskboard tests.

Provides:
- Test database with SQLite in-memory for speed
- Document store and per-user SessionContext fixtures
- FastAPI test client with database and profile-cache overrides
- Authentication helpers (JWT token generation)
- Common fixtures for users, projects, and team membership
"""

import os
import sys
import logging
from typing import Generator, Dict

# Keep the application engine off the filesystem during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from main import app
import models
import repository
import schemas
from auth.security import hash_password, create_access_token
from context import SessionContext
from services import projects, team
from services.profiles import ProfileCache
from store import DocumentStore, new_document_id

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_PASSWORD = "secret123"


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.
    """
    logger.debug("Creating test database")

    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        logger.debug("Test database cleaned up")


@pytest.fixture(scope="function")
def store(test_db: Session) -> DocumentStore:
    return DocumentStore(test_db)


@pytest.fixture(scope="function")
def profile_cache(tmp_path) -> ProfileCache:
    return ProfileCache(str(tmp_path / "profile.json"))


@pytest.fixture(scope="function")
def client(test_db: Session, profile_cache: ProfileCache) -> TestClient:
    """
    Create FastAPI test client with database dependency override.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    original_cache = app.state.profile_cache
    app.state.profile_cache = profile_cache

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.state.profile_cache = original_cache


def make_user(test_db: Session, store: DocumentStore, name: str, email: str) -> schemas.User:
    """
    Create an account and its profile document.

    Returns:
        The stored profile
    """
    logger.debug(f"Creating user {email}")
    account = models.Account(
        uid=new_document_id(),
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        display_name=name,
    )
    test_db.add(account)
    test_db.commit()

    repository.create_user_profile(store, account.uid, name, email)
    profile = repository.get_user_profile(store, account.uid)
    logger.info(f"Created user {email} with ID: {profile.id}")
    return profile


@pytest.fixture(scope="function")
def owner_user(test_db: Session, store: DocumentStore) -> schemas.User:
    return make_user(test_db, store, "Ana Lopez", "ana@test.com")


@pytest.fixture(scope="function")
def member_user(test_db: Session, store: DocumentStore) -> schemas.User:
    return make_user(test_db, store, "Ben Carter", "ben@test.com")


@pytest.fixture(scope="function")
def outsider_user(test_db: Session, store: DocumentStore) -> schemas.User:
    return make_user(test_db, store, "Cleo Diaz", "cleo@test.com")


@pytest.fixture(scope="function")
def owner_ctx(store: DocumentStore, owner_user: schemas.User) -> SessionContext:
    return SessionContext(store=store, profile=owner_user)


@pytest.fixture(scope="function")
def member_ctx(store: DocumentStore, member_user: schemas.User) -> SessionContext:
    return SessionContext(store=store, profile=member_user)


@pytest.fixture(scope="function")
def outsider_ctx(store: DocumentStore, outsider_user: schemas.User) -> SessionContext:
    return SessionContext(store=store, profile=outsider_user)


def project_payload(**overrides) -> schemas.ProjectCreate:
    data = {
        "name": "Website Redesign",
        "description": "New landing pages",
        "status": "active",
        "start_date": "2026-10-01",
        "estimated_end_date": "2026-12-15",
    }
    data.update(overrides)
    return schemas.ProjectCreate(**data)


@pytest.fixture(scope="function")
def project(owner_ctx: SessionContext) -> schemas.Project:
    """
    Create a project owned by owner_user (sole member).
    """
    created = projects.create_project(owner_ctx, project_payload())
    logger.info(f"Created test project with ID: {created.id}")
    return created


@pytest.fixture(scope="function")
def team_project(
    owner_ctx: SessionContext,
    project: schemas.Project,
    member_user: schemas.User,
) -> schemas.Project:
    """
    The test project with member_user added as a tester.
    """
    team.add_member(owner_ctx, project.id, member_user.email, schemas.TeamRole.tester)
    return repository.get_project(owner_ctx.store, project.id)


def create_auth_token(user: schemas.User) -> str:
    """
    Helper to create a JWT access token for a user.
    """
    logger.debug(f"Creating auth token for user {user.id}")
    return create_access_token({"sub": user.id, "email": user.email})


def auth_headers_for(user: schemas.User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_auth_token(user)}"}


@pytest.fixture(scope="function")
def owner_headers(owner_user: schemas.User) -> Dict[str, str]:
    return auth_headers_for(owner_user)


@pytest.fixture(scope="function")
def member_headers(member_user: schemas.User) -> Dict[str, str]:
    return auth_headers_for(member_user)
