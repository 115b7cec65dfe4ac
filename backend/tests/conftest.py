"""
Shared fixtures for the design review tests.

Runs against in-memory SQLite; FOR UPDATE is a no-op there, so the
version uniqueness constraint is what the conflict tests exercise.
"""
import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_NOTIFICATIONS"] = "false"

from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models.design_file import DesignFile, ApprovalStatus, DesignFileType
from app.models.project import Project
from app.models.user import User, UserRole
from app.rate_limiter import limiter
from app.services.design_errors import StorageFailure
from app.services.storage_service import ObjectStore, get_object_store
from app.utils.dependencies import get_current_user

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeObjectStore(ObjectStore):
    """In-memory store; file names listed in fail_on raise StorageFailure."""

    def __init__(self, fail_on: Optional[List[str]] = None):
        self.objects: Dict[str, bytes] = {}
        self.fail_on = set(fail_on or [])

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        if any(path.endswith(name) for name in self.fail_on):
            raise StorageFailure(f"Simulated outage writing {path}")
        self.objects[path] = data
        return f"https://files.test/{path}"


@pytest.fixture(scope="function")
def db():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_user(db, email: str, role: str) -> User:
    u = User(email=email, name=email.split("@")[0].title(), role=role, is_active=True)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@studio.test", UserRole.ADMIN)


@pytest.fixture
def manager(db):
    return _make_user(db, "manager@studio.test", UserRole.PROJECT_MANAGER)


@pytest.fixture
def designer(db):
    return _make_user(db, "designer@studio.test", UserRole.DESIGNER)


@pytest.fixture
def employee(db):
    return _make_user(db, "employee@studio.test", UserRole.EMPLOYEE)


@pytest.fixture
def project(db, manager):
    """Create a test project."""
    p = Project(name="Riverside Apartment", description="Full renovation", owner_id=manager.id)
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def make_design(db, project, designer):
    """Insert a design file row directly, bypassing the allocator."""
    def _make(category="Kitchen", version_number=1, **kwargs):
        design = DesignFile(
            project_id=kwargs.pop("project_id", project.id),
            category=category,
            version_number=version_number,
            file_name=kwargs.pop("file_name", f"{category.lower()}_v{version_number}.pdf"),
            file_url=kwargs.pop("file_url", f"https://files.test/{category}/v{version_number}.pdf"),
            file_type=kwargs.pop("file_type", DesignFileType.PDF),
            approval_status=kwargs.pop("approval_status", ApprovalStatus.PENDING),
            is_current_approved=kwargs.pop("is_current_approved", False),
            is_frozen=kwargs.pop("is_frozen", False),
            uploaded_by=kwargs.pop("uploaded_by", designer.id),
            **kwargs
        )
        db.add(design)
        db.commit()
        db.refresh(design)
        return design

    return _make


@pytest.fixture
def client(db, store):
    """
    TestClient sharing the test session and fake store.

    Authenticate with client.login(user); it swaps the current user.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: store
    limiter.enabled = False

    with TestClient(app) as test_client:
        def login(user: User):
            app.dependency_overrides[get_current_user] = lambda: user
            return test_client

        test_client.login = login
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
