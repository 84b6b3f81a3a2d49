"""
Shared fixtures.

Each test gets a fresh in-memory SQLite database. The app's get_db and
get_email_service dependencies are overridden so route tests and the
test body share one session and emails are recorded instead of sent.
"""
import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
for key in ("BENTO_PUBLISHABLE_KEY", "BENTO_SECRET_KEY", "BENTO_SITE_UUID", "BENTO_FROM_EMAIL"):
    os.environ.pop(key, None)

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import teamdesk.models  # noqa: F401
from teamdesk.database import Base, get_db
from teamdesk.main import app
from teamdesk.api.deps import get_email_service
from teamdesk.core.security import create_session_token, generate_invitation_token, get_password_hash
from teamdesk.models import (
    MemberRole,
    MemberStatus,
    Organization,
    TeamInvitation,
    TeamMember,
    User,
    Workspace,
)
from teamdesk.services.email_service import EmailService

DEFAULT_PASSWORD = "password123"


class RecordingEmailService(EmailService):
    """EmailService that records events instead of calling Bento."""

    def __init__(self):
        super().__init__(client=None)
        self.events = []

    async def trigger_event(self, email, event_type, fields=None):
        self.events.append({"email": email, "type": event_type, "fields": fields or {}})
        return True

    def of_type(self, event_type):
        return [e for e in self.events if e["type"] == event_type]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def client(db, email_service):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_email_service] = lambda: email_service
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db):
    def _make_user(email="user@example.com", password=DEFAULT_PASSWORD, **kwargs):
        user = User(
            email=email.lower(),
            hashed_password=get_password_hash(password),
            **kwargs
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_organization(db):
    def _make_organization(owner, name="Acme", created_at=None):
        organization = Organization(name=name, owner_id=owner.id)
        if created_at:
            organization.created_at = created_at
        db.add(organization)
        db.commit()
        db.refresh(organization)
        return organization

    return _make_organization


@pytest.fixture
def make_workspace(db):
    def _make_workspace(owner, organization=None, name="Main Workspace"):
        workspace = Workspace(
            name=name,
            owner_id=owner.id,
            organization_id=organization.id if organization else None,
            created_by_id=owner.id,
        )
        db.add(workspace)
        db.commit()
        db.refresh(workspace)
        return workspace

    return _make_workspace


@pytest.fixture
def make_member(db):
    """Active membership of user in organization."""
    def _make_member(organization, user, role=MemberRole.MEMBER, invited_by=None):
        member = TeamMember(
            user_id=organization.owner_id,
            organization_id=organization.id,
            member_user_id=user.id,
            invited_by=invited_by or organization.owner_id,
            role=role,
            status=MemberStatus.ACTIVE,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make_member


@pytest.fixture
def make_invitation(db):
    """Pending TeamMember plus its TeamInvitation."""
    def _make_invitation(organization, email, role=MemberRole.MEMBER, invited_by=None, expires_in_days=7):
        member = TeamMember(
            user_id=organization.owner_id,
            organization_id=organization.id,
            invited_by=invited_by or organization.owner_id,
            role=role,
            status=MemberStatus.PENDING,
        )
        db.add(member)
        db.flush()

        invitation = TeamInvitation(
            token=generate_invitation_token(),
            email=email.lower(),
            team_member_id=member.id,
            expires_at=datetime.utcnow() + timedelta(days=expires_in_days),
        )
        db.add(invitation)
        db.commit()
        db.refresh(member)
        return member, invitation

    return _make_invitation


@pytest.fixture
def auth_headers():
    def _auth_headers(user=None, user_id=None, email=None):
        token = create_session_token(
            user_id or user.id,
            email or user.email,
        )
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
