"""Password reset and email verification links."""
from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from teamdesk.config import get_settings
from teamdesk.models import VerificationToken
from teamdesk.models.verification import EMAIL_VERIFICATION, PASSWORD_RESET
from teamdesk.services.auth_service import AuthService
from teamdesk.services.email_service import (
    EMAIL_VERIFICATION as EMAIL_VERIFICATION_EVENT,
    PASSWORD_RESET_COMPLETED,
    PASSWORD_RESET_REQUESTED,
)

settings = get_settings()


def _query(url):
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


@pytest.fixture
def make_token(db):
    def _make_token(email, token_type, token="a" * 64, expires_in=timedelta(hours=1)):
        record = VerificationToken(
            identifier=email,
            token=token,
            type=token_type,
            expires=datetime.utcnow() + expires_in,
        )
        db.add(record)
        db.commit()
        return record

    return _make_token


# ---------------------------------------------------------------------------
# POST /api/auth/forgot-password
# ---------------------------------------------------------------------------

def test_forgot_password_sends_reset_link(client, db, make_user, email_service):
    make_user(email="jane@example.com")

    response = client.post("/api/auth/forgot-password", json={"email": "Jane@Example.com"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    sent = email_service.of_type(PASSWORD_RESET_REQUESTED)
    assert len(sent) == 1
    reset_url = sent[0]["fields"]["reset_url"]
    assert reset_url.startswith(f"{settings.APP_BASE_URL}/reset-password?")
    assert _query(reset_url)["email"] == "jane@example.com"

    token = db.query(VerificationToken).filter(VerificationToken.type == PASSWORD_RESET).one()
    assert token.token == _query(reset_url)["token"]


def test_forgot_password_unknown_email_looks_the_same(client, db, make_user, email_service):
    make_user(email="jane@example.com")

    known = client.post("/api/auth/forgot-password", json={"email": "jane@example.com"}).json()
    unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"}).json()

    assert known == unknown
    assert len(email_service.of_type(PASSWORD_RESET_REQUESTED)) == 1


def test_forgot_password_replaces_earlier_link(client, db, make_user):
    make_user(email="jane@example.com")

    client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})
    first = db.query(VerificationToken).one().token
    client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})

    db.expire_all()
    tokens = [t.token for t in db.query(VerificationToken).all()]
    assert len(tokens) == 1
    assert tokens[0] != first


# ---------------------------------------------------------------------------
# POST /api/auth/reset-password
# ---------------------------------------------------------------------------

def test_reset_password_sets_new_password(client, db, make_user, make_token, email_service):
    make_user(email="jane@example.com")
    make_token("jane@example.com", PASSWORD_RESET, token="r" * 64)

    response = client.post(
        "/api/auth/reset-password",
        json={"token": "r" * 64, "email": "jane@example.com", "password": "brand-new-pass"},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Password reset successfully."}
    login = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "brand-new-pass"})
    assert login.status_code == 200
    db.expire_all()
    assert db.query(VerificationToken).count() == 0
    assert len(email_service.of_type(PASSWORD_RESET_COMPLETED)) == 1


def test_reset_password_token_is_single_use(client, make_user, make_token):
    make_user(email="jane@example.com")
    make_token("jane@example.com", PASSWORD_RESET, token="r" * 64)
    body = {"token": "r" * 64, "email": "jane@example.com", "password": "brand-new-pass"}

    assert client.post("/api/auth/reset-password", json=body).status_code == 200
    again = client.post("/api/auth/reset-password", json=body)

    assert again.status_code == 400
    assert again.json()["detail"] == "Invalid or expired reset token"


def test_reset_password_rejects_other_users_token(client, make_user, make_token):
    make_user(email="jane@example.com")
    make_user(email="mallory@example.com")
    make_token("jane@example.com", PASSWORD_RESET, token="r" * 64)

    response = client.post(
        "/api/auth/reset-password",
        json={"token": "r" * 64, "email": "mallory@example.com", "password": "brand-new-pass"},
    )

    assert response.status_code == 400


def test_reset_password_expired_token(client, db, make_user, make_token):
    make_user(email="jane@example.com")
    make_token("jane@example.com", PASSWORD_RESET, token="r" * 64, expires_in=timedelta(minutes=-1))

    response = client.post(
        "/api/auth/reset-password",
        json={"token": "r" * 64, "email": "jane@example.com", "password": "brand-new-pass"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Reset token has expired"
    db.expire_all()
    assert db.query(VerificationToken).count() == 0


def test_reset_password_validates_length(client):
    response = client.post(
        "/api/auth/reset-password",
        json={"token": "r" * 64, "email": "jane@example.com", "password": "short"},
    )
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

def test_signup_link_verifies_email(client, db, email_service):
    client.post("/api/auth/signup", json={"email": "jane@example.com", "password": "longenough1"})

    sent = email_service.of_type(EMAIL_VERIFICATION_EVENT)
    assert len(sent) == 1
    assert sent[0]["fields"]["expires_in"] == "24 hours"
    url = urlparse(sent[0]["fields"]["verification_url"])
    assert url.path == "/api/auth/verify-email"

    response = client.get(f"{url.path}?{url.query}", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == f"{settings.APP_BASE_URL}/login?verified=true"
    me = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "longenough1"})
    profile = client.get("/api/user/profile", headers={"Authorization": f"Bearer {me.json()['access_token']}"})
    assert profile.json()["email_verified"] is True


@pytest.mark.parametrize("query", [
    "",
    "?token=nope&email=jane@example.com",
    "?email=jane@example.com",
])
def test_verify_email_failures_redirect_to_error_page(client, make_user, query):
    make_user(email="jane@example.com")

    response = client.get(f"/api/auth/verify-email{query}", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == f"{settings.APP_BASE_URL}/auth/error?error=Verification"


def test_verify_email_expired_token(client, db, make_user, make_token):
    user = make_user(email="jane@example.com")
    make_token("jane@example.com", EMAIL_VERIFICATION, token="v" * 64, expires_in=timedelta(hours=-1))

    response = client.get(
        f"/api/auth/verify-email?token={'v' * 64}&email=jane@example.com",
        follow_redirects=False,
    )

    assert response.headers["location"].endswith("/auth/error?error=Verification")
    db.expire_all()
    assert db.query(VerificationToken).count() == 0
    db.refresh(user)
    assert user.email_verified is False


def test_reset_token_does_not_verify_email(client, make_user, make_token):
    make_user(email="jane@example.com")
    make_token("jane@example.com", PASSWORD_RESET, token="r" * 64)

    response = client.get(
        f"/api/auth/verify-email?token={'r' * 64}&email=jane@example.com",
        follow_redirects=False,
    )

    assert response.headers["location"].endswith("/auth/error?error=Verification")


def test_resend_verification(client, db, make_user, email_service):
    make_user(email="jane@example.com")

    response = client.post("/api/auth/resend-verification", json={"email": "jane@example.com"})

    assert response.status_code == 200
    assert response.json() == {"message": "Verification email sent successfully"}
    sent = email_service.of_type(EMAIL_VERIFICATION_EVENT)
    assert len(sent) == 1
    token = db.query(VerificationToken).filter(VerificationToken.type == EMAIL_VERIFICATION).one()
    assert _query(sent[0]["fields"]["verification_url"])["token"] == token.token


def test_resend_verification_unknown_email(client):
    response = client.post("/api/auth/resend-verification", json={"email": "nobody@example.com"})
    assert response.status_code == 404
    assert response.json()["detail"] == "No account found with this email address"


def test_resend_verification_already_verified(client, make_user, email_service):
    make_user(email="jane@example.com", email_verified=True)

    response = client.post("/api/auth/resend-verification", json={"email": "jane@example.com"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Email is already verified"
    assert email_service.of_type(EMAIL_VERIFICATION_EVENT) == []


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

def test_cleanup_removes_only_expired_tokens(db, make_token):
    make_token("a@example.com", PASSWORD_RESET, token="1" * 64, expires_in=timedelta(minutes=-5))
    make_token("b@example.com", EMAIL_VERIFICATION, token="2" * 64, expires_in=timedelta(hours=-1))
    make_token("c@example.com", EMAIL_VERIFICATION, token="3" * 64)

    assert AuthService(db).cleanup_expired_tokens() == 2
    assert [t.identifier for t in db.query(VerificationToken).all()] == ["c@example.com"]


def test_verification_and_reset_tokens_are_independent(db, make_user):
    make_user(email="jane@example.com")
    service = AuthService(db)

    service.create_email_verification("jane@example.com")
    service.create_password_reset("jane@example.com")

    types = sorted(t.type for t in db.query(VerificationToken).all())
    assert types == [EMAIL_VERIFICATION, PASSWORD_RESET]
    assert service.create_password_reset("nobody@example.com") is None
