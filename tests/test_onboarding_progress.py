"""Onboarding progress and completion endpoints."""
from sqlalchemy.exc import OperationalError

from teamdesk.models import TeamInvitation, TeamMember
from teamdesk.services.email_service import ONBOARDING_COMPLETED, TEAM_MEMBER_INVITED
from teamdesk.services.onboarding_service import OnboardingService


def test_progress_requires_session(client):
    response = client.get("/api/onboarding/progress")
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


def test_progress_unknown_user_is_404(client, auth_headers):
    headers = auth_headers(user_id="missing-user", email="ghost@example.com")
    response = client.get("/api/onboarding/progress", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_progress_for_new_user_has_defaults(client, make_user, auth_headers):
    user = make_user()

    response = client.get("/api/onboarding/progress", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["completed"] is False
    assert body["onboarding_completed"] is False
    assert body["workspace_id"] is None
    assert body["workspace_name"] == ""
    assert body["onboarding_data"]["current_step"] == 1
    assert body["onboarding_data"]["use_cases"] == []
    assert body["onboarding_data"]["industry"] == ""
    assert body["onboarding_data"]["team_members"] == []
    assert body["data"]["workspace_id"] is None
    assert "redirect_to" not in body


def test_progress_includes_saved_answers_and_workspace(client, db, make_user, make_workspace, auth_headers):
    user = make_user(use_cases=["blog"], industry="Software", onboarding_current_step=3)
    workspace = make_workspace(user, name="Acme Marketing")

    response = client.get("/api/onboarding/progress", headers=auth_headers(user))

    body = response.json()
    assert body["workspace_id"] == workspace.id
    assert body["workspace_name"] == "Acme Marketing"
    assert body["data"]["use_cases"] == ["blog"]
    assert body["data"]["industry"] == "Software"
    assert body["data"]["current_step"] == 3
    assert body["data"]["workspace_name"] == "Acme Marketing"


def test_progress_for_completed_user_redirects(client, make_user, auth_headers):
    user = make_user(onboarding_completed=True)

    response = client.get("/api/onboarding/progress", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json() == {
        "completed": True,
        "onboarding_completed": True,
        "redirect_to": "/dashboard",
    }


def test_progress_database_failure_is_500(client, make_user, auth_headers, monkeypatch):
    user = make_user()

    def fail(self, user_id):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(OnboardingService, "get_progress", fail)

    response = client.get("/api/onboarding/progress", headers=auth_headers(user))

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to fetch progress"


def test_save_progress_writes_only_step_fields(client, db, make_user, auth_headers):
    user = make_user()

    response = client.post(
        "/api/onboarding/progress",
        json={
            "step": 2,
            "data": {"industry": "Retail", "company_size": "1-10", "use_cases": ["ignored"]},
        },
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Step 2 progress saved"
    assert "industry" in body["saved_fields"]
    assert "use_cases" not in body["saved_fields"]

    db.refresh(user)
    assert user.industry == "Retail"
    assert user.company_size == "1-10"
    assert user.use_cases is None
    assert user.onboarding_current_step == 1


def test_save_progress_without_data_moves_step(client, db, make_user, auth_headers):
    user = make_user()

    response = client.post("/api/onboarding/progress", json={"step": 3}, headers=auth_headers(user))

    assert response.status_code == 200
    db.refresh(user)
    assert user.onboarding_current_step == 3


def test_save_progress_never_completes_onboarding(client, db, make_user, auth_headers):
    user = make_user()

    response = client.post(
        "/api/onboarding/progress",
        json={"step": 5, "complete": True},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    db.refresh(user)
    assert user.onboarding_current_step == 5
    assert user.onboarding_completed is False


def test_save_progress_rejected_after_completion(client, make_user, auth_headers):
    user = make_user(onboarding_completed=True)

    response = client.post("/api/onboarding/progress", json={"step": 1}, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["detail"] == "Onboarding already completed"


def test_save_progress_validates_step_range(client, make_user, auth_headers):
    user = make_user()
    response = client.post("/api/onboarding/progress", json={"step": 9}, headers=auth_headers(user))
    assert response.status_code == 422


def _submission(**overrides):
    body = {
        "use_cases": ["blog"],
        "workspace_name": "Acme Marketing",
        "professional_role": "Marketing Manager",
        "company_size": "11-50",
        "industry": "Software",
        "cms_integration": "WordPress",
        "team_members": [],
        "discovery_source": "Search",
    }
    body.update(overrides)
    return body


def test_complete_onboarding_creates_workspace_and_invites(client, db, make_user, auth_headers, email_service):
    user = make_user(email="founder@example.com")

    response = client.post(
        "/api/onboarding",
        json=_submission(team_members=[{"email": "colleague@example.com", "role": "admin"}]),
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    workspace_id = response.json()["workspace_id"]

    db.refresh(user)
    assert user.onboarding_completed is True
    assert user.onboarding_current_step == 5
    assert user.cms_integration == "WordPress"
    assert user.owned_workspaces[0].id == workspace_id
    assert user.owned_organizations[0].name == "Acme Marketing"

    invitation = db.query(TeamInvitation).filter(TeamInvitation.email == "colleague@example.com").one()
    assert db.query(TeamMember).filter(TeamMember.id == invitation.team_member_id).one().role.value == "admin"

    assert len(email_service.of_type(TEAM_MEMBER_INVITED)) == 1
    assert email_service.of_type(ONBOARDING_COMPLETED)[0]["fields"]["workspace_id"] == workspace_id


def test_complete_onboarding_rejects_foreign_workspace(client, make_user, make_workspace, auth_headers):
    user = make_user()
    other = make_user(email="other@example.com")
    foreign = make_workspace(other)

    response = client.post(
        "/api/onboarding",
        json=_submission(workspace_id=foreign.id),
        headers=auth_headers(user),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid workspace"


def test_complete_onboarding_validates_workspace_name(client, make_user, auth_headers):
    user = make_user()

    response = client.post(
        "/api/onboarding",
        json=_submission(workspace_name="12345"),
        headers=auth_headers(user),
    )

    assert response.status_code == 422


def test_step2_creates_organization_and_default_workspace(client, db, make_user, auth_headers):
    user = make_user()

    response = client.post(
        "/api/onboarding/step2",
        json={"organization_name": "Acme Corp", "industry": "Software"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["organization_name"] == "Acme Corp"
    assert body["workspace_id"] is not None

    db.refresh(user)
    assert user.industry == "Software"
    assert user.owned_workspaces[0].name == "Default Workspace"


def test_step2_duplicate_organization_name_is_409(client, make_user, make_organization, auth_headers):
    make_organization(make_user(email="first@example.com"), name="Acme Corp")
    user = make_user()

    response = client.post(
        "/api/onboarding/step2",
        json={"organization_name": "acme corp"},
        headers=auth_headers(user),
    )

    assert response.status_code == 409
