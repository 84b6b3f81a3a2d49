"""Organizations the signed-in user belongs to."""
from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError

from teamdesk.models import MemberRole
from teamdesk.services.email_service import TEAM_MEMBER_LEFT
from teamdesk.services.organization_service import OrganizationService


def test_requires_session(client):
    response = client.get("/api/user/organizations")
    assert response.status_code == 401


def test_unknown_user_is_404(client, auth_headers):
    headers = auth_headers(user_id="gone", email="gone@example.com")
    response = client.get("/api/user/organizations", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_user_without_organizations(client, make_user, auth_headers):
    user = make_user()
    response = client.get("/api/user/organizations", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json() == {"organizations": []}


def test_owned_and_member_organizations_newest_first(
    client, make_user, make_organization, make_member, auth_headers
):
    user = make_user()
    now = datetime.utcnow()

    owned = make_organization(user, name="Owned", created_at=now - timedelta(days=10))
    make_member(owned, make_user(email="one@example.com"))
    make_member(owned, make_user(email="two@example.com"))

    other_owner = make_user(email="boss@example.com")
    joined = make_organization(other_owner, name="Joined", created_at=now - timedelta(days=1))
    make_member(joined, user, role=MemberRole.ADMIN)

    response = client.get("/api/user/organizations", headers=auth_headers(user))

    assert response.status_code == 200
    organizations = response.json()["organizations"]
    assert [o["name"] for o in organizations] == ["Joined", "Owned"]

    joined_entry, owned_entry = organizations
    assert joined_entry["role"] == "admin"
    assert joined_entry["member_count"] == 2
    assert owned_entry["role"] == "owner"
    assert owned_entry["member_count"] == 3


def test_pending_memberships_are_not_listed(client, make_user, make_organization, make_invitation, auth_headers):
    user = make_user()
    org = make_organization(make_user(email="boss@example.com"))
    make_invitation(org, user.email)

    response = client.get("/api/user/organizations", headers=auth_headers(user))

    assert response.json()["organizations"] == []


def test_database_failure_is_500(client, make_user, auth_headers, monkeypatch):
    user = make_user()

    def fail(self, user_id):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(OrganizationService, "get_all_user_organizations", fail)

    response = client.get("/api/user/organizations", headers=auth_headers(user))

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to fetch organizations"


def test_leave_organization(client, db, make_user, make_organization, make_member, auth_headers, email_service):
    owner = make_user(email="boss@example.com")
    org = make_organization(owner)
    user = make_user()
    make_member(org, user)

    response = client.post(f"/api/user/organizations/{org.id}/leave", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["organization_id"] == org.id
    assert client.get("/api/user/organizations", headers=auth_headers(user)).json()["organizations"] == []
    assert email_service.of_type(TEAM_MEMBER_LEFT)[0]["email"] == "boss@example.com"


def test_owner_cannot_leave(client, make_user, make_organization, auth_headers):
    owner = make_user()
    org = make_organization(owner)

    response = client.post(f"/api/user/organizations/{org.id}/leave", headers=auth_headers(owner))

    assert response.status_code == 400
    assert response.json()["detail"] == "Organization owners cannot leave their own organization"


def test_leave_organization_not_a_member(client, make_user, make_organization, auth_headers):
    org = make_organization(make_user(email="boss@example.com"))
    user = make_user()

    response = client.post(f"/api/user/organizations/{org.id}/leave", headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json()["detail"] == "You are not a member of this organization"
