from teamdesk.models import MemberRole, Workspace


def test_current_workspace_for_new_user(client, make_user, auth_headers):
    user = make_user()
    response = client.get("/api/workspace/current", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json() == {"workspace": None, "role": None}


def test_member_sees_organization_workspaces(client, make_user, make_organization, make_workspace, make_member, auth_headers):
    owner = make_user(email="owner@example.com")
    org = make_organization(owner)
    workspace = make_workspace(owner, org, name="Shared")
    member = make_user(email="m@example.com")
    make_member(org, member, role=MemberRole.VIEWER)

    listing = client.get("/api/workspaces", headers=auth_headers(member)).json()
    assert [w["id"] for w in listing] == [workspace.id]

    current = client.get("/api/workspace/current", headers=auth_headers(member)).json()
    assert current["workspace"]["name"] == "Shared"
    assert current["role"] == "viewer"


def test_owner_creates_workspace_in_organization(client, make_user, make_organization, make_workspace, auth_headers):
    owner = make_user()
    org = make_organization(owner)
    make_workspace(owner, org)

    response = client.post("/api/workspaces", json={"name": "Second Site"}, headers=auth_headers(owner))

    assert response.status_code == 201
    assert response.json()["organization_id"] == org.id

    duplicate = client.post("/api/workspaces", json={"name": "second site"}, headers=auth_headers(owner))
    assert duplicate.status_code == 400


def test_member_cannot_create_workspace(client, make_user, make_organization, make_member, auth_headers):
    org = make_organization(make_user(email="owner@example.com"))
    member = make_user(email="m@example.com")
    make_member(org, member, role=MemberRole.ADMIN)

    response = client.post("/api/workspaces", json={"name": "Mine"}, headers=auth_headers(member))

    assert response.status_code == 403


# ---------------------------------------------------------------------------
# PUT / DELETE /api/workspaces/{id}
# ---------------------------------------------------------------------------

def test_owner_renames_workspace(client, make_user, make_organization, make_workspace, auth_headers):
    owner = make_user()
    workspace = make_workspace(owner, make_organization(owner))

    response = client.put(
        f"/api/workspaces/{workspace.id}",
        json={"name": "Renamed", "white_label_enabled": True},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    body = response.json()["workspace"]
    assert body["name"] == "Renamed"
    assert body["white_label_enabled"] is True


def test_admin_may_update_but_not_delete(client, make_user, make_organization, make_workspace, make_member, auth_headers):
    owner = make_user(email="owner@example.com")
    org = make_organization(owner)
    workspace = make_workspace(owner, org)
    admin = make_user(email="admin@example.com")
    make_member(org, admin, role=MemberRole.ADMIN)

    update = client.put(f"/api/workspaces/{workspace.id}", json={"name": "By Admin"}, headers=auth_headers(admin))
    assert update.status_code == 200

    delete = client.delete(f"/api/workspaces/{workspace.id}", headers=auth_headers(admin))
    assert delete.status_code == 403


def test_member_cannot_update_workspace(client, make_user, make_organization, make_workspace, make_member, auth_headers):
    owner = make_user(email="owner@example.com")
    org = make_organization(owner)
    workspace = make_workspace(owner, org)
    member = make_user(email="m@example.com")
    make_member(org, member)

    response = client.put(f"/api/workspaces/{workspace.id}", json={"name": "Nope"}, headers=auth_headers(member))

    assert response.status_code == 403


def test_update_rejects_duplicate_and_invalid_names(client, make_user, make_workspace, auth_headers):
    owner = make_user()
    workspace = make_workspace(owner, name="First")
    make_workspace(owner, name="Second")

    duplicate = client.put(f"/api/workspaces/{workspace.id}", json={"name": "second"}, headers=auth_headers(owner))
    assert duplicate.status_code == 400

    invalid = client.put(f"/api/workspaces/{workspace.id}", json={"name": "x"}, headers=auth_headers(owner))
    assert invalid.status_code == 422


def test_outsider_gets_404(client, make_user, make_workspace, auth_headers):
    workspace = make_workspace(make_user(email="owner@example.com"))
    outsider = make_user(email="outsider@example.com")
    make_workspace(outsider, name="Own Site")

    assert client.put(
        f"/api/workspaces/{workspace.id}", json={"name": "Mine"}, headers=auth_headers(outsider)
    ).status_code == 404
    assert client.delete(f"/api/workspaces/{workspace.id}", headers=auth_headers(outsider)).status_code == 404
    assert client.delete("/api/workspaces/missing", headers=auth_headers(outsider)).status_code == 404


def test_owner_deletes_workspace(client, db, make_user, make_workspace, auth_headers):
    owner = make_user()
    workspace = make_workspace(owner)
    workspace_id = workspace.id

    response = client.delete(f"/api/workspaces/{workspace_id}", headers=auth_headers(owner))

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Workspace deleted successfully"}
    db.expire_all()
    assert db.query(Workspace).filter(Workspace.id == workspace_id).first() is None


# ---------------------------------------------------------------------------
# POST /api/workspace/check-name
# ---------------------------------------------------------------------------

def test_check_workspace_name(client, make_user, make_workspace, auth_headers):
    owner = make_user()
    workspace = make_workspace(owner, name="Marketing")

    taken = client.post("/api/workspace/check-name", json={"name": "marketing"}, headers=auth_headers(owner))
    assert taken.status_code == 200
    assert taken.json()["available"] is False
    assert taken.json()["message"] == 'You already have a workspace named "marketing". Please choose a different name.'

    renaming = client.post(
        "/api/workspace/check-name",
        json={"name": "Marketing", "current_workspace_id": workspace.id},
        headers=auth_headers(owner),
    )
    assert renaming.json()["available"] is True

    other_owner = client.post(
        "/api/workspace/check-name",
        json={"name": "Marketing"},
        headers=auth_headers(make_user(email="other@example.com")),
    )
    assert other_owner.json() == {"available": True, "message": "This workspace name is available", "error": None}


def test_check_workspace_name_format(client, make_user, auth_headers):
    response = client.post("/api/workspace/check-name", json={"name": "--"}, headers=auth_headers(make_user()))
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid workspace name format"


def test_check_workspace_name_requires_session(client):
    assert client.post("/api/workspace/check-name", json={"name": "Marketing"}).status_code == 401
