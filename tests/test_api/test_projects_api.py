"""End-to-end project and membership routes."""
from __future__ import annotations

from sqlalchemy import func, select

from taskhub.models import Membership


def test_health_is_public(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": None, "data": {"status": "ok"}, "errors": None}


def test_missing_token_is_unauthorized(client, world):
    r = client.get(f"/projects/{world.project}")
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_malformed_authorization_header(client, world):
    r = client.get("/projects", headers={"Authorization": "Token abc"})
    assert r.status_code == 400


def test_invalid_token_is_forbidden(client, world):
    r = client.get("/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 403
    assert r.json()["message"] == "Invalid token"


def test_user_listing_requires_global_admin(client, world, auth_headers):
    assert client.get("/users", headers=auth_headers(world.ana)).status_code == 403
    r = client.get("/users", headers=auth_headers(world.root))
    assert r.status_code == 200
    assert len(r.json()["data"]) == 5


def test_me(client, world, auth_headers):
    r = client.get("/me", headers=auth_headers(world.cora))
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Cora"


def test_create_project_makes_caller_creator(client, world, auth_headers):
    headers = auth_headers(world.olga)

    r = client.post("/projects", json={"name": "Olga's", "description": None}, headers=headers)

    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    project_id = body["data"]["id"]
    assert body["data"]["creator_id"] == world.olga

    detail = client.get(f"/projects/{project_id}", headers=headers).json()["data"]
    assert detail["your_role"] == "creator"
    assert [(m["user_id"], m["project_role"]) for m in detail["members"]] == [(world.olga, "creator")]


def test_create_project_validation_error_uses_envelope(client, world, auth_headers):
    r = client.post("/projects", json={"name": ""}, headers=auth_headers(world.olga))
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["errors"]


def test_list_my_projects(client, world, auth_headers):
    r = client.get("/projects", headers=auth_headers(world.leo))
    assert [(p["id"], p["project_role"]) for p in r.json()["data"]] == [(world.project, "lead")]


def test_project_detail_lists_members_in_role_order(client, world, auth_headers):
    r = client.get(f"/projects/{world.project}", headers=auth_headers(world.cora))

    data = r.json()["data"]
    assert data["your_role"] == "collaborator"
    assert [m["name"] for m in data["members"]] == ["Ana", "Leo", "Cora"]
    assert data["stats"]["tasks"] == 1


def test_update_project_requires_creator(client, world, auth_headers):
    payload = {"name": "Renamed", "description": "x"}

    denied = client.put(f"/projects/{world.project}", json=payload, headers=auth_headers(world.cora))
    assert denied.status_code == 403
    assert denied.json()["message"] == "One of the following project roles is required: creator"

    ok = client.put(f"/projects/{world.project}", json=payload, headers=auth_headers(world.ana))
    assert ok.status_code == 200
    assert ok.json()["data"]["name"] == "Renamed"


def test_missing_project_vs_no_access(client, world, auth_headers):
    assert client.get("/projects/999999", headers=auth_headers(world.olga)).status_code == 404
    r = client.get(f"/projects/{world.project}", headers=auth_headers(world.olga))
    assert r.status_code == 403
    assert r.json()["message"] == "You do not have access to this project"


def test_oversized_project_id_is_rejected_in_envelope(client, world, auth_headers):
    r = client.get("/projects/99999999999999999999", headers=auth_headers(world.ana))

    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "Project id not provided"}


def test_admin_without_membership_denied_by_default(client, world, auth_headers):
    assert client.get(f"/projects/{world.project}", headers=auth_headers(world.root)).status_code == 403


def test_admin_bypass_mode(app, client, world, auth_headers):
    app.state.security_config.model.authorization.admin_bypasses_membership = True

    r = client.get(f"/projects/{world.project}", headers=auth_headers(world.root))
    assert r.status_code == 200
    assert r.json()["data"]["your_role"] is None

    # Still cannot touch the creator.
    r = client.patch(
        f"/projects/{world.project}/role",
        json={"user_id": world.ana, "project_role": "lead"},
        headers=auth_headers(world.root),
    )
    assert r.status_code == 400


def test_invite_flow(client, world, auth_headers, api_sessionmaker):
    url = f"/projects/{world.project}/invite"

    r = client.post(url, json={"email": "olga@example.com", "project_role": "lead"}, headers=auth_headers(world.leo))
    assert r.status_code == 201
    assert r.json()["data"]["project_role"] == "lead"

    again = client.post(url, json={"email": "olga@example.com"}, headers=auth_headers(world.ana))
    assert again.status_code == 400
    assert again.json()["message"] == "User is already a member of this project"

    with api_sessionmaker() as db:
        count = db.scalar(
            select(func.count(Membership.id)).where(
                Membership.user_id == world.olga, Membership.project_id == world.project
            )
        )
    assert count == 1


def test_invite_errors(client, world, auth_headers):
    url = f"/projects/{world.project}/invite"

    assert client.post(url, json={"email": "olga@example.com"}, headers=auth_headers(world.cora)).status_code == 403
    assert client.post(url, json={"email": "nobody@example.com"}, headers=auth_headers(world.ana)).status_code == 404
    assert client.post(url, json={"email": "ana@example.com"}, headers=auth_headers(world.ana)).status_code == 400
    r = client.post(url, json={"email": "olga@example.com", "project_role": "creator"}, headers=auth_headers(world.ana))
    assert r.status_code == 400


def test_change_role(client, world, auth_headers):
    url = f"/projects/{world.project}/role"

    r = client.patch(url, json={"user_id": world.cora, "project_role": "lead"}, headers=auth_headers(world.ana))
    assert r.status_code == 200
    assert r.json()["data"]["previous_role"] == "collaborator"
    assert r.json()["data"]["new_role"] == "lead"

    own = client.patch(url, json={"user_id": world.ana, "project_role": "lead"}, headers=auth_headers(world.ana))
    assert own.status_code == 400
    assert own.json()["message"] == "The project creator's role cannot be changed or removed"

    stranger = client.patch(url, json={"user_id": world.olga, "project_role": "lead"}, headers=auth_headers(world.ana))
    assert stranger.status_code == 404

    by_lead = client.patch(url, json={"user_id": world.cora, "project_role": "lead"}, headers=auth_headers(world.leo))
    assert by_lead.status_code == 403


def test_remove_member(client, world, auth_headers):
    url = f"/projects/{world.project}/members"
    headers = auth_headers(world.ana)

    assert client.request("DELETE", url, json={"user_id": world.ana}, headers=headers).status_code == 400
    assert client.request("DELETE", url, json={"user_id": world.cora}, headers=headers).status_code == 200
    assert client.request("DELETE", url, json={"user_id": world.cora}, headers=headers).status_code == 404
    assert client.get(f"/projects/{world.project}", headers=auth_headers(world.cora)).status_code == 403


def test_search_invitable_users(client, world, auth_headers):
    url = f"/projects/{world.project}/users/search"

    r = client.get(url, params={"search": "o"}, headers=auth_headers(world.leo))
    assert r.status_code == 200
    assert [u["name"] for u in r.json()["data"]] == ["Olga", "Root"]

    assert client.get(url, headers=auth_headers(world.cora)).status_code == 403


def test_delete_project_cascades(client, world, auth_headers, api_sessionmaker):
    assert client.delete(f"/projects/{world.project}", headers=auth_headers(world.leo)).status_code == 403
    assert client.delete(f"/projects/{world.project}", headers=auth_headers(world.ana)).status_code == 200

    assert client.get(f"/projects/{world.project}", headers=auth_headers(world.ana)).status_code == 404
    assert client.get(f"/tasks/{world.task}", headers=auth_headers(world.ana)).status_code == 404
    with api_sessionmaker() as db:
        assert db.scalar(select(func.count(Membership.id))) == 0
