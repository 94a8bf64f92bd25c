"""
Platform admin routes.

Tests cover:
- Access requires the platform-admin flag
- Users with membership / session counts
- Workspaces with entity counts
- Cross-tenant audit log with limit / offset
"""

import pytest

from crm.db.models import Client, Deal
from crm.schemas.client import ClientCreate
from crm.services import client_service, workspace_service


@pytest.fixture
def admin(make_user):
    return make_user("root@test.com", is_platform_admin=True)


@pytest.mark.parametrize("path", ["/platform/users", "/platform/workspaces", "/platform/audit"])
async def test_requires_platform_admin(client, login_as, owner, workspace, path):
    login_as(owner)
    response = await client.get(path)
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


async def test_unauthenticated(client):
    response = await client.get("/platform/users")
    assert response.status_code == 401


async def test_list_users_with_counts(client, login_as, admin, owner, workspace):
    login_as(owner)
    login_as(admin)

    response = await client.get("/platform/users")
    assert response.status_code == 200
    users = {u["email"]: u for u in response.json()["data"]["users"]}

    assert users["owner@test.com"]["membershipCount"] == 1
    assert users["owner@test.com"]["sessionCount"] == 1
    assert users["owner@test.com"]["isPlatformAdmin"] is False
    assert users["root@test.com"]["membershipCount"] == 0
    assert users["root@test.com"]["isPlatformAdmin"] is True
    assert "passwordHash" not in users["root@test.com"]


async def test_list_workspaces_with_counts(client, login_as, admin, db, workspace):
    db.add_all([
        Client(workspace_id=workspace.id, name="A"),
        Deal(workspace_id=workspace.id, stage="lead"),
        Deal(workspace_id=workspace.id, stage="proposal"),
    ])
    db.commit()
    login_as(admin)

    response = await client.get("/platform/workspaces")
    assert response.status_code == 200
    [item] = response.json()["data"]["workspaces"]
    assert item["slug"] == workspace.slug
    assert item["memberCount"] == 1
    assert item["clientCount"] == 1
    assert item["dealCount"] == 2
    assert item["taskCount"] == 0


async def test_audit_log_spans_workspaces(client, login_as, admin, db, owner, workspace):
    other = workspace_service.create_workspace(
        db, name="Other", slug="other-ws", owner_user_id=owner.id
    )
    client_service.create_client(
        db, workspace_id=other.id, actor_user_id=owner.id, data=ClientCreate(name="Globex")
    )
    login_as(admin)

    response = await client.get("/platform/audit")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 3
    assert (data["limit"], data["offset"]) == (100, 0)

    events = data["auditEvents"]
    assert {e["workspace"]["slug"] for e in events} == {workspace.slug, "other-ws"}
    assert all(e["actor"]["email"] == "owner@test.com" for e in events)


async def test_audit_log_pagination(client, login_as, admin, db, owner, workspace):
    for name in ("A", "B", "C"):
        client_service.create_client(
            db, workspace_id=workspace.id, actor_user_id=owner.id, data=ClientCreate(name=name)
        )
    login_as(admin)

    first = (await client.get("/platform/audit", params={"limit": 2})).json()["data"]
    second = (await client.get("/platform/audit", params={"limit": 2, "offset": 2})).json()["data"]

    assert first["total"] == second["total"] == 4
    assert len(first["auditEvents"]) == 2
    assert len(second["auditEvents"]) == 2
    first_ids = {e["id"] for e in first["auditEvents"]}
    assert first_ids.isdisjoint(e["id"] for e in second["auditEvents"])


async def test_audit_log_rejects_bad_paging(client, login_as, admin):
    login_as(admin)
    response = await client.get("/platform/audit", params={"limit": 0})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
