import re
from datetime import datetime, timedelta, timezone

from shiftboard.models.invitation_token import InvitationToken
from shiftboard.services.invitations import create_invitation_token
from shiftboard.utils.dates import utc_now

TOKEN_RE = re.compile(r"^inv_[0-9a-f]{64}$")


def _iso(delta: timedelta) -> str:
    return (datetime.now(timezone.utc) + delta).isoformat()


def _create(client, headers, delta=timedelta(hours=24), description=None):
    body = {"expiresAt": _iso(delta)}
    if description is not None:
        body["description"] = description
    return client.post("/api/invitations", json=body, headers=headers)


# ---------------- POST ----------------

def test_create_invitation(client, manager, auth_headers):
    res = _create(client, auth_headers(manager), description="2025 winter staff")
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["error"] is None
    data = body["data"]
    assert TOKEN_RE.match(data["token"])
    assert data["invitationUrl"] == f"http://localhost:3000/login?invite={data['token']}"
    assert data["maxUses"] is None
    assert data["createdBy"] == "Manager Suzuki"
    assert data["expiresAt"].endswith("Z")


def test_create_requires_authentication(client):
    res = client.post("/api/invitations", json={"expiresAt": _iso(timedelta(hours=1))})
    assert res.status_code == 401
    assert res.json() == {
        "success": False,
        "data": None,
        "message": None,
        "error": "Authentication token required",
    }


def test_member_cannot_create(client, member, auth_headers):
    res = _create(client, auth_headers(member))
    assert res.status_code == 403
    assert res.json()["error"] == "Insufficient permissions. Admin or Manager role required."


def test_expiry_must_be_in_future(client, manager, auth_headers):
    res = _create(client, auth_headers(manager), delta=timedelta(minutes=-1))
    assert res.status_code == 400
    assert res.json()["error"] == "有効期限は現在時刻より後に設定してください"


def test_expiry_at_most_one_month(client, manager, auth_headers):
    res = _create(client, auth_headers(manager), delta=timedelta(days=40))
    assert res.status_code == 400
    assert res.json()["error"] == "有効期限は最大1ヶ月までです"

    ok = _create(client, auth_headers(manager), delta=timedelta(days=27))
    assert ok.status_code == 201


def test_expiry_is_required(client, manager, auth_headers):
    res = client.post("/api/invitations", json={"description": "x"}, headers=auth_headers(manager))
    assert res.status_code == 400
    assert res.json()["error"].startswith("Validation failed")


def test_collision_exhaustion_is_500(client, manager, auth_headers, db_session, monkeypatch):
    from shiftboard.services import invitations

    existing = create_invitation_token(db_session, created_by=manager.id, expires_in_hours=1)
    monkeypatch.setattr(invitations, "_generate_secure_token", lambda: existing.token)
    res = _create(client, auth_headers(manager))
    assert res.status_code == 500
    assert res.json()["error"] == "System error: Unable to generate unique invitation token"


def test_new_invitation_supersedes_previous(client, manager, admin, auth_headers, db_session):
    first = _create(client, auth_headers(manager)).json()["data"]["token"]
    second = _create(client, auth_headers(admin)).json()["data"]["token"]

    now = utc_now()
    db_session.expire_all()
    active = (
        db_session.query(InvitationToken)
        .filter(InvitationToken.is_active.is_(True), InvitationToken.expires_at > now)
        .all()
    )
    assert [r.token for r in active] == [second]
    assert db_session.query(InvitationToken).filter_by(token=first).one().is_active is False


# ---------------- GET list ----------------

def test_list_own_invitations(client, manager, auth_headers):
    token = _create(client, auth_headers(manager)).json()["data"]["token"]
    res = client.get("/api/invitations", headers=auth_headers(manager))
    assert res.status_code == 200
    body = res.json()
    assert body["count"] == 1
    item = body["data"][0]
    assert item["token"] == token
    assert item["isExpired"] is False
    assert item["remainingUses"] is None
    assert item["usedCount"] == 0
    assert item["creatorName"] == "Manager Suzuki"
    assert item["creatorRole"] == "MANAGER"


def test_list_include_inactive_and_show_all(client, manager, admin, auth_headers):
    _create(client, auth_headers(manager))
    _create(client, auth_headers(admin))  # supersedes the manager's

    own_active = client.get("/api/invitations", headers=auth_headers(manager)).json()
    assert own_active["count"] == 0

    own_all = client.get(
        "/api/invitations", params={"includeInactive": "true"}, headers=auth_headers(manager)
    ).json()
    assert own_all["count"] == 1

    manager_show_all = client.get(
        "/api/invitations", params={"includeInactive": "true", "showAll": "true"}, headers=auth_headers(manager)
    ).json()
    assert manager_show_all["count"] == 1

    admin_show_all = client.get(
        "/api/invitations", params={"includeInactive": "true", "showAll": "true"}, headers=auth_headers(admin)
    ).json()
    assert admin_show_all["count"] == 2
    assert {i["creatorRole"] for i in admin_show_all["data"]} == {"ADMIN", "MANAGER"}


def test_member_cannot_list(client, member, auth_headers):
    assert client.get("/api/invitations", headers=auth_headers(member)).status_code == 403


# ---------------- active / verify ----------------

def test_active_invitation(client, manager, auth_headers):
    res = client.get("/api/invitations/active", headers=auth_headers(manager))
    assert res.status_code == 404
    assert res.json()["error"] == "No active invitation found"

    token = _create(client, auth_headers(manager)).json()["data"]["token"]
    data = client.get("/api/invitations/active", headers=auth_headers(manager)).json()["data"]
    assert data["token"] == token
    assert data["invitationUrl"].endswith(f"/login?invite={token}")


def test_verify_is_public(client, manager, auth_headers):
    token = _create(client, auth_headers(manager)).json()["data"]["token"]

    res = client.get(f"/api/invitations/{token}/verify")
    assert res.status_code == 200
    assert res.json()["data"]["token"] == token
    assert res.json()["data"]["remainingUses"] is None

    assert client.get(f"/api/invitations/inv_{'0' * 64}/verify").status_code == 404
    assert client.get("/api/invitations/not-a-token/verify").status_code == 404

    client.delete(f"/api/invitations/{token}", headers=auth_headers(manager))
    res = client.get(f"/api/invitations/{token}/verify")
    assert res.status_code == 410
    assert res.json()["error"] == "Invitation token is disabled"


# ---------------- DELETE ----------------

def test_admin_can_deactivate_managers_token_once(client, manager, admin, auth_headers):
    token = _create(client, auth_headers(manager)).json()["data"]["token"]

    res = client.delete(f"/api/invitations/{token}", headers=auth_headers(admin))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["message"] == "Invitation token deactivated successfully"
    assert data["token"] == token
    assert data["deactivatedBy"] == "Admin Sato"
    assert data["deactivatedAt"].endswith("Z")

    again = client.delete(f"/api/invitations/{token}", headers=auth_headers(admin))
    assert again.status_code == 409
    assert again.json()["error"] == "Invitation token is already inactive"


def test_manager_cannot_deactivate_other_managers_token(client, manager, make_user, auth_headers):
    from shiftboard.models.user import UserRole

    other = make_user(UserRole.MANAGER, display_name="Manager Ito")
    token = _create(client, auth_headers(manager)).json()["data"]["token"]

    res = client.delete(f"/api/invitations/{token}", headers=auth_headers(other))
    assert res.status_code == 403
    assert res.json()["error"] == "You can only deactivate invitation tokens you created, or you must be an admin"


def test_deactivate_unknown_token(client, admin, auth_headers):
    res = client.delete(f"/api/invitations/inv_{'9' * 64}", headers=auth_headers(admin))
    assert res.status_code == 404
    assert res.json()["error"] == "Invitation token not found"


def test_deactivate_blank_token(client, admin, auth_headers):
    res = client.delete("/api/invitations/%20", headers=auth_headers(admin))
    assert res.status_code == 400
    assert res.json()["error"] == "Token parameter is required"


def test_member_cannot_deactivate(client, manager, member, auth_headers):
    token = _create(client, auth_headers(manager)).json()["data"]["token"]
    assert client.delete(f"/api/invitations/{token}", headers=auth_headers(member)).status_code == 403
