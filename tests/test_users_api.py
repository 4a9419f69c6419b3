from shiftboard.models.user import User, UserRole


def test_list_users_ordered_by_role_then_name(client, make_user, auth_headers):
    mgr = make_user(UserRole.MANAGER, display_name="Kato")
    make_user(UserRole.MEMBER, display_name="Abe")
    make_user(UserRole.ADMIN, display_name="Watanabe")
    make_user(UserRole.MEMBER, display_name="Mori")
    make_user(UserRole.MANAGER, display_name="Ito")

    res = client.get("/api/users", headers=auth_headers(mgr))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["total"] == 5
    assert data["page"] == 1
    assert [u["displayName"] for u in data["users"]] == ["Watanabe", "Ito", "Kato", "Abe", "Mori"]


def test_list_users_filters_and_paging(client, make_user, auth_headers):
    admin = make_user(UserRole.ADMIN, display_name="Boss")
    make_user(UserRole.MEMBER, display_name="Snow Yuki")
    make_user(UserRole.MEMBER, display_name="Ski Ken", is_active=False)
    make_user(UserRole.MEMBER, display_name="snowboard Rin")

    headers = auth_headers(admin)
    found = client.get("/api/users", params={"search": "SNOW"}, headers=headers).json()["data"]
    assert {u["displayName"] for u in found["users"]} == {"Snow Yuki", "snowboard Rin"}

    inactive = client.get("/api/users", params={"isActive": "false"}, headers=headers).json()["data"]
    assert [u["displayName"] for u in inactive["users"]] == ["Ski Ken"]

    members = client.get("/api/users", params={"role": "MEMBER", "limit": 2, "page": 2}, headers=headers).json()["data"]
    assert members["total"] == 3
    assert len(members["users"]) == 1

    assert client.get("/api/users", params={"limit": 101}, headers=headers).status_code == 400


def test_member_cannot_list_users(client, member, auth_headers):
    assert client.get("/api/users", headers=auth_headers(member)).status_code == 403


def test_get_user_self_or_manager(client, member, manager, make_user, auth_headers):
    other = make_user()

    assert client.get(f"/api/users/{member.id}", headers=auth_headers(member)).status_code == 200
    res = client.get(f"/api/users/{other.id}", headers=auth_headers(member))
    assert res.status_code == 403
    assert res.json()["error"] == "You can only view your own user information"

    res = client.get(f"/api/users/{other.id}", headers=auth_headers(manager))
    assert res.status_code == 200
    assert res.json()["data"]["lineUserId"] == other.line_user_id

    assert client.get("/api/users/9999", headers=auth_headers(manager)).status_code == 404


def test_admin_updates_user(client, db_session, admin, member, auth_headers):
    res = client.patch(
        f"/api/users/{member.id}",
        json={"role": "MANAGER", "displayName": "  Tanaka Hanako "},
        headers=auth_headers(admin),
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["role"] == "MANAGER"
    assert data["displayName"] == "Tanaka Hanako"

    db_session.expire_all()
    assert db_session.get(User, member.id).role == UserRole.MANAGER


def test_admin_deactivates_user(client, db_session, admin, member, auth_headers):
    res = client.patch(f"/api/users/{member.id}", json={"isActive": False}, headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.json()["data"]["isActive"] is False
    # the member's existing session stops working
    assert client.get("/api/auth/me", headers=auth_headers(member)).status_code == 403


def test_update_rules(client, admin, manager, member, auth_headers):
    own = client.patch(f"/api/users/{admin.id}", json={"role": "MEMBER"}, headers=auth_headers(admin))
    assert own.status_code == 400
    assert own.json()["error"] == "Cannot modify your own user account"

    empty = client.patch(f"/api/users/{member.id}", json={}, headers=auth_headers(admin))
    assert empty.status_code == 400
    assert empty.json()["error"] == "At least one field must be provided for update"

    by_manager = client.patch(f"/api/users/{member.id}", json={"role": "ADMIN"}, headers=auth_headers(manager))
    assert by_manager.status_code == 403
    assert by_manager.json()["error"] == "Insufficient permissions. Admin role required."

    bad_role = client.patch(f"/api/users/{member.id}", json={"role": "OWNER"}, headers=auth_headers(admin))
    assert bad_role.status_code == 400
