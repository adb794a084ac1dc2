from uuid import uuid4

from tasktracker.models.user import UserRole


def test_list_users_is_admin_only(client, admin, member, auth_headers):
    denied = client.get("/users", headers=auth_headers(member))
    res = client.get("/users", params={"role": "member"}, headers=auth_headers(admin))

    assert denied.status_code == 403
    assert denied.json()["message"] == "Admin access required"
    assert res.status_code == 200
    assert [u["email"] for u in res.json()["data"]] == [member.email]
    assert res.json()["pagination"]["total_items"] == 1


def test_get_user_includes_task_stats(client, member, auth_headers):
    res = client.get(f"/users/{member.user_id}", headers=auth_headers(member))

    assert res.status_code == 200
    assert res.json()["data"]["task_stats"] == {
        "total": 0,
        "todo": 0,
        "in_progress": 0,
        "done": 0,
        "overdue": 0,
    }


def test_member_cannot_view_other_user(client, member, other_member, auth_headers):
    res = client.get(f"/users/{other_member.user_id}", headers=auth_headers(member))

    assert res.status_code == 403


def test_admin_updates_member_profile(client, admin, member, auth_headers):
    res = client.patch(
        f"/users/{member.user_id}",
        json={"last_name": "Updated", "email": "Renamed@Example.com"},
        headers=auth_headers(admin),
    )

    assert res.status_code == 200
    assert res.json()["data"]["last_name"] == "Updated"
    assert res.json()["data"]["email"] == "renamed@example.com"


def test_admin_cannot_change_own_role(client, admin, auth_headers):
    res = client.patch(f"/users/{admin.user_id}/role", json={"role": "member"}, headers=auth_headers(admin))

    assert res.status_code == 400
    assert res.json()["message"] == "You cannot change your own role"


def test_admin_promotes_member(client, admin, member, auth_headers):
    res = client.patch(f"/users/{member.user_id}/role", json={"role": "admin"}, headers=auth_headers(admin))

    assert res.status_code == 200
    assert res.json()["data"]["role"] == "admin"


def test_invalid_role_value(client, admin, member, auth_headers):
    res = client.patch(f"/users/{member.user_id}/role", json={"role": "owner"}, headers=auth_headers(admin))

    assert res.status_code == 400


def test_delete_user_with_assigned_tasks_fails(client, admin, member, auth_headers):
    client.post(
        "/tasks",
        json={"title": "t", "assignee": str(member.user_id)},
        headers=auth_headers(admin),
    )

    res = client.delete(f"/users/{member.user_id}", headers=auth_headers(admin))

    assert res.status_code == 400
    assert res.json()["message"].startswith("Cannot delete user with 1 assigned task(s)")


def test_delete_user_without_tasks(client, admin, member, auth_headers):
    res = client.delete(f"/users/{member.user_id}", headers=auth_headers(admin))
    again = client.get(f"/users/{member.user_id}", headers=auth_headers(admin))

    assert res.status_code == 200
    assert again.status_code == 404


def test_admin_cannot_delete_self(client, admin, auth_headers):
    res = client.delete(f"/users/{admin.user_id}", headers=auth_headers(admin))

    assert res.status_code == 400
    assert res.json()["message"] == "You cannot delete your own account"


def test_delete_unknown_user(client, admin, auth_headers):
    res = client.delete(f"/users/{uuid4()}", headers=auth_headers(admin))

    assert res.status_code == 404


def test_dashboard(client, admin, member, auth_headers):
    client.post("/tasks", json={"title": "mine"}, headers=auth_headers(member))

    mine = client.get("/users/dashboard", headers=auth_headers(member))
    by_admin = client.get(f"/users/dashboard/{member.user_id}", headers=auth_headers(admin))
    denied = client.get(f"/users/dashboard/{admin.user_id}", headers=auth_headers(member))

    assert mine.status_code == 200
    data = mine.json()["data"]
    assert data["task_stats"]["total"] == 1
    assert [t["title"] for t in data["recent_tasks"]] == ["mine"]
    assert data["recent_activity"][0]["action"] == "created"
    assert data["recent_activity"][0]["task_title"] == "mine"
    assert data["recent_activity"][0]["user"]["user_id"] == str(member.user_id)
    assert by_admin.json()["data"]["user"]["user_id"] == str(member.user_id)
    assert denied.status_code == 403


def test_list_users_search_matches_wildcards_literally(client, admin, member, make_user, auth_headers):
    underscored = make_user(UserRole.MEMBER, email="under_score@example.com")

    res = client.get("/users", params={"search": "_"}, headers=auth_headers(admin))

    assert res.status_code == 200
    assert [u["user_id"] for u in res.json()["data"]] == [str(underscored.user_id)]
