PASSWORD = "secret123"


def _register(client, email="new@example.com", password=PASSWORD):
    return client.post(
        "/auth/register",
        json={"email": email, "password": password, "first_name": "New", "last_name": "Person"},
    )


def test_register_returns_member_and_token(client):
    res = _register(client)

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["data"]["user"]["role"] == "member"
    assert body["data"]["user"]["email"] == "new@example.com"
    assert "password_hash" not in body["data"]["user"]
    assert body["data"]["token"]


def test_register_duplicate_email_is_rejected(client):
    _register(client)

    res = _register(client, email="NEW@example.com")

    assert res.status_code == 400
    assert res.json() == {
        "success": False,
        "message": "email already exists",
        "error": "ConflictError",
    }


def test_register_reports_field_errors(client):
    res = _register(client, email="not-an-email")

    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["validation_errors"][0].startswith("email:")


def test_register_weak_password(client):
    res = _register(client, password="abcdefgh")

    assert res.status_code == 400
    assert res.json()["validation_errors"] == ["Password must contain at least one number"]


def test_login_and_profile(client, member):
    res = client.post("/auth/login", json={"email": member.email, "password": PASSWORD})
    assert res.status_code == 200
    token = res.json()["data"]["token"]

    profile = client.get("/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert profile.status_code == 200
    assert profile.json()["data"]["user_id"] == str(member.user_id)
    assert profile.json()["data"]["last_login_at"] is not None


def test_login_with_wrong_password(client, member):
    res = client.post("/auth/login", json={"email": member.email, "password": "wrong12345"})

    assert res.status_code == 401
    assert res.json()["message"] == "Invalid email or password"


def test_protected_route_without_token(client):
    res = client.get("/auth/profile")

    assert res.status_code == 401
    assert res.json()["message"] == "Access denied. No token provided"


def test_garbage_token_is_rejected(client):
    res = client.get("/auth/verify", headers={"Authorization": "Bearer not.a.jwt"})

    assert res.status_code == 401
    assert res.json()["message"] == "Invalid token"


def test_token_for_deleted_user_is_rejected(client, admin, member, auth_headers):
    headers = auth_headers(member)
    client.delete(f"/users/{member.user_id}", headers=auth_headers(admin))

    res = client.get("/auth/verify", headers=headers)

    assert res.status_code == 401
    assert res.json()["message"] == "User no longer exists"


def test_update_profile(client, member, auth_headers):
    res = client.patch(
        "/auth/profile",
        json={"first_name": "  Renamed "},
        headers=auth_headers(member),
    )

    assert res.status_code == 200
    assert res.json()["data"]["first_name"] == "Renamed"
    assert res.json()["data"]["full_name"].startswith("Renamed ")


def test_change_password_flow(client, member, auth_headers):
    headers = auth_headers(member)

    wrong = client.post(
        "/auth/change-password",
        json={"current_password": "bad123456", "new_password": "newpass123"},
        headers=headers,
    )
    ok = client.post(
        "/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "newpass123"},
        headers=headers,
    )
    login = client.post("/auth/login", json={"email": member.email, "password": "newpass123"})

    assert wrong.status_code == 400
    assert ok.status_code == 200
    assert login.status_code == 200


def test_verify_and_logout(client, member, auth_headers):
    headers = auth_headers(member)

    verify = client.get("/auth/verify", headers=headers)
    logout = client.post("/auth/logout", headers=headers)

    assert verify.json()["data"]["valid"] is True
    assert logout.status_code == 200
    assert logout.json()["data"] is None
