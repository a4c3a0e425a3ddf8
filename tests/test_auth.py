from schooldesk.models import User


def test_login_sets_cookies_and_returns_token(client, make_user, school, audit_log):
    make_user("principal", school, username="grace", password="secret123")

    response = client.post("/auth/login", json={"username": "grace", "password": "secret123"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["user"]["role"] == "principal"
    cookies = response.headers.getlist("Set-Cookie")
    assert any(c.startswith("access_token_cookie=") for c in cookies)
    assert any(c.startswith("refresh_token_cookie=") for c in cookies)
    assert "LOGIN_SUCCESS" in audit_log.read_text()


def test_login_with_bad_password(client, make_user, school, audit_log):
    make_user("principal", school, username="grace", password="secret123")

    response = client.post("/auth/login", json={"username": "grace", "password": "wrong"})

    assert response.status_code == 401
    assert "LOGIN_FAILED" in audit_log.read_text()


def test_login_validates_username_format(client):
    response = client.post("/auth/login", json={"username": "a b", "password": "x"})

    assert response.status_code == 422
    assert "username" in response.get_json()["errors"]


def test_me_lists_permissions(client, make_user, school, headers_for):
    accountant = make_user("accountant", school)

    body = client.get("/auth/me", headers=headers_for(accountant)).get_json()

    assert body["username"] == accountant.username
    assert body["school"] == school.name
    assert "payroll.*" in body["permissions"]


def test_logout_revokes_token(client, make_user, school, headers_for):
    headers = headers_for(make_user("teacher", school))

    assert client.post("/auth/logout", headers=headers).status_code == 200

    assert client.get("/auth/me", headers=headers).status_code == 401


def test_admin_registers_user_in_own_school(client, headers, school, make_school):
    other = make_school("Other")

    response = client.post("/auth/register", json={
        "username": "new.teacher", "password": "longenough", "role": "teacher", "school_id": other.id,
    }, headers=headers)

    assert response.status_code == 201
    assert User.query.filter_by(username="new.teacher").one().school_id == school.id


def test_admin_cannot_create_superuser(client, headers):
    response = client.post("/auth/register", json={
        "username": "root2", "password": "longenough", "role": "superuser",
    }, headers=headers)

    assert response.status_code == 403


def test_register_rejects_unknown_role_and_duplicates(client, headers, admin):
    unknown = client.post("/auth/register", json={
        "username": "someone", "password": "longenough", "role": "janitor",
    }, headers=headers)
    duplicate = client.post("/auth/register", json={
        "username": admin.username, "password": "longenough", "role": "teacher",
    }, headers=headers)

    assert unknown.status_code == 422
    assert duplicate.status_code == 422


def test_teacher_cannot_register_users(client, make_user, school, headers_for):
    response = client.post("/auth/register", json={
        "username": "someone", "password": "longenough", "role": "teacher",
    }, headers=headers_for(make_user("teacher", school)))

    assert response.status_code == 403
