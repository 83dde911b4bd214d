from app.models.enums import AccountStatus, UserRole
from app.repositories import UserRepository


def signup(client, **overrides):
    body = {"email": "club@campus.edu", "password": "pw123", "name": "Robotics Club", "role": "club"}
    body.update(overrides)
    return client.post("/api/user/signup", json=body)


def signin(client, email="club@campus.edu", password="pw123"):
    return client.post("/api/user/signin", json={"email": email, "password": password})


def test_student_signup_returns_token(client):
    res = signup(client, email="s@campus.edu", role="student")

    assert res.status_code == 201
    body = res.get_json()
    assert body["user"]["status"] == AccountStatus.APPROVED.value
    assert "token" in body
    assert signin(client, "s@campus.edu").status_code == 200


def test_club_signup_waits_for_approval(client, make_user, auth_headers):
    res = signup(client)
    assert res.status_code == 201
    assert "token" not in res.get_json()

    res = signin(client)
    assert res.status_code == 401
    assert "awaiting admin approval" in res.get_json()["error"]

    user_id = UserRepository.find_by_email("club@campus.edu").id
    admin = make_user(role=UserRole.ADMIN.value)
    res = client.post(f"/api/admin/users/{user_id}/approve", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.get_json()["user"]["status"] == AccountStatus.APPROVED.value

    assert signin(client).status_code == 200

    # Approving twice is a conflict
    res = client.post(f"/api/admin/users/{user_id}/approve", headers=auth_headers(admin))
    assert res.status_code == 409


def test_rejected_account_is_removed(client, make_user, auth_headers):
    signup(client, role="faculty")
    user_id = UserRepository.find_by_email("club@campus.edu").id
    admin = make_user(role=UserRole.ADMIN.value)

    res = client.post(f"/api/admin/users/{user_id}/reject", headers=auth_headers(admin))

    assert res.status_code == 200
    assert UserRepository.find_by_email("club@campus.edu") is None
    assert signup(client, role="faculty").status_code == 201


def test_signup_errors(client):
    assert client.post("/api/user/signup", json={}).status_code == 400

    res = client.post("/api/user/signup", json={"email": "x@campus.edu"})
    assert res.status_code == 400
    assert set(res.get_json()["missing_fields"]) == {"password", "name"}

    assert signup(client, role="admin").status_code == 400

    signup(client)
    res = signup(client)
    assert res.status_code == 400
    assert res.get_json()["error"] == "User already exists"


def test_bad_credentials(client, make_user):
    make_user()
    assert signin(client, "student1@campus.edu", "wrong").status_code == 401
    assert signin(client, "student1@campus.edu", "secret").status_code == 200


def test_validate_token(client, make_user, auth_headers):
    user = make_user(name="Asha")
    res = client.get("/api/user/validate-token", headers=auth_headers(user))

    assert res.status_code == 200
    assert res.get_json()["user"]["name"] == "Asha"


def test_admin_endpoints_require_admin(client, make_user, auth_headers):
    student = make_user()
    pending = make_user(role=UserRole.CLUB.value, status=AccountStatus.PENDING.value)

    assert client.get("/api/admin/check", headers=auth_headers(student)).status_code == 403
    assert client.get("/api/admin/users", headers=auth_headers(student)).status_code == 403
    res = client.post(f"/api/admin/users/{pending.id}/approve", headers=auth_headers(student))
    assert res.status_code == 403


def test_admin_lists_pending_users(client, make_user, auth_headers):
    admin = make_user(role=UserRole.ADMIN.value)
    make_user(role=UserRole.CLUB.value, status=AccountStatus.PENDING.value, name="Chess Club")
    make_user()

    assert client.get("/api/admin/check", headers=auth_headers(admin)).get_json() == {"is_admin": True}

    res = client.get("/api/admin/users?status=pending", headers=auth_headers(admin))
    assert res.status_code == 200
    assert [u["name"] for u in res.get_json()] == ["Chess Club"]

    assert client.get("/api/admin/users?status=bogus", headers=auth_headers(admin)).status_code == 400
