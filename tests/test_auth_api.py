from models import Role, User
from routers.auth import SESSION_COOKIE, create_session_token, verify_session_token


def test_signup_sets_cookie_and_stores_profile(client_for, session):
    client = client_for()
    response = client.post(
        "/auth/signup",
        json={
            "email": "asha@example.com",
            "password": "secret123",
            "full_name": "Asha Devi",
            "role": "ngo",
            "organization_name": "Kisan Seva",
            "state": "Bihar",
        },
    )
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "ngo"
    assert SESSION_COOKIE in response.cookies

    user = session.get(User, response.json()["user"]["id"])
    assert user.role == Role.NGO
    assert user.password_hash != "secret123"

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "asha@example.com"


def test_signup_rejects_admin_role(client_for):
    response = client_for().post(
        "/auth/signup",
        json={
            "email": "root@example.com",
            "password": "secret123",
            "full_name": "Root",
            "role": "admin",
        },
    )
    assert response.status_code == 422


def test_duplicate_email(client_for, farmer):
    response = client_for().post(
        "/auth/signup",
        json={"email": farmer.email, "password": "secret123", "full_name": "Again"},
    )
    assert response.status_code == 400


def test_login_with_form_data(client_for, farmer):
    client = client_for()
    response = client.post(
        "/auth/login", data={"email": farmer.email, "password": "secret123"}
    )
    assert response.status_code == 200
    assert response.json()["role"] == "farmer"
    assert client.get("/users/me").json()["id"] == farmer.id


def test_login_wrong_password(client_for, farmer):
    response = client_for().post(
        "/auth/login", json={"email": farmer.email, "password": "nope"}
    )
    assert response.status_code == 400


def test_tampered_token_is_rejected(client_for):
    client = client_for()
    client.cookies.set(SESSION_COOKIE, create_session_token("abc") + "x")
    assert client.get("/auth/me").status_code == 401
    assert verify_session_token("garbage") is None


def test_profile_update_keeps_role(client_for, farmer):
    client = client_for(farmer)
    response = client.patch(
        "/users/me", json={"village": "Jagraon", "role": "admin"}
    )
    assert response.status_code == 200
    assert response.json()["village"] == "Jagraon"
    assert response.json()["role"] == "farmer"


def test_root_redirects_signed_in_users(client_for, farmer):
    response = client_for(farmer).get("/", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/"
