from filedesk.auth import auth_service
from filedesk.extensions import store
from filedesk.session import SUBADMIN

from conftest import PASSWORD, login, make_user


def test_index_sends_anonymous_users_to_login(client):
    resp = client.get("/")
    assert resp.status_code == 302
    assert "/auth/login" in resp.headers["Location"]


def test_protected_pages_require_login(client):
    resp = client.get("/records/")
    assert resp.status_code == 302
    assert "/auth/login" in resp.headers["Location"]


def test_login_page_renders(client):
    assert client.get("/auth/login").status_code == 200


def test_login_failure_shows_banner(client, subadmin_uid):
    resp = login(client, "sub@example.com", "wrong-password")
    assert resp.status_code == 401
    assert b"Failed to login" in resp.data


def test_admin_lands_on_admin_dashboard(client, admin_uid):
    resp = login(client, "admin@example.com")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")
    assert client.get("/dashboard").status_code == 200
    assert client.get("/subadmin-dashboard").status_code == 403


def test_subadmin_lands_on_subadmin_dashboard(client, subadmin_uid):
    resp = login(client, "sub@example.com")
    assert resp.headers["Location"].endswith("/subadmin-dashboard")
    assert client.get("/subadmin-dashboard").status_code == 200
    assert client.get("/dashboard").status_code == 403


def test_login_follows_safe_next_only(client, subadmin_uid):
    resp = client.post("/auth/login?next=/diary/", data={"email": "sub@example.com", "password": PASSWORD})
    assert resp.headers["Location"].endswith("/diary/")
    client.get("/auth/logout")
    resp = client.post("/auth/login?next=//evil.example.com/", data={"email": "sub@example.com", "password": PASSWORD})
    assert resp.headers["Location"].endswith("/subadmin-dashboard")


def test_signup_creates_a_subadmin(app, client):
    resp = client.post("/auth/signup", data={
        "name": "Nisha",
        "email": "nisha@example.com",
        "mobile": "9999999999",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
    })
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/subadmin-dashboard")
    with app.app_context():
        profiles = store.read_once("user")
    assert [p["role"] for p in profiles.values()] == [SUBADMIN]


def test_signup_password_mismatch(client):
    resp = client.post("/auth/signup", data={
        "email": "nisha@example.com",
        "password": PASSWORD,
        "confirm_password": "different",
    })
    assert resp.status_code == 400
    assert b"Passwords do not match!" in resp.data


def test_signup_duplicate_email(client, subadmin_uid):
    resp = client.post("/auth/signup", data={
        "email": "sub@example.com",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
    })
    assert resp.status_code == 400
    assert b"Email already in use" in resp.data


def test_logout(client, subadmin_uid):
    login(client, "sub@example.com")
    resp = client.get("/auth/logout", follow_redirects=True)
    assert b"You have been logged out." in resp.data
    assert client.get("/subadmin-dashboard").status_code == 302


def test_forgot_password(client, subadmin_uid):
    resp = client.post("/auth/forgot-password", data={"email": "ghost@example.com"})
    assert resp.status_code == 400
    assert b"No account found with this email" in resp.data

    resp = client.post("/auth/forgot-password", data={"email": "sub@example.com"})
    assert resp.status_code == 302


def test_reset_password_with_token(app, client):
    make_user(app, "sub@example.com")
    with app.test_request_context():
        token = auth_service.send_password_reset("sub@example.com")

    resp = client.post(f"/auth/reset-password/{token}", data={"password": "fresh-pass", "confirm_password": "fresh-pass"})
    assert resp.status_code == 302
    assert login(client, "sub@example.com", "fresh-pass").status_code == 302

    client.get("/auth/logout")
    resp = client.post(f"/auth/reset-password/{token}", data={"password": "again-pass", "confirm_password": "again-pass"})
    assert resp.status_code == 400
