from filedesk.extensions import store
from filedesk.session import ADMIN

from conftest import PASSWORD, login


def test_users_screen_is_admin_only(subadmin_client):
    assert subadmin_client.get("/users/").status_code == 403
    assert subadmin_client.get("/users/new").status_code == 403


def test_admin_lists_profiles(admin_client, subadmin_uid):
    resp = admin_client.get("/users/")
    assert resp.status_code == 200
    assert b"sub@example.com" in resp.data
    assert b"Sub-admin" in resp.data


def test_admin_creates_another_admin(app, admin_client):
    resp = admin_client.post("/users/new", data={
        "name": "Second Admin",
        "email": "second@example.com",
        "mobile": "",
        "password": PASSWORD,
        "role": ADMIN,
    })
    assert resp.status_code == 302

    with app.app_context():
        roles = {p["email"]: p["role"] for p in store.read_once("user").values()}
    assert roles["second@example.com"] == ADMIN

    admin_client.get("/auth/logout")
    assert login(admin_client, "second@example.com").headers["Location"].endswith("/dashboard")


def test_create_user_validation(admin_client):
    resp = admin_client.post("/users/new", data={"name": "", "email": "x@example.com", "password": PASSWORD})
    assert resp.status_code == 400
    assert b"Name is required" in resp.data

    resp = admin_client.post("/users/new", data={"name": "Dup", "email": "admin@example.com", "password": PASSWORD})
    assert resp.status_code == 400
    assert b"Email already in use" in resp.data
