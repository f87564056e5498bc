import pytest
from flask import g

from filedesk.auth import auth_service
from filedesk.errors import AuthError
from filedesk.extensions import store
from filedesk.models import User
from filedesk.seed import create_admin
from filedesk.session import ADMIN, SUBADMIN

from conftest import PASSWORD, make_user


def test_sign_up_writes_credentials_and_profile(app):
    uid = make_user(app, "New.User@Example.com", name="New User")
    with app.app_context():
        user = User.query.filter_by(uid=uid).one()
        assert user.email == "new.user@example.com"
        assert user.password_hash != PASSWORD
        profile = store.read_once(f"user/{uid}")
        assert profile["role"] == SUBADMIN
        assert profile["name"] == "New User"
        assert profile["created_at"]


@pytest.mark.parametrize(
    "email,password,role,message",
    [
        ("not-an-email", PASSWORD, SUBADMIN, "Invalid email address"),
        ("a@example.com", "123", SUBADMIN, "Password should be at least 6 characters"),
        ("a@example.com", PASSWORD, "owner", "Invalid role"),
    ],
)
def test_sign_up_rejections(app, email, password, role, message):
    with app.app_context():
        with pytest.raises(AuthError, match=message):
            auth_service.sign_up(email, password, role=role)


def test_duplicate_email(app):
    make_user(app, "dup@example.com")
    with app.app_context():
        with pytest.raises(AuthError, match="Email already in use"):
            auth_service.sign_up("DUP@example.com", PASSWORD)


def test_sign_in_builds_session(app):
    uid = make_user(app, "admin@example.com", role=ADMIN, name="Asha")
    with app.test_request_context():
        session = auth_service.sign_in("admin@example.com", PASSWORD)
        assert session.user_id == uid
        assert session.is_admin
        assert session.display_name == "Asha"
        assert auth_service.current_session() is g.app_session

        auth_service.sign_out()
        assert auth_service.current_session() is None


def test_sign_in_with_wrong_password(app):
    make_user(app, "sub@example.com")
    with app.test_request_context():
        with pytest.raises(AuthError, match="Invalid email or password"):
            auth_service.sign_in("sub@example.com", "wrong-password")


def test_on_session_change_reports_sign_in_and_out(app):
    make_user(app, "sub@example.com")
    events = []
    with app.test_request_context():
        disconnect = auth_service.on_session_change(events.append)
        try:
            auth_service.sign_in("sub@example.com", PASSWORD)
            auth_service.sign_out()
        finally:
            disconnect()
    assert events[0].email == "sub@example.com"
    assert events[1] is None


def test_password_reset_flow(app):
    make_user(app, "sub@example.com")
    with app.test_request_context():
        token = auth_service.send_password_reset("sub@example.com")
        auth_service.reset_password(token, "brand-new-pass")
        assert auth_service.authenticate("sub@example.com", "brand-new-pass")

        with pytest.raises(AuthError, match="invalid"):
            auth_service.reset_password(token, "another-pass")


def test_password_reset_unknown_email(app):
    with app.app_context():
        with pytest.raises(AuthError, match="No account found with this email"):
            auth_service.send_password_reset("ghost@example.com")


def test_password_reset_bad_token(app):
    with app.app_context():
        with pytest.raises(AuthError, match="invalid"):
            auth_service.reset_password("not-a-token", "whatever1")


def test_create_admin_promotes_existing_user(app):
    uid = make_user(app, "sub@example.com", name="Sunil")
    with app.app_context():
        assert create_admin("sub@example.com", "ignored-pass") == uid
        profile = store.read_once(f"user/{uid}")
        assert profile["role"] == ADMIN
        assert profile["name"] == "Sunil"

        new_uid = create_admin("boss@example.com", PASSWORD, name="Boss")
        assert store.read_once(f"user/{new_uid}")["role"] == ADMIN
