import io

import pytest

from config import TestingConfig
from filedesk import create_app
from filedesk.auth import auth_service
from filedesk.extensions import db
from filedesk.session import ADMIN, SUBADMIN

PASSWORD = "secret123"


@pytest.fixture()
def app(tmp_path):
    class _Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def make_user(app, email, role=SUBADMIN, name="", password=PASSWORD):
    with app.app_context():
        return auth_service.sign_up(email, password, name=name, role=role)


def login(client, email, password=PASSWORD):
    return client.post("/auth/login", data={"email": email, "password": password})


@pytest.fixture()
def admin_uid(app):
    return make_user(app, "admin@example.com", role=ADMIN, name="Asha Admin")


@pytest.fixture()
def subadmin_uid(app):
    return make_user(app, "sub@example.com", role=SUBADMIN, name="Sunil Sub")


@pytest.fixture()
def admin_client(client, admin_uid):
    login(client, "admin@example.com")
    return client


@pytest.fixture()
def subadmin_client(client, subadmin_uid):
    login(client, "sub@example.com")
    return client


def pdf_upload(name="memo.pdf", body=b"%PDF-1.4 test file"):
    return (io.BytesIO(body), name, "application/pdf")


def record_form(**overrides):
    data = {
        "department": "Contractor",
        "public_rep_type": "",
        "received_from": "ABC Builders",
        "subject": "Road repair estimate",
        "allocated_to": "JE North",
        "status": "Pending",
        "inward_number": "IN-101",
        "inward_date": "2024-03-05",
        "receiving_date": "2024-03-06",
        "description": "",
    }
    data.update(overrides)
    return data
