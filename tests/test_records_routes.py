import io

from filedesk.extensions import store
from filedesk.models import AuditLog
from filedesk.session import ADMIN

from conftest import PASSWORD, login, make_user, pdf_upload, record_form


def upload_record(client, **overrides):
    data = record_form(**overrides)
    data["file"] = pdf_upload()
    return client.post("/records/new", data=data, content_type="multipart/form-data")


def stored_records(app):
    with app.app_context():
        return store.read_once("data") or {}


def only_key(app):
    records = stored_records(app)
    assert len(records) == 1
    return next(iter(records))


def test_create_record_uploads_then_writes(app, subadmin_client, subadmin_uid, tmp_path):
    resp = upload_record(subadmin_client)
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/records/")

    key = only_key(app)
    record = stored_records(app)[key]
    assert record["uploaded_by"] == subadmin_uid
    assert record["uploader_role"] == "subadmin"
    assert record["status"] == "Pending"
    assert record["file_category"] == "document"
    assert record["file_url"].startswith("/blobs/files/")
    assert (tmp_path / "uploads" / record["storage_path"]).exists()

    with app.app_context():
        assert AuditLog.query.filter_by(entity_key=key, action="CREATE").count() == 1


def test_create_record_requires_a_file(app, subadmin_client):
    resp = subadmin_client.post("/records/new", data=record_form(), content_type="multipart/form-data")
    assert resp.status_code == 400
    assert b"Please select a file" in resp.data
    assert stored_records(app) == {}


def test_create_record_rejects_unsupported_types(app, subadmin_client):
    data = record_form()
    data["file"] = (io.BytesIO(b"MZ"), "tool.exe", "application/x-msdownload")
    resp = subadmin_client.post("/records/new", data=data, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert b"Unsupported file format" in resp.data


def test_inward_number_must_be_unique(app, subadmin_client):
    upload_record(subadmin_client)
    resp = upload_record(subadmin_client, subject="Second")
    assert resp.status_code == 400
    assert b"Inward Number already exists" in resp.data

    check = subadmin_client.get("/records/inward-check?number=IN-101").get_json()
    assert check == {"number": "IN-101", "taken": True}
    assert subadmin_client.get("/records/inward-check?number=IN-999").get_json()["taken"] is False


def test_public_representation_needs_a_type(app, subadmin_client):
    resp = upload_record(subadmin_client, department="Public Representation", public_rep_type="")
    assert resp.status_code == 400
    assert b"Select MLA or MP" in resp.data


def test_visibility_between_roles(app, client, subadmin_uid):
    login(client, "sub@example.com")
    upload_record(client, subject="Subadmin memo")
    client.get("/auth/logout")

    make_user(app, "admin@example.com", role=ADMIN)
    login(client, "admin@example.com")
    upload_record(client, subject="Admin memo", inward_number="IN-202")
    resp = client.get("/dashboard")
    assert b"Subadmin memo" in resp.data
    assert b"Admin memo" in resp.data
    client.get("/auth/logout")

    login(client, "sub@example.com")
    resp = client.get("/records/")
    assert b"Subadmin memo" in resp.data
    assert b"Admin memo" not in resp.data

    admin_key = next(k for k, v in stored_records(app).items() if v["subject"] == "Admin memo")
    assert client.get(f"/records/{admin_key}").status_code == 403
    assert client.post(f"/records/{admin_key}/delete").status_code == 403
    blob_path = stored_records(app)[admin_key]["storage_path"]
    assert client.get(f"/blobs/{blob_path}").status_code == 403


def test_records_list_filters(app, subadmin_client):
    upload_record(subadmin_client, subject="Canal lining", inward_number="IN-1")
    upload_record(subadmin_client, subject="Road patch", inward_number="IN-2", department="Farmer")

    resp = subadmin_client.get("/records/?q=canal")
    assert b"Canal lining" in resp.data
    assert b"Road patch" not in resp.data

    resp = subadmin_client.get("/records/?department=Farmer")
    assert b"Road patch" in resp.data
    assert b"Canal lining" not in resp.data


def test_detail_and_download(app, subadmin_client):
    upload_record(subadmin_client)
    key = only_key(app)
    assert subadmin_client.get(f"/records/{key}").status_code == 200
    assert subadmin_client.get("/records/missing-key").status_code == 404

    path = stored_records(app)[key]["storage_path"]
    resp = subadmin_client.get(f"/blobs/{path}?download=1")
    assert resp.status_code == 200
    assert resp.data == b"%PDF-1.4 test file"
    assert resp.headers["Content-Disposition"].startswith("attachment")


def test_edit_without_changes_is_a_no_op(app, subadmin_client):
    upload_record(subadmin_client)
    key = only_key(app)
    resp = subadmin_client.post(f"/records/{key}/edit", data=record_form(), follow_redirects=True)
    assert b"No changes detected" in resp.data
    with app.app_context():
        assert AuditLog.query.filter_by(action="UPDATE").count() == 0


def test_edit_overwrites_the_record(app, subadmin_client):
    upload_record(subadmin_client)
    key = only_key(app)
    before = stored_records(app)[key]

    resp = subadmin_client.post(f"/records/{key}/edit", data=record_form(status="Completed"))
    assert resp.status_code == 302

    after = stored_records(app)[key]
    assert after["status"] == "Completed"
    assert after["storage_path"] == before["storage_path"]
    assert after["created_at"] == before["created_at"]
    assert after["updated_at"] >= before["updated_at"]


def test_edit_with_a_new_file_replaces_the_blob(app, subadmin_client, tmp_path):
    upload_record(subadmin_client)
    key = only_key(app)
    old_path = stored_records(app)[key]["storage_path"]

    data = record_form()
    data["file"] = (io.BytesIO(b"col1,col2\n"), "sheet.csv", "text/csv")
    resp = subadmin_client.post(f"/records/{key}/edit", data=data, content_type="multipart/form-data")
    assert resp.status_code == 302

    record = stored_records(app)[key]
    assert record["file_name"] == "sheet.csv"
    assert record["file_category"] == "spreadsheet"
    assert not (tmp_path / "uploads" / old_path).exists()
    assert (tmp_path / "uploads" / record["storage_path"]).exists()


def test_delete_removes_blob_and_record(app, subadmin_client, tmp_path):
    upload_record(subadmin_client)
    key = only_key(app)
    path = stored_records(app)[key]["storage_path"]

    resp = subadmin_client.post(f"/records/{key}/delete")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/subadmin-dashboard")
    assert stored_records(app) == {}
    assert not (tmp_path / "uploads" / path).exists()


def test_stream_sends_the_visible_snapshot(app, subadmin_client):
    upload_record(subadmin_client, subject="Live one")
    resp = subadmin_client.get("/records/stream")
    assert resp.status_code == 200
    assert resp.mimetype == "text/event-stream"
    first = next(iter(resp.response))
    resp.close()
    text = first.decode() if isinstance(first, bytes) else first
    assert text.startswith("data: ")
    assert "Live one" in text
    assert '"total": 1' in text
    assert store.subscriber_count == 0


def test_other_subadmins_do_not_see_each_other(app, client):
    make_user(app, "one@example.com")
    make_user(app, "two@example.com")
    login(client, "one@example.com")
    upload_record(client, subject="Private to one")
    client.get("/auth/logout")

    login(client, "two@example.com", PASSWORD)
    resp = client.get("/records/")
    assert b"Private to one" not in resp.data
