from filedesk.extensions import store
from filedesk.models import AuditLog

from conftest import login, make_user


def diary_form(**overrides):
    data = {
        "date": "2024-03-05",
        "travel_from": "Pune",
        "travel_to": "Satara",
        "time_from_hour": "9",
        "time_from_minute": "0",
        "time_from_period": "AM",
        "time_to_hour": "5",
        "time_to_minute": "30",
        "time_to_period": "PM",
        "distance": "112.5",
        "vehicle": "mh 10 gf 3456",
        "remark": "",
    }
    data.update(overrides)
    return data


def entries(app, uid):
    with app.app_context():
        return store.read_once(f"dairy/{uid}") or {}


def test_create_entry(app, subadmin_client, subadmin_uid):
    resp = subadmin_client.post("/diary/new", data=diary_form())
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/diary/?month=2024-03")

    (entry,) = entries(app, subadmin_uid).values()
    assert entry["time_from"] == "09:00 AM"
    assert entry["time_to"] == "05:30 PM"
    assert entry["vehicle"] == "MH10GF3456"
    with app.app_context():
        assert AuditLog.query.filter_by(entity_type="diary", action="CREATE").count() == 1


def test_invalid_entry_is_not_saved(app, subadmin_client, subadmin_uid):
    resp = subadmin_client.post("/diary/new", data=diary_form(vehicle="", distance="-3"))
    assert resp.status_code == 400
    assert b"Vehicle No is required" in resp.data
    assert b"Distance must be a positive number" in resp.data
    assert entries(app, subadmin_uid) == {}


def test_month_list_and_totals(app, subadmin_client):
    subadmin_client.post("/diary/new", data=diary_form(date="2024-03-01", distance="10"))
    subadmin_client.post("/diary/new", data=diary_form(date="2024-03-20", distance="20.5", travel_to="Karad"))
    subadmin_client.post("/diary/new", data=diary_form(date="2024-04-02", distance="99", travel_to="Wardha"))

    resp = subadmin_client.get("/diary/?month=2024-03")
    assert resp.status_code == 200
    assert b"30.5 km" in resp.data
    assert b"Karad" in resp.data
    assert b"Wardha" not in resp.data


def test_entries_are_private(app, client):
    make_user(app, "one@example.com")
    make_user(app, "two@example.com")
    login(client, "one@example.com")
    client.post("/diary/new", data=diary_form(travel_to="Mahabaleshwar"))
    client.get("/auth/logout")

    login(client, "two@example.com")
    assert b"Mahabaleshwar" not in client.get("/diary/?month=2024-03").data


def test_edit_entry(app, subadmin_client, subadmin_uid):
    subadmin_client.post("/diary/new", data=diary_form())
    key = next(iter(entries(app, subadmin_uid)))

    resp = subadmin_client.post(f"/diary/{key}/edit", data=diary_form(vehicle="MH10GF3456"), follow_redirects=True)
    assert b"No changes detected" in resp.data

    resp = subadmin_client.post(f"/diary/{key}/edit", data=diary_form(distance="80", remark="detour"))
    assert resp.status_code == 302
    entry = entries(app, subadmin_uid)[key]
    assert entry["distance"] == "80"
    assert entry["remark"] == "detour"
    assert entry["updated_at"]


def test_delete_entry(app, subadmin_client, subadmin_uid):
    subadmin_client.post("/diary/new", data=diary_form())
    key = next(iter(entries(app, subadmin_uid)))
    resp = subadmin_client.post(f"/diary/{key}/delete")
    assert resp.status_code == 302
    assert entries(app, subadmin_uid) == {}
    assert subadmin_client.get(f"/diary/{key}/edit").status_code == 404


def test_report_config_and_print_view(subadmin_client):
    resp = subadmin_client.post("/diary/report-config?month=2024-03", data={
        "employee_name": "R. Patil",
        "designation": "Junior Engineer",
        "hq_days": "4",
    })
    assert resp.status_code == 302
    assert "/diary/report?month=2024-03" in resp.headers["Location"]

    resp = subadmin_client.get("/diary/report?month=2024-03")
    assert resp.status_code == 200
    assert b"R. Patil" in resp.data
    assert b"Junior Engineer" in resp.data
    assert b"03/2024" in resp.data


def test_report_pdf(subadmin_client):
    subadmin_client.post("/diary/new", data=diary_form())
    resp = subadmin_client.get("/diary/report.pdf?month=2024-03")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert "Monthly-Travel-03-2024.pdf" in resp.headers["Content-Disposition"]
    assert resp.data.startswith(b"%PDF")


def test_non_ascii_hour_is_an_invalid_time(app, subadmin_client, subadmin_uid):
    resp = subadmin_client.post("/diary/new", data=diary_form(time_from_hour="²"))
    assert resp.status_code == 400
    assert b"Invalid time" in resp.data
    assert entries(app, subadmin_uid) == {}
