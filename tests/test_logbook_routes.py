from filedesk.extensions import store


def logbook_form(**overrides):
    data = {
        "date": "2024-03-05",
        "dep_hour": "09",
        "dep_minute": "00",
        "dep_period": "AM",
        "arr_hour": "06",
        "arr_minute": "00",
        "arr_period": "PM",
        "start_location": "Office",
        "destination": "Site 4",
        "before_reading": "1000",
        "after_reading": "1050",
        "kilometers": "999",
        "purpose": "Inspection",
        "used_by": "R. Patil",
        "fuel": "",
        "oil": "",
    }
    data.update(overrides)
    return data


def entries(app, uid):
    with app.app_context():
        return store.read_once(f"logbook/{uid}") or {}


def test_kilometers_come_from_the_readings(app, subadmin_client, subadmin_uid):
    resp = subadmin_client.post("/logbook/new", data=logbook_form())
    assert resp.status_code == 302
    (entry,) = entries(app, subadmin_uid).values()
    assert entry["kilometers"] == "50.0"
    assert entry["departure_time"] == "09:00 AM"
    assert entry["arrival_time"] == "06:00 PM"


def test_reversed_readings_are_rejected(app, subadmin_client, subadmin_uid):
    resp = subadmin_client.post("/logbook/new", data=logbook_form(before_reading="1050", after_reading="1000"))
    assert resp.status_code == 400
    assert b"After reading must be greater than before" in resp.data
    assert entries(app, subadmin_uid) == {}


def test_arrival_before_departure_is_rejected(subadmin_client):
    resp = subadmin_client.post("/logbook/new", data=logbook_form(dep_period="PM", arr_period="AM"))
    assert resp.status_code == 400
    assert b"Arrival must be after departure" in resp.data


def test_list_report_and_pdf(app, subadmin_client):
    subadmin_client.post("/logbook/new", data=logbook_form(date="2024-03-02"))
    subadmin_client.post("/logbook/new", data=logbook_form(date="2024-03-09", before_reading="1050",
                                                           after_reading="1080", destination="Dam"))

    resp = subadmin_client.get("/logbook/?month=2024-03")
    assert resp.status_code == 200
    assert b"Dam" in resp.data
    assert b"80" in resp.data
    assert b'data-autodismiss="3000"' in resp.data

    assert subadmin_client.get("/logbook/report?month=2024-03").status_code == 200

    resp = subadmin_client.get("/logbook/report.pdf?month=2024-03")
    assert resp.mimetype == "application/pdf"
    assert "LogBook-3-2024.pdf" in resp.headers["Content-Disposition"]


def test_edit_and_delete(app, subadmin_client, subadmin_uid):
    subadmin_client.post("/logbook/new", data=logbook_form())
    key = next(iter(entries(app, subadmin_uid)))

    resp = subadmin_client.post(f"/logbook/{key}/edit", data=logbook_form(), follow_redirects=True)
    assert b"No changes detected" in resp.data

    subadmin_client.post(f"/logbook/{key}/edit", data=logbook_form(after_reading="1100", purpose="Survey"))
    entry = entries(app, subadmin_uid)[key]
    assert entry["kilometers"] == "100.0"
    assert entry["purpose"] == "Survey"

    subadmin_client.post(f"/logbook/{key}/delete")
    assert entries(app, subadmin_uid) == {}


def test_non_ascii_minute_is_an_invalid_time(app, subadmin_client, subadmin_uid):
    resp = subadmin_client.post("/logbook/new", data=logbook_form(dep_minute="①"))
    assert resp.status_code == 400
    assert b"Invalid time" in resp.data
    assert entries(app, subadmin_uid) == {}
