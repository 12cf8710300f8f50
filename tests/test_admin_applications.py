from datetime import datetime
from pathlib import Path

from backend.app.models.applicant import Applicant
from backend.app.models.application import Application
from backend.app.models.file import ApplicationFile
from backend.app.models.status_event import ApplicationStatusEvent

from conftest import PNG_BYTES, submit


def _submit_ok(client, **kwargs) -> dict:
    r = submit(client, **kwargs)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_admin_routes_require_auth(client):
    assert client.get("/admin/applications").status_code == 401
    assert client.get("/admin/applications/1").status_code == 401
    assert client.put("/admin/applications/1/reject", json={}).status_code == 401


def test_list_orders_newest_first_with_file_paths(client, admin_headers):
    a = _submit_ok(client, email="a@x.com", full_name="Ann Able")
    b = _submit_ok(client, email="b@x.com", full_name="Ben Bolt", photo=("b.png", PNG_BYTES, "image/png"))

    r = client.get("/admin/applications", headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total"] == 2
    rows = body["applications"]
    assert [row["id"] for row in rows] == [b["id"], a["id"]]
    assert rows[0]["applicationId"] == b["applicationId"]
    assert rows[0]["photoPath"] == b["photoPath"]
    assert rows[0]["cvPath"] == b["cvPath"]
    assert rows[1]["photoPath"] is None
    assert rows[1]["applicationCount"] == 1


def test_list_filters_by_status(client, admin_headers):
    a = _submit_ok(client, email="a@x.com")
    _submit_ok(client, email="b@x.com")
    client.put(f"/admin/applications/{a['applicationId']}/reject", headers=admin_headers, json={})

    rejected = client.get("/admin/applications", params={"status": "REJECT"}, headers=admin_headers).json()
    assert [row["id"] for row in rejected["applications"]] == [a["id"]]
    assert all(row["status"] == "REJECT" for row in rejected["applications"])

    pending = client.get("/admin/applications", params={"status": "PENDING"}, headers=admin_headers).json()
    assert all(row["status"] == "PENDING" for row in pending["applications"])
    assert pending["total"] == 1

    everything = client.get("/admin/applications", params={"status": ""}, headers=admin_headers).json()
    assert everything["total"] == 2


def test_list_rejects_unknown_status_filter(client, admin_headers):
    r = client.get("/admin/applications", params={"status": "HIRED"}, headers=admin_headers)
    assert r.status_code == 400, r.text
    assert r.json()["errors"][0]["field"] == "status"


def test_list_pagination(client, admin_headers):
    ids = [_submit_ok(client, email=f"p{i}@x.com")["id"] for i in range(5)]

    page = client.get("/admin/applications", params={"limit": 2, "offset": 1}, headers=admin_headers).json()
    assert page["total"] == 5
    assert [row["id"] for row in page["applications"]] == list(reversed(ids))[1:3]

    r = client.get("/admin/applications", params={"limit": 0}, headers=admin_headers)
    assert r.status_code == 400


def test_approve_sets_wait_result_and_interview_date(client, recruiter_headers, db_session):
    data = _submit_ok(client)

    r = client.put(
        f"/admin/applications/{data['applicationId']}/approve",
        headers=recruiter_headers,
        json={"interviewDate": "2025-09-01T10:00:00Z", "notes": "Panel B"},
    )
    assert r.status_code == 200, r.text
    app_json = r.json()["application"]
    assert app_json["status"] == "WAIT_RESULT"
    assert datetime.fromisoformat(app_json["interviewDate"]) == datetime.fromisoformat("2025-09-01T10:00:00+00:00")

    stored = db_session.query(Application).filter(Application.id == data["applicationId"]).one()
    assert stored.status == "WAIT_RESULT"
    assert stored.interview_date.replace(tzinfo=None) == datetime(2025, 9, 1, 10, 0)


def test_approve_without_date_is_validation_error(client, admin_headers):
    data = _submit_ok(client)
    r = client.put(f"/admin/applications/{data['applicationId']}/approve", headers=admin_headers, json={})
    assert r.status_code == 400, r.text
    assert r.json()["errors"][0]["field"] == "interviewDate"


def test_approve_unknown_application_is_404(client, admin_headers):
    r = client.put(
        "/admin/applications/4242/approve",
        headers=admin_headers,
        json={"interviewDate": "2025-09-01T10:00:00Z"},
    )
    assert r.status_code == 404, r.text


def test_interview_result_invalid_value_leaves_status(client, admin_headers, interviewer_headers, db_session):
    data = _submit_ok(client)
    app_id = data["applicationId"]
    client.put(
        f"/admin/applications/{app_id}/approve",
        headers=admin_headers,
        json={"interviewDate": "2025-09-01T10:00:00Z"},
    )

    r = client.put(
        f"/admin/applications/{app_id}/interview-result",
        headers=interviewer_headers,
        json={"result": "INVALID_VALUE"},
    )
    assert r.status_code == 400, r.text
    assert r.json()["errors"][0]["field"] == "result"
    assert db_session.query(Application).filter(Application.id == app_id).one().status == "WAIT_RESULT"

    r2 = client.put(
        f"/admin/applications/{app_id}/interview-result",
        headers=interviewer_headers,
        json={"result": "REJECT_INTERVIEW", "feedback": "Not enough depth"},
    )
    assert r2.status_code == 200, r2.text
    assert r2.json()["application"]["status"] == "REJECT_INTERVIEW"


def test_interviewer_cannot_approve(client, interviewer_headers):
    data = _submit_ok(client)
    r = client.put(
        f"/admin/applications/{data['applicationId']}/approve",
        headers=interviewer_headers,
        json={"interviewDate": "2025-09-01T10:00:00Z"},
    )
    assert r.status_code == 403, r.text


def test_invalid_transition_is_refused(client, admin_headers):
    data = _submit_ok(client)
    app_id = data["applicationId"]
    assert client.put(f"/admin/applications/{app_id}/reject", headers=admin_headers).status_code == 200

    r = client.put(
        f"/admin/applications/{app_id}/approve",
        headers=admin_headers,
        json={"interviewDate": "2025-09-01T10:00:00Z"},
    )
    assert r.status_code == 400, r.text
    assert r.json()["errors"][0]["field"] == "status"


def test_status_override_is_audited_in_detail_history(client, admin_headers, staff):
    data = _submit_ok(client)
    app_id = data["applicationId"]

    r = client.put(
        f"/admin/applications/{app_id}/status",
        headers=admin_headers,
        json={"status": "PASS_INTERVIEW", "notes": "Referred hire"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["application"]["status"] == "PASS_INTERVIEW"

    detail = client.get(f"/admin/applications/{app_id}", headers=admin_headers).json()["application"]
    assert detail["applicant"]["status"] == "PASS_INTERVIEW"
    assert detail["cvPath"] == data["cvPath"]
    latest = detail["history"][0]
    assert latest["action"] == "override"
    assert (latest["fromStatus"], latest["toStatus"]) == ("PENDING", "PASS_INTERVIEW")
    assert latest["actorId"] == staff["ADMIN"]["id"]


def test_detail_unknown_application_is_404(client, admin_headers):
    assert client.get("/admin/applications/31337", headers=admin_headers).status_code == 404


def test_delete_last_application_removes_applicant_and_files(client, admin_headers, settings, db_session):
    data = _submit_ok(client, photo=("me.png", PNG_BYTES, "image/png"))
    app_id = data["applicationId"]
    client.put(f"/admin/applications/{app_id}/reject", headers=admin_headers, json={"notes": "No"})
    stored = [Path(settings.upload_dir) / p.rsplit("/", 1)[1] for p in (data["cvPath"], data["photoPath"])]
    assert all(p.exists() for p in stored)

    r = client.delete(f"/admin/applications/{app_id}", headers=admin_headers)
    assert r.status_code == 200, r.text
    assert r.json()["applicantDeleted"] is True

    assert db_session.query(Applicant).count() == 0
    assert db_session.query(Application).count() == 0
    assert db_session.query(ApplicationFile).count() == 0
    assert db_session.query(ApplicationStatusEvent).count() == 0
    assert not any(p.exists() for p in stored)


def test_delete_non_last_application_keeps_applicant(client, admin_headers, db_session):
    first = _submit_ok(client, email="kim@x.com")
    second = _submit_ok(client, email="kim@x.com")
    client.put(f"/admin/applications/{first['applicationId']}/reject", headers=admin_headers)

    r = client.delete(f"/admin/applications/{second['applicationId']}", headers=admin_headers)
    assert r.status_code == 200, r.text
    assert r.json()["applicantDeleted"] is False

    applicant = db_session.query(Applicant).one()
    assert [a.id for a in applicant.applications] == [first["applicationId"]]
    # Status follows the remaining (now latest) application
    assert applicant.status == "REJECT"
    assert db_session.query(ApplicationFile).filter(
        ApplicationFile.application_id == second["applicationId"]
    ).count() == 0


def test_delete_unknown_application_is_404(client, admin_headers):
    assert client.delete("/admin/applications/999", headers=admin_headers).status_code == 404
