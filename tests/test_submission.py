from pathlib import Path

import httpx

from backend.app.models.applicant import Applicant
from backend.app.models.application import Application
from backend.app.models.file import ApplicationFile
from backend.app.services.file_relay import FileRelay

from conftest import PDF_BYTES, PNG_BYTES, submit


def test_submit_with_cv_only_creates_pending_application(client, settings, db_session):
    r = submit(client)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["status"] == "PENDING"
    assert data["photoPath"] is None
    assert data["cvPath"].startswith("/uploads/cv-")
    assert data["cvPath"].endswith(".pdf")
    assert data["failedAttachments"] == {}

    assert db_session.query(Applicant).count() == 1
    assert db_session.query(Application).count() == 1
    files = db_session.query(ApplicationFile).all()
    assert [(f.file_type, f.application_id) for f in files] == [("CV", data["applicationId"])]

    stored = Path(settings.upload_dir) / data["cvPath"].rsplit("/", 1)[1]
    assert stored.read_bytes() == PDF_BYTES

    # Served back through the static mount
    r2 = client.get(data["cvPath"])
    assert r2.status_code == 200
    assert r2.content == PDF_BYTES


def test_submit_with_photo_and_cv(client, db_session):
    r = submit(
        client,
        photo=("me.png", PNG_BYTES, "image/png"),
        phone="+1 555 0100",
        dob="1990-04-01",
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["photoPath"].startswith("/uploads/photo-")
    assert data["cvPath"].startswith("/uploads/cv-")

    applicant = db_session.query(Applicant).one()
    assert applicant.phone == "+1 555 0100"
    assert applicant.date_of_birth.isoformat() == "1990-04-01"
    types = sorted(f.file_type for f in db_session.query(ApplicationFile).all())
    assert types == ["CV", "PHOTO"]


def test_submit_without_cv_creates_nothing(client, db_session):
    r = submit(client, cv=None)
    assert r.status_code == 400, r.text
    body = r.json()
    assert body["error"] == "CV is required"
    assert body["errors"][0]["field"] == "cv"
    assert db_session.query(Applicant).count() == 0
    assert db_session.query(Application).count() == 0


def test_submit_rejects_wrong_file_types(client, db_session):
    r = submit(client, cv=("resume.docx", b"PK\x03\x04", "application/msword"))
    assert r.status_code == 400, r.text
    assert r.json()["errors"][0]["field"] == "cv"

    r2 = submit(client, photo=("me.pdf", PDF_BYTES, "application/pdf"))
    assert r2.status_code == 400, r2.text
    assert r2.json()["errors"][0]["field"] == "photo"

    assert db_session.query(Application).count() == 0


def test_type_check_runs_before_size_check(client, settings):
    too_big = b"%PDF" + b"0" * settings.max_cv_bytes
    r = submit(client, cv=("resume.pdf", too_big, "application/pdf"), photo=("me.txt", b"hi", "text/plain"))
    assert r.status_code == 400, r.text
    assert r.json()["errors"][0]["field"] == "photo"


def test_submit_rejects_oversized_files(client, settings, db_session):
    too_big = b"\x89PNG" + b"0" * settings.max_photo_bytes
    r = submit(client, photo=("me.png", too_big, "image/png"))
    assert r.status_code == 413, r.text
    assert r.json()["errors"][0]["field"] == "photo"
    assert db_session.query(Application).count() == 0


def test_submit_reports_all_field_errors(client, db_session):
    r = submit(client, full_name="", email="nope", position="", dob="31/12/1990")
    assert r.status_code == 400, r.text
    fields = {e["field"] for e in r.json()["errors"]}
    assert fields == {"fullName", "email", "position", "dob"}
    assert db_session.query(Applicant).count() == 0


def test_submit_rejects_dob_with_trailing_text(client, db_session):
    r = submit(client, dob="1990-01-01not-a-date")
    assert r.status_code == 400, r.text
    assert [e["field"] for e in r.json()["errors"]] == ["dob"]
    assert db_session.query(Applicant).count() == 0


def test_resubmission_reuses_applicant_by_email(client, db_session):
    first = submit(client, email="sam@x.com", position="QA").json()["data"]
    second = submit(client, email="SAM@x.com", position="Backend Developer").json()["data"]

    assert first["id"] == second["id"]
    assert first["applicationId"] != second["applicationId"]

    applicant = db_session.query(Applicant).one()
    assert applicant.position == "Backend Developer"
    assert len(applicant.applications) == 2


def test_relay_failure_is_reported_as_partial_success(make_client, settings):
    def _fail(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"success": False, "error": "disk full"})

    relay = FileRelay(transport=httpx.MockTransport(_fail))
    client = make_client(settings, file_relay=relay)

    r = submit(client, photo=("me.png", PNG_BYTES, "image/png"))
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["cvPath"] is None
    assert data["photoPath"] is None
    assert set(data["failedAttachments"]) == {"cv", "photo"}

    # The application row still exists without files
    db = client.app.state.SessionLocal()
    try:
        application = db.query(Application).filter(Application.id == data["applicationId"]).one()
        assert application.status == "PENDING"
        assert application.files == []
    finally:
        db.close()


def test_relay_sends_internal_token(make_client, settings):
    seen: list[httpx.Request] = []

    def _ok(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "files": {"cv": {"filePath": "/uploads/cv-1-2.pdf"}}})

    relay = FileRelay(token="s3cret", transport=httpx.MockTransport(_ok))
    client = make_client(settings, file_relay=relay)

    r = submit(client)
    assert r.status_code == 201, r.text
    assert r.json()["data"]["cvPath"] == "/uploads/cv-1-2.pdf"
    assert len(seen) == 1
    assert seen[0].url.path == "/api/upload"
    assert seen[0].headers["X-Internal-Token"] == "s3cret"
    assert seen[0].url.params["applicationId"] == str(r.json()["data"]["applicationId"])
