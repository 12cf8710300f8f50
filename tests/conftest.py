import os
import sys
from contextlib import ExitStack
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


# Ensure `import backend.app...` works regardless of where pytest is run from.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Must be set before backend.app.config is imported so a developer .env never leaks in.
os.environ["DISABLE_DOTENV"] = "1"

from backend.app.config import Settings  # noqa: E402
from backend.app.factory import create_app  # noqa: E402
from backend.app.services.seeding import seed_staff  # noqa: E402

PDF_BYTES = b"%PDF-1.4\n%Fake\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+pysqlite:///{tmp_path / 'test.sqlite3'}",
        jwt_secret="test-secret",
        app_env="test",
        upload_dir=str(tmp_path / "uploads"),
        max_photo_bytes=64 * 1024,
        max_cv_bytes=64 * 1024,
        log_level="WARNING",
    )


@pytest.fixture()
def make_client():
    """Factory for tests that need non-default settings or a custom file relay."""
    with ExitStack() as stack:
        def _make(settings: Settings, **kwargs) -> TestClient:
            # Entering the client runs startup, which creates the tables.
            return stack.enter_context(TestClient(create_app(settings, **kwargs)))

        yield _make


@pytest.fixture()
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture()
def client(app: FastAPI):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db_session(client: TestClient):
    """
    Direct SQLAlchemy session bound to the same temporary SQLite DB used by the test app.
    """
    db = client.app.state.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def staff(client: TestClient, settings: Settings) -> dict:
    db = client.app.state.SessionLocal()
    try:
        users = seed_staff(db, settings)
        return {u.role: {"id": u.id, "email": u.email} for u in users}
    finally:
        db.close()


def login(client: TestClient, email: str, password: str) -> str:
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(client: TestClient, staff: dict) -> dict:
    return auth_headers(login(client, "admin@demo.com", "admin123"))


@pytest.fixture()
def recruiter_headers(client: TestClient, staff: dict) -> dict:
    return auth_headers(login(client, "recruiter@demo.com", "recruiter123"))


@pytest.fixture()
def interviewer_headers(client: TestClient, staff: dict) -> dict:
    return auth_headers(login(client, "interviewer@demo.com", "interviewer123"))


def submit(
    client: TestClient,
    *,
    full_name: str = "Jane Doe",
    email: str = "jane@x.com",
    position: str = "Backend Developer",
    cv=("resume.pdf", PDF_BYTES, "application/pdf"),
    photo=None,
    **extra,
):
    data = {"fullName": full_name, "email": email, "position": position, **extra}
    files = {}
    if cv is not None:
        files["cv"] = cv
    if photo is not None:
        files["photo"] = photo
    return client.post("/applications/submit", data=data, files=files or None)
