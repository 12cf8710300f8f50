import logging
import secrets
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .api import admin as admin_api
from .api import applications as applications_api
from .api import auth as auth_api
from .api import upload as upload_api
from .config import Settings, load_settings
from .database import build_engine, build_sessionmaker, init_db
from .services.file_relay import FileRelay
from .utils.error_handlers import register_exception_handlers

logger = logging.getLogger(__name__)

_default_origins = ["http://localhost:5173", "http://127.0.0.1:5173"]


def create_app(settings: Settings | None = None, *, file_relay: FileRelay | None = None) -> FastAPI:
    """
    Build the API. The engine, sessionmaker and file relay live on `app.state`
    so tests (or a second app in the same process) get their own.
    """
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title="Job Application Tracker")

    engine = build_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.SessionLocal = build_sessionmaker(engine)
    # /api/upload always requires the shared token; without a configured one it is
    # known only to this process and its in-process relay.
    app.state.internal_upload_token = settings.internal_upload_token or secrets.token_urlsafe(32)
    app.state.file_relay = file_relay or FileRelay(
        base_url=settings.upload_relay_base_url,
        asgi_app=app,
        token=app.state.internal_upload_token,
        timeout_s=settings.relay_timeout_s,
    )
    if settings.upload_relay_base_url and not settings.internal_upload_token:
        logger.warning("UPLOAD_RELAY_BASE_URL is set without INTERNAL_UPLOAD_TOKEN; remote uploads will be refused")

    register_exception_handlers(app, expose_details=not settings.is_production)

    app.include_router(auth_api.router)
    app.include_router(applications_api.router)
    app.include_router(admin_api.router)
    app.include_router(upload_api.router)

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=upload_dir.as_posix()), name="uploads")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins or _default_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "Backend running", "service": "Job Application Tracker"}

    @app.on_event("startup")
    def on_startup() -> None:
        init_db(engine)
        logger.info("API ready (env=%s, uploads=%s)", settings.app_env, upload_dir)

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        engine.dispose()

    return app
