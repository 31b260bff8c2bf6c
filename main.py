import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from dal.audit_dal import AuditDAL
from routes.capture_route import router as capture_router
from routes.control_route import router as control_router
from routes.credential_route import router as credential_router
from routes.task_route import router as task_router
from services.capture.window_capture import WindowCaptureProvider
from services.control.input_synthesizer import PyAutoGuiInputSynthesizer
from services.control.manual_controls import ManualControls
from services.credential_store import ANTHROPIC_API_KEY, CredentialStore
from services.task.task_manager import TaskManager
from utils.config import AgentSettings
from utils.database_init import AsyncDatabaseInitializer

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the settings read from the environment
      - the SQLite audit database (at DATABASE_DIR/audit.db, kept across restarts)
      - the capture provider, input synthesizer and credential store
      - the task manager and manual controls
    and attach them to `app.state`.
    """
    settings = AgentSettings.from_env()
    app.state.settings = settings

    db_initializer = AsyncDatabaseInitializer(settings.database_dir)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    capture = WindowCaptureProvider(settings.window_titles)
    synthesizer = PyAutoGuiInputSynthesizer()
    credentials = CredentialStore(settings.credentials_file)
    app.state.capture = capture
    app.state.credentials = credentials
    app.state.manual_controls = ManualControls(capture, synthesizer)
    app.state.task_manager = TaskManager(
        capture,
        synthesizer,
        credentials,
        AuditDAL(db_initializer),
        settings,
        screenshot_dir=db_initializer.screenshot_dir,
    )

    if not credentials.get(ANTHROPIC_API_KEY):
        logging.warning("%s is not set; store one via POST /credentials/anthropic", ANTHROPIC_API_KEY)

    try:
        yield
    finally:
        # Stop any running task and close its model client.
        await app.state.task_manager.shutdown()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting the DB, credential and task state.
        """
        state = request.app.state
        has_db = hasattr(state, "db_initializer")
        credentials = getattr(state, "credentials", None)
        manager = getattr(state, "task_manager", None)
        return {
            "ok": True,
            "db_initialized": has_db,
            "anthropic_key_configured": bool(credentials and credentials.get(ANTHROPIC_API_KEY)),
            "task_state": manager.status()["state"] if manager else None,
        }

    # Register application routers
    app.include_router(credential_router)
    app.include_router(task_router)
    app.include_router(capture_router)
    app.include_router(control_router)

    return app


app = create_app()
