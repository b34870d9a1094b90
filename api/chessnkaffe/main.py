import logging
import os
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from .config import ALLOWED_ORIGINS, APP_NAME, LOG_LEVEL
from .database import SessionLocal
from .routes import include_routers

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME)
include_routers(app)

# credentials mode needs explicit origins, no wildcard
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def store_unavailable_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("[store] %s %s failed: %s", request.method, request.url.path, exc.__class__.__name__)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable, please retry"})


def _migrations_dir() -> Path:
    env_dir = os.getenv("MIGRATIONS_DIR", "").strip()
    migrations_dir = Path(env_dir) if env_dir else Path(__file__).resolve().parents[1] / "migrations"
    if not migrations_dir.is_dir():
        raise FileNotFoundError(f"Migrations directory not found: {migrations_dir} (MIGRATIONS_DIR={env_dir or '<unset>'})")
    return migrations_dir


def run_migrations() -> None:
    """Apply every .sql file not yet recorded in schema_migration, in name order."""
    migrations_dir = _migrations_dir()
    files = sorted(f.name for f in migrations_dir.iterdir() if f.is_file() and f.suffix == ".sql")
    with SessionLocal() as db:
        db.execute(
            text(
                """
                CREATE TABLE IF NOT EXISTS schema_migration (
                  filename TEXT PRIMARY KEY,
                  applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
                )
                """
            )
        )
        applied = set(db.execute(text("SELECT filename FROM schema_migration")).scalars().all())
        pending = [f for f in files if f not in applied]
        for fname in pending:
            db.execute(text((migrations_dir / fname).read_text(encoding="utf-8")))
            db.execute(text("INSERT INTO schema_migration (filename) VALUES (:filename)"), {"filename": fname})
        db.commit()
    logger.info("[startup] applied %s of %s migration file(s) from %s", len(pending), len(files), migrations_dir)


def wait_for_db(max_attempts: int = 20, delay_seconds: float = 1.5) -> None:
    last_err: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
            return
        except OperationalError as exc:
            last_err = exc
            logger.warning("[startup] database not ready (attempt %s/%s)", attempt, max_attempts)
            time.sleep(delay_seconds)
    if last_err:
        raise last_err


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    run_migrations()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
