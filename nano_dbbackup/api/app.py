"""FastAPI application for nano-dbbackup."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
import logging

from nano_dbbackup.backup.errors import BackupError
from .config import settings
from .exceptions import backup_error_handler
from .routers import backup, health

# Configure nano-dbbackup logger with app-managed pattern
# This ensures INFO logs are visible regardless of uvicorn's logging config
import sys
import os

package_logger = logging.getLogger("nano-dbbackup")
package_logger.setLevel(logging.INFO)

# App-managed pattern: attach our own handler and don't propagate
package_logger.propagate = False

# Clear any existing handlers to avoid duplicates
package_logger.handlers.clear()

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)

formatter = logging.Formatter(
    '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
console_handler.setFormatter(formatter)
package_logger.addHandler(console_handler)

# Allow disabling app-managed logging via env var for production
if os.getenv("DISABLE_APP_LOGGING", "false").lower() == "true":
    package_logger.handlers.clear()
    package_logger.propagate = True  # Fall back to server-managed pattern

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the artifact directory and pipeline config."""
    config = settings.backup_config()
    Path(config.artifact_dir).mkdir(parents=True, exist_ok=True)
    app.state.backup_config = config
    logger.info(
        f"Backup API ready (artifacts in {config.artifact_dir}, "
        f"retain={config.retain_artifacts})"
    )

    yield

    logger.info("Shutting down backup API...")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Available before lifespan runs (e.g. TestClient without context manager)
    app.state.backup_config = settings.backup_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BackupError, backup_error_handler)

    app.include_router(backup.router, prefix=settings.api_prefix)
    app.include_router(health.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "docs": f"{settings.api_prefix}/docs"
        }

    return app


# Create default app instance
app = create_app()
