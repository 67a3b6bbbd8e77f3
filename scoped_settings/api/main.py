"""FastAPI main application."""

from fastapi import FastAPI

from scoped_settings.api import settings
from scoped_settings.database import init_db
from scoped_settings.logging_config import configure_logging

configure_logging()

# Create tables
init_db()

app = FastAPI(title="Scoped Settings", version="1.0.0")

app.include_router(settings.router, prefix="/api/settings", tags=["settings"])


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}
