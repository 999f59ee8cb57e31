"""FastAPI dependencies for database access and the post-call pipeline."""

from typing import Generator

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from app.core.pipeline import Pipeline
from app.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_pipeline(request: Request) -> Pipeline:
    """Pipeline built at startup (see app.main lifespan)."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return pipeline
