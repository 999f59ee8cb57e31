"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.core.config import settings
from app.core.pipeline import build_pipeline
from app.db.session import SessionLocal, engine

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

# Seconds to let in-flight notification runs finish on shutdown
SHUTDOWN_DRAIN_TIMEOUT = 30.0

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Don't send PII to Sentry
    )
    logging.info("Sentry initialized for error tracking")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.pipeline = build_pipeline(settings, SessionLocal)
    yield
    runner = app.state.pipeline.runner
    if runner.pending:
        logger.info("Waiting for %s background task(s)", runner.pending)
    await runner.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Post-Call Pipeline API",
    description="Voice agent webhook intake and post-call patient notifications",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
    lifespan=lifespan,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# ============================================================================
# Routers
# ============================================================================

from app.routers import calls, webhooks  # noqa: E402

# Webhooks (ElevenLabs post-call events)
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

# Call actions, manual resends and video status
app.include_router(calls.router, prefix="/calls", tags=["calls"])
app.include_router(calls.emails_router, prefix="/emails", tags=["emails"])
app.include_router(calls.videos_router, prefix="/videos", tags=["videos"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
