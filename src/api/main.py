import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.deps import get_engine, get_engine_rules
from src.app_shell.config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Load rules and build the engine on startup (fail-fast)
    rules = get_engine_rules()
    configure_logging(rules)
    engine = get_engine()
    logger.info("Engine ready with %d rules", len(engine.snapshot.rules))

    yield


app = FastAPI(
    title="Redirector Engine API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import redirects  # noqa: E402

app.include_router(redirects.router, prefix="/api/redirects", tags=["Redirects"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
