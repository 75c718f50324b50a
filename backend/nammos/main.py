"""
Nammos Quotation API
FastAPI backend for furniture quotations: catalog, annotated product
configurations, pricing, spreadsheet export and optional AI previews.
"""
import os
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

load_dotenv()

from nammos.services.logging_config import setup_logging  # noqa: E402
from nammos.services.middleware import RequestTimingMiddleware, SecurityHeadersMiddleware  # noqa: E402
from nammos.services.image_storage import MEDIA_DIR  # noqa: E402
from nammos.services.preview_client import preview_api_key  # noqa: E402

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("nammos-api")

VERSION = "1.0.0"

if not os.getenv("DATABASE_URL"):
    logger.warning("MISSING env var: DATABASE_URL — running in dev mode")
if not preview_api_key():
    logger.info("Optional env var not set: GOOGLE_GENAI_API_KEY (AI preview disabled)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        from nammos.db import init_db
        await init_db()
    except Exception as e:
        logger.warning(f"Table init warning: {e}")
    yield
    from nammos.db import engine
    await engine.dispose()


app = FastAPI(
    title="Nammos Quotation API",
    version=VERSION,
    description="Annotated furniture quotations with spreadsheet export",
    lifespan=lifespan,
)

_cors_default = "http://localhost:3000,http://localhost:8000"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With", "X-Request-ID"],
    expose_headers=["Content-Disposition", "X-Request-ID", "X-Process-Time"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from nammos.api.catalog_routes import router as catalog_router  # noqa: E402
from nammos.api.client_routes import router as client_router  # noqa: E402
from nammos.api.quotation_routes import router as quotation_router  # noqa: E402
from nammos.api.workbench_routes import router as workbench_router  # noqa: E402
from nammos.api.media_routes import router as media_router  # noqa: E402
from nammos.api.preview_routes import router as preview_router  # noqa: E402
from nammos.api.analytics_routes import router as analytics_router  # noqa: E402

app.include_router(catalog_router)
app.include_router(client_router)
app.include_router(quotation_router)
app.include_router(workbench_router)
app.include_router(media_router)
app.include_router(preview_router)
app.include_router(analytics_router)

os.makedirs(MEDIA_DIR, exist_ok=True)
app.mount("/media", StaticFiles(directory=MEDIA_DIR), name="media")


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": VERSION,
        "db_configured": bool(os.getenv("DATABASE_URL")),
        "ai_preview_enabled": bool(preview_api_key()),
    }
