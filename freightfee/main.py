import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from freightfee.core.config import get_allowed_origins, settings
from freightfee.database import check_database_connection, db_settings, init_db
from freightfee.routes.fees import router as fees_router
from freightfee.routes.loads import router as loads_router
from freightfee.routes.settlements import router as settlements_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("startup: tables ready env=%s currency=%s", settings.ENV, settings.PLATFORM_CURRENCY)
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET_KEY,
    same_site="lax",
    https_only=settings.is_production,
    domain=(settings.SESSION_COOKIE_DOMAIN or None),
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(fees_router)
app.include_router(loads_router)
app.include_router(settlements_router)


@app.get("/health")
def health() -> dict[str, str]:
    database = "connected"
    status_value = "healthy"
    try:
        check_database_connection()
    except Exception:
        logger.warning("health: database check failed", exc_info=True)
        database = "disconnected"
        status_value = "degraded"

    return {
        "status": status_value,
        "database": database,
        "environment": settings.ENV,
    }


@app.get("/heartbeat")
def heartbeat() -> dict[str, str | int]:
    return {
        "service": settings.APP_NAME,
        "status": "alive",
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "db_host": db_settings.db_host,
        "db_port": db_settings.db_port,
    }
