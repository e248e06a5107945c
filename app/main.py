# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import routes_cache, routes_data, routes_sync, routes_yahoo
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.engine import SessionLocal
from app.db.session import init_db
from app.middleware.cache_log import CacheHeaderLogMiddleware
from app.services.cache import CoalescingCache
from app.services.persistence import BatchPersistence
from app.services.shared_data import SharedLeagueData
from app.services.sync import YahooSyncService
from app.services.yahoo.client import YahooApiClient

logger = logging.getLogger(__name__)


def wire_services(app: FastAPI, session_factory=SessionLocal) -> None:
    """Builds the process-wide singletons and hangs them on app.state."""
    cache = CoalescingCache(default_ttl=settings.CACHE_TTL_SECONDS)
    client = YahooApiClient(settings)
    app.state.cache = cache
    app.state.yahoo_client = client
    app.state.shared_data = SharedLeagueData(cache, session_factory)
    app.state.sync_service = YahooSyncService(client, BatchPersistence(session_factory), settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    settings.validate_at_startup()
    init_db()
    wire_services(app)
    logger.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)
    yield
    app.state.yahoo_client.session.close()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.add_middleware(CacheHeaderLogMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)

# Routers
app.include_router(routes_sync.router)
app.include_router(routes_data.router)
app.include_router(routes_cache.router)
app.include_router(routes_yahoo.router)


@app.get("/health")
def health():
    return {"ok": True, "env": settings.APP_ENV}
