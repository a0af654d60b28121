import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from subplanner.config import settings
from subplanner.db import Base, SessionLocal, engine
from subplanner.models import StorageEntry  # noqa: F401  registers the table
from subplanner.routers import subscriptions, templates
from subplanner.services.events import CollectionChanged, notifier
from subplanner.services.scheduler import start_scheduler, stop_scheduler
from subplanner.services.storage import DatabaseStorage

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def log_collection_change(event: CollectionChanged):
    logger.debug(f"Collection {event.key} changed by {event.action}, {event.count} subscriptions")


def warn_about_legacy_data():
    """Report data left under storage keys this version no longer reads."""
    db = SessionLocal()
    try:
        storage = DatabaseStorage(db)
        for key in settings.legacy_storage_keys:
            if key != settings.storage_key and storage.get(key) is not None:
                logger.warning(
                    f"Ignoring legacy data under '{key}', subscriptions are read from '{settings.storage_key}'"
                )
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    warn_about_legacy_data()
    unsubscribe = notifier.subscribe(log_collection_change)
    start_scheduler()
    yield
    stop_scheduler()
    unsubscribe()


app = FastAPI(
    title="Subplanner API",
    description="Track recurring subscriptions and their monthly and yearly cost",
    debug=settings.debug,
    lifespan=lifespan,
)

app.include_router(subscriptions.router)
app.include_router(templates.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
