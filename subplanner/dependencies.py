from fastapi import Depends
from sqlalchemy.orm import Session

from subplanner.config import settings
from subplanner.db import get_db
from subplanner.services.events import notifier
from subplanner.services.storage import DatabaseStorage
from subplanner.services.store import SubscriptionStore
from subplanner.services.templates import TemplateCatalog, template_catalog


def get_store(db: Session = Depends(get_db)) -> SubscriptionStore:
    """Build a store over the request's database session."""
    return SubscriptionStore(DatabaseStorage(db), notifier=notifier, key=settings.storage_key)


def get_template_catalog() -> TemplateCatalog:
    return template_catalog
