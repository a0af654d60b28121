import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from subplanner.db import Base, get_db
from subplanner.dependencies import get_template_catalog
from subplanner.main import app
from subplanner.services.events import ChangeNotifier
from subplanner.services.storage import InMemoryStorage
from subplanner.services.store import SubscriptionStore
from subplanner.services.templates import TemplateCatalog


@pytest.fixture
def db_session():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def templates_file(tmp_path):
    """A small bundled template file."""
    path = tmp_path / "templates.csv"
    path.write_text(
        "name,price,cycle,category,icon\n"
        "Netflix,1490,monthly,Entertainment,netflix\n"
        "Amazon Prime,5900,yearly,Shopping,amazon\n"
        "Notion,0,monthly,Productivity,notion\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def client(db_session, templates_file):
    """Create a test client with database session and template catalog overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    catalog = TemplateCatalog(remote_url=None, bundled_path=str(templates_file))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_template_catalog] = lambda: catalog
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def events():
    """Notifier that records every event it emits."""
    notifier = ChangeNotifier()
    notifier.received = []
    notifier.subscribe(notifier.received.append)
    return notifier


@pytest.fixture
def store(storage, events):
    return SubscriptionStore(storage, notifier=events)
