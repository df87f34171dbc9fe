from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, insert
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from shared.config import Settings, settings
from shared.database import Base, get_db
from shared.models import churn_events

API_KEY = "test-key"


@pytest.fixture
def engine():
    # One shared in-memory database, visible from the TestClient worker thread too.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestSessionLocal = sessionmaker(bind=engine)
    session = TestSessionLocal()
    yield session
    session.close()


@pytest.fixture
def loader_settings():
    return Settings(
        DATABASE_URL="sqlite://",
        TOTAL_ROWS=250,
        BATCH_SIZE=100,
        SEED=7,
    )


@pytest.fixture
def seeded_events(engine):
    rows = [
        {"company_id": 1, "event_time": datetime(2025, 10, 20, 9, 0), "event_type": "LOGIN",
         "score_points": -5, "total_score": -10},
        {"company_id": 1, "event_time": datetime(2025, 10, 19, 9, 0), "event_type": "TENDER_DELETE",
         "score_points": -20, "total_score": -40},
        {"company_id": 4001, "event_time": datetime(2025, 10, 20, 15, 30), "event_type": "JOB_ACCEPTED",
         "score_points": 20, "total_score": 100},
        {"company_id": 5000, "event_time": datetime(2025, 10, 18, 8, 0), "event_type": "LOGIN",
         "score_points": 5, "total_score": 5},
        {"company_id": 4000, "event_time": datetime(2025, 9, 1, 8, 0), "event_type": "INACTIVE_30D",
         "score_points": -12, "total_score": -12},
    ]
    with engine.begin() as conn:
        conn.execute(insert(churn_events), rows)
    return rows


@pytest.fixture
def client(engine, monkeypatch):
    TestSessionLocal = sessionmaker(bind=engine)

    def override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(settings, "API_KEYS", {API_KEY})
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
