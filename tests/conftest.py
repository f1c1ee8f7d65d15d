"""
Pytest configuration and shared fixtures for the prediction service tests.
"""

import numpy as np
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from validation_api import db


@pytest.fixture
def engine(monkeypatch):
    """In-memory SQLite engine swapped in for the configured database."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    monkeypatch.setattr(db, "_engine", eng)
    db.init_db()
    yield eng
    eng.dispose()


@pytest.fixture
def client(engine):
    from validation_api.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def seeded_rng():
    return np.random.default_rng(1234)


@pytest.fixture
def suspension_record():
    """A stored durability test record as the dashboard would submit it."""
    return {
        "testName": "Rough Road Endurance",
        "domain": "Durability",
        "status": "completed",
        "vehicleId": "veh_003",
        "peakStrain": 500,
        "minerDamageTotal": 0.4,
        "cycleCount": 10000,
        "operator": "J. Ortiz",
    }
