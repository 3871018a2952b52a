# tests/conftest.py

import os
import tempfile
from datetime import time

_DB_DIR = tempfile.mkdtemp(prefix="railway-booking-tests-")
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.pop("ADMIN_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from src.domain.money import to_paise
from src.infrastructure.db.models import Base
from src.infrastructure.db.session import SessionLocal, engine
from src.infrastructure.repositories.train_repository import TrainRepository
from src.main import app


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return SessionLocal


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def train_factory(db):
    counter = {"n": 0}

    def _create(
        total_seats: int = 10,
        fare: str = "100.00",
        origin: str = "New Delhi",
        destination: str = "Mumbai Central",
        name: str | None = None,
    ) -> str:
        counter["n"] += 1
        train = TrainRepository(db).create_train(
            name=name or f"Test Express {counter['n']}",
            origin=origin,
            destination=destination,
            departure_time=time(8, 30),
            arrival_time=time(16, 45),
            total_seats=total_seats,
            fare_paise=to_paise(fare),
        )
        train_id = train.id
        db.commit()
        return train_id

    return _create


@pytest.fixture
def client():
    return TestClient(app)
