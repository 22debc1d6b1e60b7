import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
import seed


@pytest.fixture
def mongo(monkeypatch):
    mock_db = mongomock.MongoClient()["lendify-test"]
    monkeypatch.setattr(database, "db", mock_db)
    monkeypatch.setattr(main, "db", mock_db)
    return mock_db


@pytest.fixture
def seeded(mongo):
    seed.seed_database()
    return mongo


@pytest.fixture
def client(mongo):
    return TestClient(main.app, raise_server_exceptions=False)
