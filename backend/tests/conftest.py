"""
Pytest configuration and shared test helpers for backend tests.
"""
import os
import sys
from pathlib import Path

# Skip the MongoDB connection in the app lifespan when running under pytest.
os.environ.setdefault("PYTEST_RUNNING", "1")

# Ensure backend root and this directory are on path
tests_dir = Path(__file__).resolve().parent
backend_root = tests_dir.parent
for path in (backend_root, tests_dir):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

import pytest
from unittest.mock import patch

# Shared TestClient fixture so tests can use in-process requests without a running server.
from fastapi.testclient import TestClient
from server import app
from database import database
from memory_db import MemoryDatabase


@pytest.fixture
def client():
    """Return a TestClient for the main FastAPI app (server:app). Use for unit-style API tests."""
    return TestClient(app)


@pytest.fixture
def memory_db():
    """Point database.get_db() at a fresh in-memory database for the duration of a test."""
    mem = MemoryDatabase()
    with patch.object(database, "get_db", return_value=mem):
        yield mem


@pytest.fixture
def seed_organization(memory_db):
    """Insert an organization document and return it."""
    def _seed(org_id="ORG-1", **overrides):
        doc = {
            "id": org_id,
            "name": "Sharma & Associates",
            "email": "office@sharma.law",
            "phone": "",
            "address": "",
            "domain": "",
            "logo": "",
            "subscription_plan": "starter",
            "subscription_status": "active",
            "subscription_start_date": "2026-01-01T00:00:00+00:00",
            "subscription_end_date": None,
            "trial_end_date": None,
            "max_users": 5,
            "max_cases": 100,
            "current_users": 1,
            "current_cases": 0,
            "created_by": "u1",
            "is_default": False,
            "created_at": "2026-01-01T00:00:00+00:00",
            "updated_at": "2026-01-01T00:00:00+00:00",
        }
        doc.update(overrides)
        memory_db.organizations.docs.append(dict(doc))
        return doc
    return _seed
