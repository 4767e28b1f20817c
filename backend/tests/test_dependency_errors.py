"""
Database outages surface as 503 DependencyUnavailable, both when the
connection was never established and when MongoDB drops mid-request.
"""
import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

from pymongo.errors import ConnectionFailure

# Ensure backend root is on path
backend_root = Path(__file__).resolve().parent.parent
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))

from database import Database, database
from utils.errors import DependencyUnavailableError


class TestNotConnected:

    def test_get_db_raises_before_connect(self):
        with pytest.raises(DependencyUnavailableError) as exc_info:
            Database().get_db()
        assert exc_info.value.status_code == 503

    def test_list_route_returns_503(self, client):
        with patch.object(database, "db", None):
            response = client.get("/api/cases/list", params={"userId": "u1"})

        assert response.status_code == 503
        assert response.json()["error"] == "DependencyUnavailable"

    def test_create_route_returns_503(self, client):
        with patch.object(database, "db", None):
            response = client.post("/api/clients/create", json={"name": "Ravi Menon", "userId": "u1"})

        assert response.status_code == 503
        assert response.json()["error"] == "DependencyUnavailable"


class TestConnectionLost:

    def test_connection_failure_returns_503(self, client, memory_db):
        memory_db.users.find_one = AsyncMock(side_effect=ConnectionFailure("no primary available"))

        response = client.get("/api/cases/list", params={"userId": "u1"})

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "DependencyUnavailable"
        assert "no primary" not in body["message"]

    def test_connection_failure_on_write_returns_503(self, client, memory_db):
        memory_db.cases.insert_one = AsyncMock(side_effect=ConnectionFailure("connection reset"))

        response = client.post("/api/cases/create", json={
            "title": "Kumar v. State", "description": "Appeal against conviction", "userId": "u1",
        })

        assert response.status_code == 503
        assert response.json()["error"] == "DependencyUnavailable"
        assert memory_db.cases.docs == []
