"""
Tests for the HTTP surface.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.main import app


@pytest.fixture
def client():
    # Lifespan is not entered, so no browser is launched.
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value={"status": "success", "data": 1})
    dispatcher.get_stats = MagicMock(return_value={"store-a": {"processed": 1}})
    app.state.dispatcher = dispatcher
    app.state.services = None
    yield TestClient(app)
    del app.state.dispatcher


class TestApi:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_submit_job_returns_envelope(self, client):
        response = client.post("/jobs", json={
            "pattern": "get-comparison-count",
            "payload": {"jobId": "job-1", "jobType": "PRICE"},
            "store": "store-a",
        })

        assert response.status_code == 200
        assert response.json() == {"status": "success", "data": 1}
        message = app.state.dispatcher.dispatch.await_args.args[0]
        assert message == {
            "pattern": "get-comparison-count",
            "payload": {"jobId": "job-1", "jobType": "PRICE"},
            "store": "store-a",
        }

    def test_queue_stats(self, client):
        assert client.get("/queues").json() == {"store-a": {"processed": 1}}
