"""Unit tests for Problem Details error handling."""

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel

from baby_sleep_tracker.api.middleware import (
    ProblemDetailsException,
    ProblemDetailsMiddleware,
    register_problem_handlers,
)


class Payload(BaseModel):
    minutes: int


@pytest.fixture
def test_app():
    """Create a test FastAPI app with Problem Details handling."""
    app = FastAPI()
    register_problem_handlers(app)
    app.add_middleware(ProblemDetailsMiddleware)

    @app.post("/test/entries")
    async def test_endpoint(request: Request):
        body = await request.body()
        data = await request.json() if body else {}

        if data.get("trigger") == "problem_details_exception":
            raise ProblemDetailsException(
                status_code=409,
                title="Test Problem",
                detail="This is a test problem",
                colliding={"id": "e1"},
            )
        elif data.get("trigger") == "http_exception":
            raise HTTPException(status_code=404, detail="Test not found")
        elif data.get("trigger") == "generic_exception":
            raise ValueError("Generic error")

        return {"message": "success"}

    @app.post("/test/strict")
    async def strict_endpoint(payload: Payload):
        return {"minutes": payload.minutes}

    return app


@pytest.fixture
def test_client(test_app):
    return TestClient(test_app)


@pytest.mark.unit
class TestProblemDetails:
    """Test Problem Details error format."""

    def test_problem_details_exception_format(self, test_client):
        response = test_client.post("/test/entries", json={"trigger": "problem_details_exception"})

        assert response.status_code == 409
        assert response.headers["content-type"] == "application/problem+json"

        problem = response.json()
        assert problem["type"] == "https://httpstatuses.com/409"
        assert problem["title"] == "Test Problem"
        assert problem["status"] == 409
        assert problem["detail"] == "This is a test problem"
        assert problem["colliding"] == {"id": "e1"}
        assert "instance" in problem

    def test_http_exception_conversion(self, test_client):
        response = test_client.post("/test/entries", json={"trigger": "http_exception"})

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/problem+json"

        problem = response.json()
        assert problem["title"] == "Not Found"
        assert problem["detail"] == "Test not found"

    def test_generic_exception_handling(self, test_client):
        response = test_client.post("/test/entries", json={"trigger": "generic_exception"})

        assert response.status_code == 500
        assert response.headers["content-type"] == "application/problem+json"

        problem = response.json()
        assert problem["title"] == "Internal Server Error"
        assert problem["detail"] == "An unexpected error occurred"

    def test_validation_error_handling(self, test_client):
        response = test_client.post("/test/strict", json={"minutes": "many"})

        assert response.status_code == 422
        problem = response.json()
        assert problem["title"] == "Validation Error"
        assert problem["errors"]

    def test_unknown_route_is_problem_details(self, test_client):
        response = test_client.get("/nope")

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/problem+json"

    def test_success_passes_through(self, test_client):
        response = test_client.post("/test/entries", json={})

        assert response.status_code == 200
        assert response.json() == {"message": "success"}
