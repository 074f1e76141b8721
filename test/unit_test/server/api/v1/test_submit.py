"""Tests for the submission endpoint."""

import json
from unittest.mock import patch

from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from test.factories import day_entry, source_entry, submission_body
from tokenledger.core.database.repositories.daily_breakdown import DailyBreakdownRepository

SUBMIT_URL = "/api/v1/submit"
LAPTOP = {"Authorization": "Bearer tok-alice-laptop"}
DESKTOP = {"Authorization": "Bearer tok-alice-desktop"}


def body(*days: dict) -> dict:
    return submission_body(list(days) or [day_entry("2025-01-10", [source_entry(input=100, output=20, cost=1.0)])])


class TestSubmitSuccess:
    """Test accepted submissions."""

    async def test_first_submission(self, client: AsyncClient):
        response = await client.post(SUBMIT_URL, json=body(), headers=LAPTOP)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["mode"] == "create"
        assert data["username"] == "alice"
        assert data["submissionId"]
        assert data["metrics"] == {
            "totalTokens": 120,
            "totalCost": 1.0,
            "dateRange": {"start": "2025-01-10", "end": "2025-01-10"},
            "activeDays": 1,
            "sources": ["claude"],
        }
        assert "warnings" not in data

    async def test_resubmission_merges_without_double_counting(self, client: AsyncClient):
        first = await client.post(SUBMIT_URL, json=body(), headers=LAPTOP)
        second = await client.post(SUBMIT_URL, json=body(), headers=LAPTOP)

        assert second.status_code == 200
        assert second.json()["mode"] == "merge"
        assert second.json()["submissionId"] == first.json()["submissionId"]
        assert second.json()["metrics"]["totalTokens"] == 120

    async def test_second_device_adds_up(self, client: AsyncClient):
        await client.post(SUBMIT_URL, json=body(), headers=LAPTOP)
        response = await client.post(
            SUBMIT_URL,
            json=body(day_entry("2025-01-11", [source_entry(source="codex", model_id="gpt-5", input=30, output=0, cost=0.5)])),
            headers=DESKTOP,
        )

        metrics = response.json()["metrics"]
        assert metrics["totalTokens"] == 150
        assert metrics["activeDays"] == 2
        assert metrics["sources"] == ["claude", "codex"]
        assert metrics["dateRange"] == {"start": "2025-01-10", "end": "2025-01-11"}

    async def test_warnings_are_returned(self, client: AsyncClient):
        payload = body()
        payload["summary"]["activeDays"] = 3

        response = await client.post(SUBMIT_URL, json=payload, headers=LAPTOP)

        assert response.status_code == 200
        assert response.json()["warnings"] == ["Active days mismatch: summary=3, calculated=1"]

    async def test_blank_model_ids_are_stored_as_unknown(self, client: AsyncClient):
        payload = body(day_entry("2025-01-10", [source_entry(model_id=" ")]))

        response = await client.post(SUBMIT_URL, json=payload, headers=LAPTOP)
        ledger = await client.get("/api/v1/users/alice/ledger")

        assert response.status_code == 200
        assert ledger.json()["aggregate"]["modelsUsed"] == ["unknown"]


class TestSubmitRejected:
    """Test rejected submissions."""

    async def test_invalid_json(self, client: AsyncClient):
        response = await client.post(
            SUBMIT_URL,
            content=b"{not json",
            headers={**LAPTOP, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}

    async def test_validation_errors_are_all_listed(self, client: AsyncClient):
        payload = body(
            day_entry("2999-01-01", [source_entry()]),
            day_entry("2999-01-01", [source_entry(source="codex", model_id="gpt-5")]),
        )

        response = await client.post(SUBMIT_URL, json=payload, headers=LAPTOP)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert "Future date found in contributions: 2999-01-01" in data["details"]
        assert "Duplicate date found: 2999-01-01" in data["details"]

    async def test_schema_errors(self, client: AsyncClient):
        payload = body()
        del payload["summary"]

        response = await client.post(SUBMIT_URL, json=payload, headers=LAPTOP)

        assert response.status_code == 400
        assert any(detail.startswith("summary") for detail in response.json()["details"])

    async def test_infinite_cost_is_rejected_and_not_stored(self, client: AsyncClient):
        payload = body()
        payload["contributions"][0]["sources"][0]["cost"] = "__COST__"
        content = json.dumps(payload).replace('"__COST__"', "Infinity").encode()

        response = await client.post(
            SUBMIT_URL,
            content=content,
            headers={**LAPTOP, "Content-Type": "application/json"},
        )
        ledger = await client.get("/api/v1/users/alice/ledger")

        assert response.status_code == 400
        assert any(detail.startswith("contributions.0.sources.0.cost") for detail in response.json()["details"])
        assert ledger.json()["aggregate"] is None
        assert ledger.json()["days"] == []

    async def test_empty_submission(self, client: AsyncClient):
        response = await client.post(SUBMIT_URL, json=submission_body([]), headers=LAPTOP)

        assert response.status_code == 400
        assert response.json() == {"error": "No contribution data to submit"}

    async def test_store_failure_is_retryable(self, client: AsyncClient):
        failure = OperationalError("INSERT INTO daily_breakdown", {}, Exception("deadlock detected"))

        with patch.object(DailyBreakdownRepository, "insert_many", side_effect=failure):
            response = await client.post(SUBMIT_URL, json=body(), headers=LAPTOP)
        retry = await client.post(SUBMIT_URL, json=body(), headers=LAPTOP)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to persist submission"}
        assert retry.status_code == 200
        assert retry.json()["mode"] == "create"


class TestSubmitAuthentication:
    """Test bearer token authentication."""

    async def test_missing_header(self, client: AsyncClient):
        response = await client.post(SUBMIT_URL, json=body())

        assert response.status_code == 401
        assert response.json() == {"error": "Missing or invalid Authorization header"}

    async def test_not_a_bearer_header(self, client: AsyncClient):
        response = await client.post(SUBMIT_URL, json=body(), headers={"Authorization": "Basic abc"})

        assert response.status_code == 401

    async def test_unknown_token(self, client: AsyncClient):
        response = await client.post(SUBMIT_URL, json=body(), headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid API token"}

    async def test_expired_token(self, client: AsyncClient, expired_token: str):
        response = await client.post(SUBMIT_URL, json=body(), headers={"Authorization": f"Bearer {expired_token}"})

        assert response.status_code == 401
        assert response.json() == {"error": "API token has expired"}

    async def test_authentication_happens_before_body_parsing(self, client: AsyncClient):
        response = await client.post(SUBMIT_URL, content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 401
