from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import main
from routers import health, proxy, review, votes
from services.batch import BatchSettings
from services.upstream import API_KEY_HEADER, UpstreamClient
from services.votes import DuplicateVoteError, VoteChoice, VoteTally, tally_votes

UPSTREAM_URL = "https://upstream.test/uvpaintInspections"


class VoteStoreStub:
    prefix = "votes-test"

    def __init__(self) -> None:
        self.votes: Dict[str, Dict[str, str]] = {}

    async def cast(self, comparison_id: str, user_id: str, vote: VoteChoice) -> VoteTally:
        ballots = self.votes.setdefault(comparison_id, {})
        if user_id in ballots:
            raise DuplicateVoteError(comparison_id, user_id)
        ballots[user_id] = vote.value
        return await self.tally(comparison_id)

    async def user_vote(self, comparison_id: str, user_id: str) -> Optional[VoteChoice]:
        value = self.votes.get(comparison_id, {}).get(user_id)
        return VoteChoice(value) if value is not None else None

    async def tally(self, comparison_id: str) -> VoteTally:
        return tally_votes(self.votes.get(comparison_id, {}).values())

    async def tallies(self) -> Dict[str, VoteTally]:
        return {comparison_id: await self.tally(comparison_id) for comparison_id in self.votes}

    async def health(self) -> bool:
        return True


def _upstream(
    records: Dict[str, Dict[str, Any]],
    *,
    api_key: Optional[str] = "secret",
    seen: Optional[List[httpx.Request]] = None,
) -> UpstreamClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        body = json.loads(request.content)
        found = [records[item] for item in body.get("inspectionIds", []) if item in records]
        if not found:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json={"uvpaintInspections": found})

    return UpstreamClient(url=UPSTREAM_URL, api_key=api_key, timeout=5.0, transport=httpx.MockTransport(handler))


def _app(upstream: Optional[UpstreamClient], vote_store: Optional[VoteStoreStub] = None) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(proxy.router)
    app.include_router(review.router, prefix="/review")
    app.include_router(votes.router, prefix="/votes")
    app.state.upstream = upstream
    app.state.votes = vote_store
    app.state.batch_settings = BatchSettings(concurrency=2, fetch_timeout=5.0)
    return app


def test_proxy_forwards_body_and_key(scenario_record: Dict[str, Any]) -> None:
    seen: List[httpx.Request] = []
    client = TestClient(_app(_upstream({"insp-1": scenario_record}, seen=seen)))

    response = client.post("/api/get-uvpaint-inspections", json={"inspectionIds": ["insp-1"]})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["uvpaintInspections"][0]["uvpaintData"]["images"][0]["activeImage"] == "u1"
    assert seen[0].headers[API_KEY_HEADER] == "secret"
    assert json.loads(seen[0].content) == {"inspectionIds": ["insp-1"]}


def test_proxy_relays_upstream_error_status() -> None:
    client = TestClient(_app(_upstream({})))

    response = client.post("/api/get-uvpaint-inspections", json={"inspectionIds": ["missing"]})

    assert response.status_code == 404
    assert response.json() == {"error": "not found"}


def test_proxy_without_key_returns_500() -> None:
    client = TestClient(_app(_upstream({}, api_key=None)))

    response = client.post("/api/get-uvpaint-inspections", json={})

    assert response.status_code == 500
    assert response.json()["error"].startswith("Missing UVEYE_API_KEY")


def test_proxy_transport_failure_returns_proxy_failed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    upstream = UpstreamClient(url=UPSTREAM_URL, api_key="k", timeout=1.0, transport=httpx.MockTransport(handler))
    client = TestClient(_app(upstream))

    response = client.post("/api/get-uvpaint-inspections", json={"inspectionIds": ["x"]})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Proxy failed"
    assert "connection refused" in body["message"]


def test_review_fetches_ids_and_reports_failures(scenario_record: Dict[str, Any]) -> None:
    client = TestClient(_app(_upstream({"insp-1": scenario_record})))

    response = client.post("/review", json={"inspection_ids": ["insp-1"], "ids_text": "Inspection Id\nmissing\n"})

    assert response.status_code == 200
    report = response.json()
    assert [item["inspection_id"] for item in report["inspections"]] == ["insp-1"]
    assert report["inspections"][0]["label"] == "2021 Toyota Corolla"
    assert report["inspections"][0]["comparisons"][0]["images"] == ["u0", "u1", None]
    assert report["table_a"][0]["actions_percent_change"] == pytest.approx(100.0)
    assert report["failures"][0]["inspection_id"] == "missing"
    assert report["validation"]["mismatches"] == []


def test_review_upload_reads_csv(scenario_record: Dict[str, Any]) -> None:
    client = TestClient(_app(_upstream({"insp-1": scenario_record})))

    response = client.post(
        "/review/upload",
        files={"file": ("ids.csv", b"\xef\xbb\xbfinspection_id,date\ninsp-1,2024-05-01\n", "text/csv")},
    )

    assert response.status_code == 200
    assert response.json()["inspections"][0]["inspection_id"] == "insp-1"


def test_review_without_usable_ids_is_422() -> None:
    client = TestClient(_app(_upstream({})))

    assert client.post("/review", json={}).status_code == 422
    response = client.post("/review", json={"inspection_ids": ["gone"]})
    assert response.status_code == 422
    assert response.json()["detail"] == "No valid inspections could be processed"


def test_review_without_upstream_is_500() -> None:
    client = TestClient(_app(None))

    response = client.post("/review", json={"inspection_ids": ["insp-1"]})

    assert response.status_code == 500


def test_review_process_builds_report_from_records(scenario_record: Dict[str, Any]) -> None:
    client = TestClient(_app(None))

    response = client.post(
        "/review/process",
        json={"inspections": [{"inspection_id": "insp-1", "record": scenario_record}]},
    )

    assert response.status_code == 200
    report = response.json()
    assert report["table_a"][0]["published_count"] == 1
    assert report["table_d"][0]["image_type"] == "SlimOverview"


def test_votes_flow() -> None:
    client = TestClient(_app(_upstream({}), VoteStoreStub()))

    first = client.post("/votes/cmp-1", json={"user_id": "alice", "vote": "approve"})
    assert first.status_code == 200
    assert first.json()["tally"] == {"approvals": 1, "rejections": 0, "total": 1, "percentage": 100.0}

    assert client.post("/votes/cmp-1", json={"user_id": "alice", "vote": "reject"}).status_code == 409
    assert client.post("/votes/cmp-1", json={"user_id": "bob", "vote": "maybe"}).status_code == 422

    client.post("/votes/cmp-2", json={"user_id": "bob", "vote": "reject"})
    client.post("/votes/cmp-1", json={"user_id": "bob", "vote": "reject"})

    assert client.get("/votes/cmp-1").json()["percentage"] == 50.0
    assert [item["comparison_id"] for item in client.get("/votes").json()] == ["cmp-1", "cmp-2"]


def test_health_reports_each_dependency() -> None:
    client = TestClient(_app(_upstream({}, api_key=None), VoteStoreStub()))

    body = client.get("/health").json()

    assert body["ok"] is False
    assert body["details"] == {"upstream": False, "votes": True}
    assert body["config"] == {
        "upstream_host": "upstream.test",
        "api_key_configured": False,
        "votes_prefix": "votes-test",
    }
    assert client.get("/health/votes").json() == {"ok": True}
    assert client.get("/health/upstream").json() == {"ok": False, "api_key_configured": False}


def test_vote_status_per_user() -> None:
    client = TestClient(_app(_upstream({}), VoteStoreStub()))
    client.post("/votes/cmp-1", json={"user_id": "alice", "vote": "reject"})

    assert client.get("/votes/cmp-1/alice").json() == {
        "comparison_id": "cmp-1",
        "user_id": "alice",
        "vote": "reject",
        "has_voted": True,
    }
    assert client.get("/votes/cmp-1/bob").json()["has_voted"] is False


def test_proxy_answers_cors_preflight() -> None:
    client = TestClient(main.app)

    response = client.options(
        "/api/get-uvpaint-inspections",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
