import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from conftest import FakeExtractor, make_candidate, make_pipeline
from jobfeed import main
from jobfeed.config import settings
from jobfeed.main import app, build_scheduler, drain_outbox, get_db, get_fanout_kick, get_pipeline
from jobfeed.models import ImportLog, Job

POST = {
    "postUrl": "https://www.linkedin.com/feed/update/urn:li:activity:7001/",
    "content": "We're hiring a Senior Backend Engineer, remote. Email jobs@acme.io",
    "author": {"name": "Jane Doe", "info": "Talent at Acme"},
}


@pytest.fixture
def kicks():
    return []


@pytest.fixture
def client(db, kicks, monkeypatch):
    monkeypatch.setattr(settings, "WEBHOOK_SECRET", "s3cret")
    pipeline = make_pipeline(FakeExtractor(default=make_candidate()))

    def _db():
        yield db

    async def kick():
        kicks.append(1)

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_fanout_kick] = lambda: kick
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestWebhook:
    def test_rejects_bad_secret(self, client):
        assert client.post("/webhooks/linkedin?secret=nope", json=POST).status_code == 401
        assert client.post("/webhooks/linkedin", json=POST).status_code == 401

    def test_readiness(self, client):
        r = client.get("/webhooks/linkedin?secret=s3cret")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert client.get("/webhooks/linkedin").status_code == 401

    def test_creates_job(self, client, db, kicks):
        r = client.post("/webhooks/linkedin?secret=s3cret", json=POST)
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["status"] == "created"
        assert body["state"] == "COMMITTED"
        assert body["companySlug"] == "acme"
        assert body["jobSlug"] == "senior-backend-engineer-acme"
        assert kicks == [1]

        job = db.query(Job).one()
        assert job.source_id == "7001"
        assert job.author_name == "Jane Doe"

    def test_resubmit_is_skipped(self, client, kicks):
        client.post("/webhooks/linkedin?secret=s3cret", json=POST)
        body = client.post("/webhooks/linkedin?secret=s3cret", json=POST).json()
        assert (body["status"], body["reason"]) == ("skipped", "duplicate")
        assert kicks == [1]

    def test_malformed_json_is_a_skip(self, client):
        r = client.post(
            "/webhooks/linkedin?secret=s3cret",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert r.status_code == 200
        assert r.json()["reason"] == "empty_data"

    def test_missing_content_is_a_skip(self, client):
        r = client.post("/webhooks/linkedin?secret=s3cret", json={"postUrl": POST["postUrl"]})
        assert r.json()["status"] == "skipped"
        assert r.json()["reason"] == "empty_data"


class TestBatchEndpoint:
    def test_batch(self, client, db, kicks, monkeypatch):
        monkeypatch.setattr(settings, "BATCH_DELAY_SECONDS", 0)
        payload = {
            "source": "linkedin",
            "posts": [POST, POST, {"postUrl": "https://example.com/empty"}],
        }
        r = client.post("/api/ingest/batch?secret=s3cret", json=payload)
        assert r.status_code == 200
        body = r.json()
        assert body["total"] == 3
        assert body["created"] == 1
        assert body["skipped"] == 2
        assert body["failed"] == 0
        assert db.get(ImportLog, body["importLogId"]).status == "COMPLETED"
        assert kicks == [1]

    def test_drain(self, client, kicks):
        assert client.post("/api/fanout/drain?secret=s3cret").json() == {"success": True}
        assert kicks == [1]


def test_outbox_drain_is_scheduled_as_a_coroutine():
    sched = build_scheduler()
    (job,) = sched.get_jobs()
    assert job.func is drain_outbox
    assert asyncio.iscoroutinefunction(job.func)
    assert job.trigger.interval == timedelta(minutes=settings.FANOUT_INTERVAL_MINUTES)


@pytest.mark.asyncio
async def test_scheduled_drain_runs_on_the_loop(monkeypatch):
    ran = []

    async def fake_drain():
        ran.append(asyncio.get_running_loop())

    monkeypatch.setattr(main, "drain_outbox", fake_drain)
    monkeypatch.setattr(settings, "FANOUT_INTERVAL_MINUTES", 1)
    sched = main.build_scheduler()
    sched.start()
    try:
        (job,) = sched.get_jobs()
        job.modify(next_run_time=datetime.now(timezone.utc))
        for _ in range(50):
            if ran:
                break
            await asyncio.sleep(0.05)
    finally:
        sched.shutdown(wait=False)
    assert ran == [asyncio.get_running_loop()]
