import pytest

from jobfeed.models import Company, FanoutTask, Job, SocialQueueEntry
from jobfeed.providers.base import NotificationError
from jobfeed.providers.indexing import AlertHookNotifier, IndexNowNotifier, build_job_url
from jobfeed.services.fanout import SocialQueueNotifier, drain_fanout, enqueue_fanout


class RecordingNotifier:
    def __init__(self, kind, error=None):
        self.kind = kind
        self.error = error
        self.sent = []

    async def send(self, job_id, payload):
        if self.error:
            raise self.error
        self.sent.append((job_id, payload))


@pytest.fixture
def job(db):
    company = Company(name="Acme", slug="acme")
    db.add(company)
    db.commit()
    job = Job(slug="backend-engineer-acme", title="Backend Engineer", company_id=company.id)
    db.add(job)
    db.commit()
    return job


def test_job_url(monkeypatch):
    from jobfeed.config import settings

    monkeypatch.setattr(settings, "SITE_URL", "https://jobs.test/")
    assert build_job_url("acme", "backend-engineer-acme") == "https://jobs.test/company/acme/jobs/backend-engineer-acme"


class TestEnqueue:
    def test_one_task_per_kind(self, db, job):
        assert enqueue_fanout(db, job, "acme") == 3
        assert enqueue_fanout(db, job, "acme") == 0
        tasks = {t.kind: t for t in db.query(FanoutTask).all()}
        assert set(tasks) == {"alert", "social", "index"}
        assert tasks["index"].payload.endswith("/company/acme/jobs/backend-engineer-acme")
        assert tasks["alert"].payload is None


class TestDrain:
    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, db, job, session_factory):
        enqueue_fanout(db, job, "acme")
        index = RecordingNotifier("index")
        alert = RecordingNotifier("alert", error=NotificationError("hook down"))

        stats = await drain_fanout(db, [alert, SocialQueueNotifier(session_factory), index])

        assert stats == {"done": 2, "failed": 1, "skipped": 0}
        assert index.sent == [(job.id, build_job_url("acme", job.slug))]
        assert db.query(SocialQueueEntry).filter(SocialQueueEntry.job_id == job.id).count() == 1
        failed = db.query(FanoutTask).filter(FanoutTask.kind == "alert").one()
        assert failed.status == "FAILED"
        assert failed.attempts == 1
        assert "hook down" in failed.last_error

    @pytest.mark.asyncio
    async def test_done_tasks_are_not_redelivered(self, db, job):
        enqueue_fanout(db, job, "acme")
        index = RecordingNotifier("index")
        await drain_fanout(db, [index])
        await drain_fanout(db, [index])
        assert len(index.sent) == 1

    @pytest.mark.asyncio
    async def test_missing_consumer_leaves_task_pending(self, db, job):
        enqueue_fanout(db, job, "acme")
        stats = await drain_fanout(db, [RecordingNotifier("index")])
        assert stats["skipped"] == 2
        assert db.query(FanoutTask).filter(FanoutTask.status == "PENDING").count() == 2

    @pytest.mark.asyncio
    async def test_social_queue_is_idempotent(self, db, job, session_factory):
        notifier = SocialQueueNotifier(session_factory)
        await notifier.send(job.id, None)
        await notifier.send(job.id, None)
        assert db.query(SocialQueueEntry).count() == 1


class TestUnconfiguredNotifiers:
    @pytest.mark.asyncio
    async def test_noop_without_credentials(self, monkeypatch):
        from jobfeed.config import settings

        monkeypatch.setattr(settings, "INDEXNOW_KEY", None)
        monkeypatch.setattr(settings, "ALERTS_HOOK_URL", None)
        await IndexNowNotifier().send(1, "https://jobs.test/company/acme/jobs/x")
        await AlertHookNotifier().send(1, None)
