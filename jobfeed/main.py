# jobfeed/main.py
from __future__ import annotations

import logging
from pathlib import Path

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from sqlalchemy.orm import Session
from sqlalchemy.engine.url import make_url

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .config import settings
from .db import Base, engine, SessionLocal
from .schemas import BatchIn, BatchStatsOut, IngestResultOut, RawPost
from .providers.identity import HunterIdentityService
from .providers.indexing import AlertHookNotifier, IndexNowNotifier
from .providers.llm import ChatClient, ChatDescriptionWriter
from .providers.logo import HttpLogoFinder
from .services.batch import run_batch
from .services.classifier import ChatClassificationModel, RoleClassifier, ensure_taxonomy
from .services.extraction import ExtractionAdapter
from .services.fanout import SocialQueueNotifier, drain_fanout
from .services.ingest import IngestionPipeline, IngestResult
from .services.validation import IdentityValidator

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Remote Jobs Ingest")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def build_pipeline() -> IngestionPipeline:
    chat = ChatClient()
    return IngestionPipeline(
        extractor=ExtractionAdapter(chat),
        classifier=RoleClassifier(ChatClassificationModel(chat)),
        validator=IdentityValidator(
            HunterIdentityService(), HttpLogoFinder(), ChatDescriptionWriter(chat),
        ),
    )


def build_notifiers() -> list:
    return [AlertHookNotifier(), SocialQueueNotifier(SessionLocal), IndexNowNotifier()]


_pipeline: IngestionPipeline | None = None

def get_pipeline() -> IngestionPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
    return _pipeline


async def drain_outbox() -> None:
    with SessionLocal() as db:
        await drain_fanout(db, build_notifiers())


def get_fanout_kick():
    return drain_outbox


def build_scheduler() -> AsyncIOScheduler:
    sched = AsyncIOScheduler()
    # must be the coroutine function itself so the executor awaits it on the loop
    sched.add_job(drain_outbox, "interval", minutes=settings.FANOUT_INTERVAL_MINUTES)
    return sched


def check_secret(secret: str | None) -> None:
    if settings.WEBHOOK_SECRET and secret != settings.WEBHOOK_SECRET:
        logger.error("[webhook] invalid webhook secret")
        raise HTTPException(401, "Unauthorized")


def _result_out(res: IngestResult) -> IngestResultOut:
    return IngestResultOut(
        success=res.status != "failed",
        status=res.status,
        state=res.state.value,
        reason=res.reason,
        jobId=res.job_id,
        jobSlug=res.job_slug,
        companySlug=res.company_slug,
    )


@app.on_event("startup")
async def on_start():
    try:
        url = make_url(str(engine.url))
        if url.get_backend_name() == "sqlite" and url.database:
            db_path = Path(url.database).resolve()
            logger.info("[db] using SQLite at %s (exists=%s)", db_path, db_path.exists())
    except Exception as e:
        logger.warning("[db] failed to resolve db path: %s", e)

    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        added = ensure_taxonomy(db)
        if added:
            logger.info("[db] seeded %s categories", added)

    build_scheduler().start()


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/webhooks/{source}")
def webhook_ready(source: str, secret: str | None = None):
    check_secret(secret)
    return {
        "status": "ok",
        "message": f"{source} webhook endpoint is ready",
        "usage": {
            "method": "POST",
            "url": f"/webhooks/{source}?secret=YOUR_SECRET",
            "body": {
                "postUrl": "post URL",
                "content": "post text",
                "authorName": "author display name",
                "authorHeadline": "author headline (optional)",
                "authorUrl": "author profile URL (optional)",
            },
        },
    }


@app.post("/webhooks/{source}", response_model=IngestResultOut)
async def webhook(
    source: str,
    request: Request,
    background: BackgroundTasks,
    secret: str | None = None,
    db: Session = Depends(get_db),
    pipeline: IngestionPipeline = Depends(get_pipeline),
    kick=Depends(get_fanout_kick),
):
    check_secret(secret)
    try:
        body = await request.json()
    except ValueError:
        # 200 + skip keeps the upstream automation from retry-storming
        body = None
    post = RawPost.from_payload(source, body)
    logger.info("[webhook] %s post: %s", source, post.url)

    res = await pipeline.process(db, post)
    if res.created:
        background.add_task(kick)
    return _result_out(res)


@app.post("/api/ingest/batch", response_model=BatchStatsOut)
async def ingest_batch(
    payload: BatchIn,
    secret: str | None = None,
    db: Session = Depends(get_db),
    pipeline: IngestionPipeline = Depends(get_pipeline),
    kick=Depends(get_fanout_kick),
):
    check_secret(secret)
    posts = [RawPost.from_payload(payload.source, p) for p in payload.posts]
    stats = await run_batch(db, pipeline, posts, source=payload.source)
    if stats.created:
        await kick()
    return BatchStatsOut(
        total=stats.total,
        processed=stats.processed,
        created=stats.created,
        skipped=stats.skipped,
        failed=stats.failed,
        errors=stats.errors,
        importLogId=stats.import_log_id,
    )


@app.post("/api/fanout/drain")
async def fanout_drain(secret: str | None = None, kick=Depends(get_fanout_kick)):
    check_secret(secret)
    await kick()
    return JSONResponse({"success": True})
