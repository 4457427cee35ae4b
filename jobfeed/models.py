from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from .db import Base, utcnow


class Company(Base):
    __tablename__ = "companies"
    id = Column(Integer, primary_key=True)
    name = Column(String(300), index=True, nullable=False)
    slug = Column(String(300), unique=True, nullable=False)
    website = Column(String(500))
    logo = Column(String(1000))
    description = Column(Text)
    industry = Column(String(200))
    headquarters = Column(String(300))
    size = Column(String(20))
    linkedin_url = Column(String(500), index=True)
    # null until the identity service has been asked about this company
    validated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    jobs = relationship("Job", back_populates="company")


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True)
    slug = Column(String(100), unique=True, nullable=False)
    name = Column(String(200), nullable=False)


class Job(Base):
    __tablename__ = "jobs"
    id = Column(Integer, primary_key=True)
    slug = Column(String(400), unique=True, nullable=False)
    title = Column(String(300), index=True, nullable=False)
    description = Column(Text)
    original_content = Column(Text)

    company_id = Column(Integer, ForeignKey("companies.id"), index=True, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), index=True)

    location = Column(String(300))
    location_type = Column(String(20), index=True)
    country = Column(String(2), index=True)
    level = Column(String(20))
    employment_type = Column(String(20))

    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    salary_currency = Column(String(10))
    salary_period = Column(String(10))
    salary_is_estimate = Column(Boolean, default=False)

    skills = Column(JSON, default=list)
    benefits = Column(JSON, default=list)

    source = Column(String(50), index=True)
    source_type = Column(String(20))
    source_id = Column(String(200), unique=True)
    source_url = Column(String(1000), unique=True)
    author_name = Column(String(300))
    author_linkedin = Column(String(500))

    apply_email = Column(String(300))
    apply_email_domain = Column(String(255), index=True)
    apply_url = Column(String(1000))

    quality_score = Column(Integer, default=0)
    is_active = Column(Boolean, default=True, index=True)
    dedup_key = Column(String(64), unique=True)

    posted_at = Column(DateTime, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)

    company = relationship("Company", back_populates="jobs")
    category = relationship("Category")


class FanoutTask(Base):
    __tablename__ = "fanout_tasks"
    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    kind = Column(String(20), nullable=False)
    payload = Column(String(1000))
    status = Column(String(20), default="PENDING", index=True)
    attempts = Column(Integer, default=0)
    last_error = Column(Text)

    created_at = Column(DateTime, default=utcnow)
    processed_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint("job_id", "kind", name="uq_fanout_job_kind"),
    )


class SocialQueueEntry(Base):
    __tablename__ = "social_queue"
    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), unique=True, nullable=False)
    status = Column(String(20), default="PENDING", index=True)
    created_at = Column(DateTime, default=utcnow)


class ImportLog(Base):
    __tablename__ = "import_logs"
    id = Column(Integer, primary_key=True)
    source = Column(String(50), index=True)
    status = Column(String(20), default="RUNNING")
    total_fetched = Column(Integer, default=0)
    total_new = Column(Integer, default=0)
    total_skipped = Column(Integer, default=0)
    total_failed = Column(Integer, default=0)
    errors = Column(JSON)

    started_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime)
