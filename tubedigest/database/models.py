"""
Database models for the TubeDigest summary service.
Defines SQLAlchemy models for summary jobs and per-user entitlements.
"""

import enum
import secrets
from datetime import datetime, timezone
from typing import Optional, Tuple
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Enum, Index, JSON
)
from sqlalchemy.orm import declarative_base, validates
from sqlalchemy.sql import func

Base = declarative_base()

JOB_ID_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-'
JOB_ID_LENGTH = 21

# Markers of the legacy single-column encoding
LEGACY_PENDING_MARKER = 'pending'
LEGACY_PROCESSING_MARKER = 'processing'
LEGACY_ERROR_PREFIX = 'Error:'


def generate_job_id() -> str:
    """Generate an opaque, URL-safe job identifier."""
    return ''.join(secrets.choice(JOB_ID_ALPHABET) for _ in range(JOB_ID_LENGTH))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_class):
    # Persist enum values ("pending"), not member names ("PENDING")
    return [member.value for member in enum_class]


class JobStatus(enum.Enum):
    """Summary job status enumeration."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class SummaryFormat(enum.Enum):
    """Output formats understood by the summarization client."""
    PARAGRAPH = "paragraph"
    BULLETS = "bullets"
    TIMESTAMPED = "timestamped"


class SummaryLanguage(enum.Enum):
    """Output languages understood by the summarization client."""
    EN = "en"
    ES = "es"
    FR = "fr"


class PlanType(enum.Enum):
    """Subscription plans."""
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


def classify_legacy_content(content: Optional[str]) -> Tuple[JobStatus, Optional[str], Optional[str]]:
    """
    Classify a value of the legacy overloaded ``summary_content`` column.

    The legacy schema stored status and payload in one text field. This maps
    such a value onto the explicit (status, content, error_message) triple.

    Args:
        content: Legacy column value

    Returns:
        Tuple of (status, content, error_message)
    """
    if content is None or content == LEGACY_PENDING_MARKER:
        return JobStatus.PENDING, None, None
    if content == LEGACY_PROCESSING_MARKER:
        return JobStatus.PROCESSING, None, None
    if content.startswith(LEGACY_ERROR_PREFIX):
        return JobStatus.FAILED, None, content[len(LEGACY_ERROR_PREFIX):].strip()
    return JobStatus.COMPLETED, content, None


class SummaryJob(Base):
    """
    Summary job model tracking one user-submitted video summary request.

    Attributes:
        id: Opaque job identifier
        owner_id: Identifier of the user who submitted the job
        source_reference: Submitted video URL or identifier
        summary_format: Requested summary format
        language: Requested summary language
        status: Current job status
        content: Generated summary (completed jobs only)
        error_message: Failure reason (failed jobs only)
        video_title: Video title, when the pipeline fetched metadata
        video_duration_seconds: Video length, when the pipeline fetched metadata
        video_metadata: Fetched metadata document (stored in the ``metadata`` column)
        created_at: Record creation timestamp
        started_at: Processing start timestamp
        updated_at: Record last update timestamp
    """
    __tablename__ = 'summary_jobs'

    id = Column(String(32), primary_key=True, default=generate_job_id)
    owner_id = Column(String(255), nullable=False)
    source_reference = Column(String(2000), nullable=False)
    summary_format = Column(Enum(SummaryFormat, name="summary_format", values_callable=_enum_values), nullable=False, default=SummaryFormat.PARAGRAPH)
    language = Column(Enum(SummaryLanguage, name="summary_language", values_callable=_enum_values), nullable=False, default=SummaryLanguage.EN)
    status = Column(Enum(JobStatus, name="job_status", values_callable=_enum_values), nullable=False, default=JobStatus.PENDING)
    content = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    video_title = Column(String(500), nullable=True)
    video_duration_seconds = Column(Integer, nullable=True)
    video_metadata = Column('metadata', JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_summary_jobs_owner_created', 'owner_id', 'created_at'),
        Index('idx_summary_jobs_status', 'status'),
    )

    @validates('source_reference')
    def validate_source_reference(self, key, source_reference):
        """Validate the submitted source reference."""
        if not source_reference or not source_reference.strip():
            raise ValueError("Source reference cannot be empty")
        return source_reference.strip()

    @validates('owner_id')
    def validate_owner_id(self, key, owner_id):
        if not owner_id:
            raise ValueError("Owner id cannot be empty")
        return owner_id

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal

    def to_dict(self) -> dict:
        """Serialize the job for API responses."""
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'source_reference': self.source_reference,
            'format': self.summary_format.value if self.summary_format else None,
            'language': self.language.value if self.language else None,
            'status': self.status.value if self.status else None,
            'content': self.content,
            'error': self.error_message,
            'video_title': self.video_title,
            'video_duration_seconds': self.video_duration_seconds,
            'metadata': self.video_metadata,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<SummaryJob(id='{self.id}', owner_id='{self.owner_id}', status={self.status})>"


class UserCredits(Base):
    """
    Local view of a user's plan and remaining summary quota.

    Attributes:
        id: Primary key
        user_id: External identity of the user (unique)
        plan: Current plan
        summaries_left: Remaining summaries in the current period
        subscription_status: Status reported by the billing provider
        billing_customer_id: Billing provider customer id
        subscription_id: Billing provider subscription id
        created_at: Record creation timestamp
        updated_at: Record last update timestamp
    """
    __tablename__ = 'user_credits'

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), unique=True, nullable=False, index=True)
    plan = Column(Enum(PlanType, name="plan_type", values_callable=_enum_values), nullable=False, default=PlanType.FREE)
    summaries_left = Column(Integer, nullable=False, default=0)
    subscription_status = Column(String(50), nullable=False, default='active')
    billing_customer_id = Column(String(255), nullable=True)
    subscription_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    @validates('summaries_left')
    def validate_summaries_left(self, key, summaries_left):
        """Remaining quota can never be negative."""
        if summaries_left is not None and summaries_left < 0:
            raise ValueError("Remaining summaries cannot be negative")
        return summaries_left

    def to_dict(self) -> dict:
        return {
            'user_id': self.user_id,
            'plan': self.plan.value if self.plan else None,
            'summaries_left': self.summaries_left,
            'subscription_status': self.subscription_status,
            'billing_customer_id': self.billing_customer_id,
            'subscription_id': self.subscription_id,
        }

    def __repr__(self):
        return f"<UserCredits(user_id='{self.user_id}', plan={self.plan}, summaries_left={self.summaries_left})>"
