"""
Services package for the TubeDigest summary service.

This package contains the service classes that handle job persistence,
quota checks, and job orchestration.
"""

from .job_service import JobService, JobNotFoundError
from .credits_service import CreditsService, QuotaExceededError, PLANS
from .orchestrator import JobOrchestrator, create_orchestrator

__all__ = [
    'JobService',
    'JobNotFoundError',
    'CreditsService',
    'QuotaExceededError',
    'PLANS',
    'JobOrchestrator',
    'create_orchestrator',
]
