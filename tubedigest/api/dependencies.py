"""Service dependencies shared by the API routers."""

from fastapi import HTTPException, Request, status

from ..services.credits_service import CreditsService
from ..services.job_service import JobService
from ..services.orchestrator import JobOrchestrator


def get_orchestrator(request: Request) -> JobOrchestrator:
    orchestrator = getattr(request.app.state, 'orchestrator', None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Summary service is not ready"
        )
    return orchestrator


def get_job_service(request: Request) -> JobService:
    return get_orchestrator(request).job_service


def get_credits_service() -> CreditsService:
    return CreditsService()
