"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from salescoach.jobs import Job, JobAccessDeniedError, JobNotFoundError, authorize_job
from salescoach.jobs.orchestrator import JobOrchestrator, get_orchestrator

bearer_scheme = HTTPBearer(auto_error=False)
OrchestratorDep = Annotated[JobOrchestrator, Depends(get_orchestrator)]


async def get_authorized_job(
    job_id: str,
    orchestrator: OrchestratorDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Job:
    """Resolve the job in the path, enforcing its per-job bearer token."""

    token = credentials.credentials if credentials else None
    try:
        return authorize_job(orchestrator.store, job_id, token)
    except JobNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        ) from None
    except JobAccessDeniedError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Invalid access token",
        ) from None


AuthorizedJobDep = Annotated[Job, Depends(get_authorized_job)]


__all__ = ["AuthorizedJobDep", "OrchestratorDep", "bearer_scheme", "get_authorized_job"]
