"""FastAPI dependencies for accessing app state and the caller identity."""

from typing import Optional

from fastapi import Header
from fastapi import HTTPException
from fastapi import Request
from fastapi import status
from loguru import logger

from nexus_api.auth.principal import Principal
from nexus_api.services.ai_service import AIService
from nexus_api.services.notification_service import NotificationService
from nexus_api.services.project_lifecycle import ProjectLifecycleManager
from nexus_api.services.proposal_lifecycle import ProposalLifecycleManager
from nexus_api.settings import Settings


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def _require_service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is not configured - set DATABASE_URL",
        )
    return service


def get_project_manager(request: Request) -> ProjectLifecycleManager:
    """Project lifecycle manager (503 when no database is configured)."""
    return _require_service(request, "project_manager")


def get_proposal_manager(request: Request) -> ProposalLifecycleManager:
    """Proposal lifecycle manager (503 when no database is configured)."""
    return _require_service(request, "proposal_manager")


def get_notification_service(request: Request) -> NotificationService:
    return _require_service(request, "notification_service")


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


async def get_principal(
    x_user_id: Optional[str] = Header(
        default=None,
        alias="X-User-Id",
        description="<small>*Authenticated user id, set by the API gateway*</small>",
    ),
    x_user_email: Optional[str] = Header(
        default=None,
        alias="X-User-Email",
        description="<small>*Authenticated user email, set by the API gateway*</small>",
    ),
    x_user_roles: Optional[str] = Header(
        default=None,
        alias="X-User-Roles",
        description="<small>*Comma separated roles: ADMIN, CLIENT, FREELANCER*</small>",
    ),
) -> Principal:
    """
    Resolve the caller from the identity headers forwarded by the gateway.

    Parameters
    ----------
    x_user_id : str
        Numeric user id from the X-User-Id header
    x_user_email : str, optional
        Email from the X-User-Email header
    x_user_roles : str, optional
        Roles from the X-User-Roles header

    Returns
    -------
    Principal
        The authenticated caller

    Raises
    ------
    HTTPException
        401 if X-User-Id is missing or not a positive integer
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )

    try:
        return Principal.from_headers(x_user_id, email=x_user_email, roles=x_user_roles)
    except ValueError:
        logger.warning("Rejected request with malformed X-User-Id", x_user_id=x_user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header must be a positive integer",
        )
