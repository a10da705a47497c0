"""
Project API Routes

REST API endpoints for posting projects and driving their lifecycle.
"""

from typing import List
from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import Response
from fastapi import status

from nexus_api.auth.principal import Principal
from nexus_api.dependencies import get_principal
from nexus_api.dependencies import get_project_manager
from nexus_api.domain.enums import ProjectStatus
from nexus_api.schemas.schemas import ProjectCreateRequest
from nexus_api.schemas.schemas import ProjectResponse
from nexus_api.schemas.schemas import ProjectUpdateRequest
from nexus_api.services.project_lifecycle import ProjectLifecycleManager

ROUTER_PROJECTS = APIRouter(tags=["Projects"], prefix="/projects")


# create (Crud)
@ROUTER_PROJECTS.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a new project",
    responses={
        201: {"description": "Project created with status OPEN"},
        403: {"description": "Caller is not a client"},
        422: {"description": "Invalid budget range or deadline"},
    },
)
async def create_project(
    body: ProjectCreateRequest,
    principal: Principal = Depends(get_principal),
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    """Post a project owned by the caller."""
    return await manager.create_project(principal, body)


# read (cRud)
@ROUTER_PROJECTS.get("", response_model=List[ProjectResponse], summary="Search projects")
async def list_projects(
    keyword: Optional[str] = Query(default=None, description="Matches title or description"),
    status_filter: Optional[ProjectStatus] = Query(default=None, alias="status"),
    category: Optional[str] = Query(default=None),
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    return await manager.list_projects(keyword=keyword, status=status_filter, category=category)


@ROUTER_PROJECTS.get("/client/{client_id}", response_model=List[ProjectResponse], summary="List a client's projects")
async def list_client_projects(
    client_id: int,
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    return await manager.list_client_projects(client_id)


@ROUTER_PROJECTS.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get a project",
    responses={404: {"description": "Project not found"}},
)
async def get_project(
    project_id: int,
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    return await manager.get_project(project_id)


# update (crUd)
@ROUTER_PROJECTS.put(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update an open project",
    responses={
        403: {"description": "Caller does not own the project"},
        404: {"description": "Project not found"},
        409: {"description": "Project is no longer OPEN"},
    },
)
async def update_project(
    project_id: int,
    body: ProjectUpdateRequest,
    principal: Principal = Depends(get_principal),
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    return await manager.update_project(principal, project_id, body)


@ROUTER_PROJECTS.put(
    "/{project_id}/assign/{freelancer_id}",
    response_model=ProjectResponse,
    summary="Assign a freelancer directly",
    responses={
        404: {"description": "Project not found"},
        409: {"description": "Project already assigned to another freelancer"},
    },
)
async def assign_freelancer(
    project_id: int,
    freelancer_id: int,
    principal: Principal = Depends(get_principal),
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    """Assign a freelancer without going through a proposal (owner or admin)."""
    project = await manager.get_project(project_id)
    principal.require_self_or_admin(project.client_id, "assign a freelancer to this project")
    return await manager.assign_freelancer(project_id, freelancer_id)


@ROUTER_PROJECTS.put("/{project_id}/complete", response_model=ProjectResponse, summary="Complete a project")
async def complete_project(
    project_id: int,
    principal: Principal = Depends(get_principal),
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    return await manager.complete_project(principal, project_id)


@ROUTER_PROJECTS.put(
    "/{project_id}/cancel",
    response_model=ProjectResponse,
    summary="Cancel an open project",
    description="Cancels the project and rejects every pending proposal on it.",
)
async def cancel_project(
    project_id: int,
    principal: Principal = Depends(get_principal),
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    return await manager.cancel_project(principal, project_id)


# delete (cruD)
@ROUTER_PROJECTS.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project",
    responses={409: {"description": "Project is in progress"}},
)
async def delete_project(
    project_id: int,
    principal: Principal = Depends(get_principal),
    manager: ProjectLifecycleManager = Depends(get_project_manager),
):
    await manager.delete_project(principal, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
