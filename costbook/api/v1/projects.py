"""
Project and Client API Routes

Projects:
- POST / - Create project
- GET / - List projects
- GET /{project_id} - Get project
- GET /{project_id}/variance - Estimated vs quoted vs actual
- GET /{project_id}/margin-warnings - Data-quality warnings

Clients:
- POST / - Create client
- GET / - List active clients
"""
from fastapi import APIRouter, HTTPException, status, Query
from typing import Optional, List

from costbook.schemas.project import (
    ClientCreateSchema,
    ClientResponseSchema,
    ProjectCreateSchema,
    ProjectResponseSchema,
    VarianceReportSchema,
    MarginWarningsSchema,
)
from costbook.services.project_service import get_project_service

router = APIRouter()
client_router = APIRouter()


@router.post(
    "/",
    response_model=ProjectResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create project"
)
async def create_project(data: ProjectCreateSchema):
    service = get_project_service()
    return await service.create_project(data)


@router.get("/", response_model=List[ProjectResponseSchema], summary="List projects")
async def list_projects(client_id: Optional[str] = Query(None)):
    service = get_project_service()
    return await service.list_projects(client_id)


@router.get("/{project_id}", response_model=ProjectResponseSchema, summary="Get project by ID")
async def get_project(project_id: str):
    service = get_project_service()
    project = await service.get_project(project_id)

    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project with ID {project_id} not found"
        )

    return project


@router.get(
    "/{project_id}/variance",
    response_model=VarianceReportSchema,
    summary="Variance analysis",
    description="Per-category estimated, quoted and actual amounts with variance."
)
async def get_variance(project_id: str):
    service = get_project_service()
    return await service.get_variance_report(project_id)


@router.get(
    "/{project_id}/margin-warnings",
    response_model=MarginWarningsSchema,
    summary="Margin warnings"
)
async def get_margin_warnings(project_id: str):
    service = get_project_service()
    return await service.get_margin_warnings(project_id)


@client_router.post(
    "/",
    response_model=ClientResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create client"
)
async def create_client(data: ClientCreateSchema):
    service = get_project_service()
    return await service.create_client(data)


@client_router.get("/", response_model=List[ClientResponseSchema], summary="List clients")
async def list_clients():
    service = get_project_service()
    return await service.list_clients()
