from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from restauri.core.database import get_db
from restauri.core.dependencies import get_current_admin, get_project_service
from restauri.schemas.content import (
    ImageOrderUpdate, ListResponse, ProjectCreate, ProjectResponse, ProjectUpdate
)
from restauri.services.content import ProjectService

router = APIRouter()

@router.get("/", response_model=ListResponse[ProjectResponse])
async def list_projects(
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    offset: int = Query(0, ge=0),
    category: Optional[str] = Query(None, description="Only projects in this category"),
    db: Session = Depends(get_db),
    project_service: ProjectService = Depends(get_project_service)
):
    """Get projects, newest year first"""
    projects = await project_service.find_all(db, limit=limit, offset=offset, category=category)
    return ListResponse[ProjectResponse](data=projects)

@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    project_service: ProjectService = Depends(get_project_service)
):
    return await project_service.find_by_id(db, project_id)

@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(get_current_admin)])
async def create_project(
    project_in: ProjectCreate,
    db: Session = Depends(get_db),
    project_service: ProjectService = Depends(get_project_service)
):
    return await project_service.create(db, project_in)

@router.put("/{project_id}", response_model=ProjectResponse, dependencies=[Depends(get_current_admin)])
async def update_project(
    project_id: int,
    project_update: ProjectUpdate,
    db: Session = Depends(get_db),
    project_service: ProjectService = Depends(get_project_service)
):
    return await project_service.update(db, project_id, project_update)

@router.put("/{project_id}/image-order", response_model=ProjectResponse, dependencies=[Depends(get_current_admin)])
async def update_project_image_order(
    project_id: int,
    order_update: ImageOrderUpdate,
    db: Session = Depends(get_db),
    project_service: ProjectService = Depends(get_project_service)
):
    """Save the gallery order chosen in the admin panel"""
    return await project_service.update_image_order(db, project_id, order_update.image_order)

@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(get_current_admin)])
async def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    project_service: ProjectService = Depends(get_project_service)
):
    await project_service.delete(db, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
