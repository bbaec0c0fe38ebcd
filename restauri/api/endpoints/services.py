from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from restauri.core.database import get_db
from restauri.core.dependencies import get_current_admin, get_service_manager
from restauri.schemas.content import (
    FeaturesUpdate, ImageOrderUpdate, ListResponse, ServiceCreate, ServiceResponse, ServiceUpdate
)
from restauri.services.content import ServiceManager

router = APIRouter()

@router.get("/", response_model=ListResponse[ServiceResponse])
async def list_services(
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    offset: int = Query(0, ge=0),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    service_manager: ServiceManager = Depends(get_service_manager)
):
    """Get all services"""
    services = await service_manager.find_all(db, limit=limit, offset=offset, category=category)
    return ListResponse[ServiceResponse](data=services)

@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: int,
    db: Session = Depends(get_db),
    service_manager: ServiceManager = Depends(get_service_manager)
):
    return await service_manager.find_by_id(db, service_id)

@router.post("/", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(get_current_admin)])
async def create_service(
    service_in: ServiceCreate,
    db: Session = Depends(get_db),
    service_manager: ServiceManager = Depends(get_service_manager)
):
    return await service_manager.create(db, service_in)

@router.put("/{service_id}", response_model=ServiceResponse, dependencies=[Depends(get_current_admin)])
async def update_service(
    service_id: int,
    service_update: ServiceUpdate,
    db: Session = Depends(get_db),
    service_manager: ServiceManager = Depends(get_service_manager)
):
    return await service_manager.update(db, service_id, service_update)

@router.put("/{service_id}/image-order", response_model=ServiceResponse, dependencies=[Depends(get_current_admin)])
async def update_service_image_order(
    service_id: int,
    order_update: ImageOrderUpdate,
    db: Session = Depends(get_db),
    service_manager: ServiceManager = Depends(get_service_manager)
):
    return await service_manager.update_image_order(db, service_id, order_update.image_order)

@router.put("/{service_id}/features", response_model=ServiceResponse, dependencies=[Depends(get_current_admin)])
async def update_service_features(
    service_id: int,
    features_update: FeaturesUpdate,
    db: Session = Depends(get_db),
    service_manager: ServiceManager = Depends(get_service_manager)
):
    return await service_manager.update_features(db, service_id, features_update.features)

@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(get_current_admin)])
async def delete_service(
    service_id: int,
    db: Session = Depends(get_db),
    service_manager: ServiceManager = Depends(get_service_manager)
):
    await service_manager.delete(db, service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
