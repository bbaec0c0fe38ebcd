from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from restauri.core.database import get_db
from restauri.core.dependencies import get_current_admin, get_team_service
from restauri.schemas.content import (
    ListResponse, TeamMemberCreate, TeamMemberResponse, TeamMemberUpdate
)
from restauri.services.content import TeamService

router = APIRouter()

@router.get("/", response_model=ListResponse[TeamMemberResponse])
async def list_team_members(
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    team_service: TeamService = Depends(get_team_service)
):
    """Get all team members"""
    members = await team_service.find_all(db, limit=limit, offset=offset)
    return ListResponse[TeamMemberResponse](data=members)

@router.get("/{member_id}", response_model=TeamMemberResponse)
async def get_team_member(
    member_id: int,
    db: Session = Depends(get_db),
    team_service: TeamService = Depends(get_team_service)
):
    return await team_service.find_by_id(db, member_id)

@router.post("/", response_model=TeamMemberResponse, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(get_current_admin)])
async def create_team_member(
    member_in: TeamMemberCreate,
    db: Session = Depends(get_db),
    team_service: TeamService = Depends(get_team_service)
):
    """Create a new team member"""
    return await team_service.create(db, member_in)

@router.put("/{member_id}", response_model=TeamMemberResponse, dependencies=[Depends(get_current_admin)])
async def update_team_member(
    member_id: int,
    member_update: TeamMemberUpdate,
    db: Session = Depends(get_db),
    team_service: TeamService = Depends(get_team_service)
):
    """Update team member fields that are present in the body"""
    return await team_service.update(db, member_id, member_update)

@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(get_current_admin)])
async def delete_team_member(
    member_id: int,
    db: Session = Depends(get_db),
    team_service: TeamService = Depends(get_team_service)
):
    await team_service.delete(db, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
