from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
import re

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from restauri.core.circuit_breaker import CircuitBreaker
from restauri.core.database import Base
from restauri.core.logger import get_logger
from restauri.models.project import Project
from restauri.models.service import Service
from restauri.models.team_member import TeamMember
from restauri.schemas.content import ImageOrderItem

logger = get_logger(__name__)

R = TypeVar("R")


class ContentService:
    """CRUD for one content model, with every query guarded by the db breaker.

    Queries run in the threadpool. Lookups return None instead of raising so
    that a missing row is reported as 404 without counting as a database
    failure.
    """

    model: Type[Base] = None
    label: str = "Item"

    def __init__(self, breaker: CircuitBreaker):
        self.breaker = breaker

    async def _guarded(self, fn: Callable[..., R], *args: Any) -> R:
        return await self.breaker.execute(lambda: run_in_threadpool(fn, *args))

    def _not_found(self, item_id: int) -> HTTPException:
        logger.warning(f'{self.label} {item_id} not found')
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{self.label} not found"
        )

    def sanitize_input(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Strip markup and control characters from string fields."""
        sanitized = {}
        for key, value in data.items():
            if isinstance(value, str):
                # Remove any HTML tags
                value = re.sub(r'<[^>]+>', '', value)
                # Remove any control characters, keeping newlines and tabs
                value = re.sub(r'[\x00-\x08\x0B-\x1F\x7F-\x9F]', '', value)
                value = value.strip()
            sanitized[key] = value
        return sanitized

    def _clean(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Sanitize request values; a value left empty by sanitizing is rejected."""
        values = self.sanitize_input(data)
        for key, value in values.items():
            if value == "" and data[key] != "":
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Field '{key}' must not be empty"
                )
        return values

    def order_by(self):
        return [self.model.id.asc()]

    # Synchronous bodies, executed inside the breaker

    def _list(self, db: Session, limit: int, offset: int, category: Optional[str]) -> List[Dict[str, Any]]:
        query = db.query(self.model)
        if category is not None and hasattr(self.model, "category"):
            query = query.filter(self.model.category == category)
        rows = query.order_by(*self.order_by()).offset(offset).limit(limit).all()
        return [row.to_dict() for row in rows]

    def _get(self, db: Session, item_id: int) -> Optional[Dict[str, Any]]:
        row = db.get(self.model, item_id)
        return row.to_dict() if row else None

    def _insert(self, db: Session, values: Dict[str, Any]) -> Dict[str, Any]:
        row = self.model(**values)
        try:
            db.add(row)
            db.commit()
            db.refresh(row)
        except Exception:
            db.rollback()
            raise
        return row.to_dict()

    def _patch(self, db: Session, item_id: int, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = db.get(self.model, item_id)
        if row is None:
            return None
        for field, value in values.items():
            setattr(row, field, value)
        try:
            db.commit()
            db.refresh(row)
        except Exception:
            db.rollback()
            raise
        return row.to_dict()

    def _remove(self, db: Session, item_id: int) -> bool:
        row = db.get(self.model, item_id)
        if row is None:
            return False
        try:
            db.delete(row)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return True

    # Public API

    async def find_all(
        self,
        db: Session,
        limit: int = 50,
        offset: int = 0,
        category: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        items = await self._guarded(self._list, db, limit, offset, category)
        logger.info(f'Found {len(items)} {self.model.__tablename__} rows')
        return items

    async def find_by_id(self, db: Session, item_id: int) -> Dict[str, Any]:
        item = await self._guarded(self._get, db, item_id)
        if item is None:
            raise self._not_found(item_id)
        return item

    async def create(self, db: Session, data: BaseModel) -> Dict[str, Any]:
        values = self._clean(data.model_dump(mode="json"))
        item = await self._guarded(self._insert, db, values)
        logger.info(f'Created {self.label.lower()} {item["id"]}')
        return item

    async def update(self, db: Session, item_id: int, data: BaseModel) -> Dict[str, Any]:
        # Explicit nulls are ignored; every content column is required
        values = self._clean(data.model_dump(mode="json", exclude_unset=True, exclude_none=True))
        if not values:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields to update"
            )
        item = await self._guarded(self._patch, db, item_id, values)
        if item is None:
            raise self._not_found(item_id)
        logger.info(f'Updated {self.label.lower()} {item_id}')
        return item

    async def delete(self, db: Session, item_id: int) -> None:
        deleted = await self._guarded(self._remove, db, item_id)
        if not deleted:
            raise self._not_found(item_id)
        logger.info(f'Deleted {self.label.lower()} {item_id}')


class ImageOrderMixin:
    """Persist the admin's drag-and-drop image ordering."""

    async def update_image_order(self, db: Session, item_id: int, image_order: List[ImageOrderItem]) -> Dict[str, Any]:
        # Stored sorted by position so readers can use the list as-is
        ordered = [item.model_dump() for item in sorted(image_order, key=lambda i: (i.order, i.id))]
        item = await self._guarded(self._patch, db, item_id, {"image_order": ordered})
        if item is None:
            raise self._not_found(item_id)
        logger.info(f'Updated image order of {self.label.lower()} {item_id} ({len(ordered)} images)')
        return item


class TeamService(ContentService):
    model = TeamMember
    label = "Team member"


class ProjectService(ImageOrderMixin, ContentService):
    model = Project
    label = "Project"

    def order_by(self):
        return [Project.year.desc(), Project.id.desc()]


class ServiceManager(ImageOrderMixin, ContentService):
    model = Service
    label = "Service"

    async def update_features(self, db: Session, item_id: int, features: List[str]) -> Dict[str, Any]:
        cleaned = [f for f in (self.sanitize_input({"f": f})["f"] for f in features) if f]
        item = await self._guarded(self._patch, db, item_id, {"features": cleaned})
        if item is None:
            raise self._not_found(item_id)
        return item
