from datetime import datetime
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field, HttpUrl, field_validator

T = TypeVar('T')


class ListResponse(BaseModel, Generic[T]):
    """Envelope for public collection endpoints."""
    success: bool = True
    data: List[T] = Field(..., description="List of items")
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class SocialLink(BaseModel):
    platform: str = Field(..., min_length=1, max_length=50)
    url: HttpUrl


class ImageOrderItem(BaseModel):
    id: str = Field(..., min_length=1, description="Image identifier")
    order: int = Field(..., ge=0, description="Position of the image, 0 first")


class ImageOrderUpdate(BaseModel):
    image_order: List[ImageOrderItem] = Field(..., alias="imageOrder")

    model_config = {"populate_by_name": True}

    @field_validator('image_order')
    @classmethod
    def unique_image_ids(cls, v):
        ids = [item.id for item in v]
        if len(ids) != len(set(ids)):
            raise ValueError('Image ids must be unique')
        return v


class FeaturesUpdate(BaseModel):
    features: List[str] = Field(..., description="Feature bullet points")


# Team

class TeamMemberCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Name is required")
    role: str = Field(..., min_length=1, max_length=255, description="Role is required")
    bio: str = Field(..., min_length=1, description="Bio is required")
    image: str = Field("", max_length=500, description="Public image path")
    social_links: List[SocialLink] = Field(default_factory=list)


class TeamMemberUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[str] = Field(None, min_length=1, max_length=255)
    bio: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = Field(None, max_length=500)
    social_links: Optional[List[SocialLink]] = None


class SocialLinkOut(BaseModel):
    platform: str
    url: str


class TeamMemberResponse(BaseModel):
    id: int
    name: str
    role: str
    bio: str
    image: str
    social_links: List[SocialLinkOut]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# Projects

class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    image: str = Field("", max_length=500)
    year: int = Field(..., ge=1800, le=2100)
    location: str = Field(..., min_length=1, max_length=255)


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image: Optional[str] = Field(None, max_length=500)
    year: Optional[int] = Field(None, ge=1800, le=2100)
    location: Optional[str] = Field(None, min_length=1, max_length=255)


class ProjectResponse(BaseModel):
    id: int
    title: str
    description: str
    category: str
    image: str
    year: int
    location: str
    image_order: List[ImageOrderItem]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# Services

class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    image: str = Field("", max_length=500)
    features: List[str] = Field(default_factory=list)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image: Optional[str] = Field(None, max_length=500)
    features: Optional[List[str]] = None


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: str
    image: str
    category: str
    features: List[str]
    image_order: List[ImageOrderItem]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
