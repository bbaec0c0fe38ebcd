from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from typing import Dict, Any

from restauri.core.database import Base


class TeamMember(Base):
    __tablename__ = "team"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    role = Column(String(255), nullable=False)
    bio = Column(Text, nullable=False)
    image = Column(String(500), nullable=False, default="")
    social_links = Column(JSON, nullable=False, default=list)  # [{"platform": ..., "url": ...}]
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert team member to dictionary for serialization."""
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'bio': self.bio,
            'image': self.image,
            'social_links': self.social_links or [],
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<TeamMember {self.id} {self.name}>'
