from restauri.models.user import User
from restauri.models.team_member import TeamMember
from restauri.models.project import Project
from restauri.models.service import Service

__all__ = ["User", "TeamMember", "Project", "Service"]
