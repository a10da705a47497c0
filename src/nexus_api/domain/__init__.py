"""
Domain Module

Status enums and the plain data records returned by the repositories.
"""

from nexus_api.domain.enums import EventType
from nexus_api.domain.enums import NotificationType
from nexus_api.domain.enums import ProjectStatus
from nexus_api.domain.enums import ProposalStatus
from nexus_api.domain.enums import Role
from nexus_api.domain.models import Notification
from nexus_api.domain.models import Project
from nexus_api.domain.models import Proposal

__all__ = [
    "EventType",
    "NotificationType",
    "ProjectStatus",
    "ProposalStatus",
    "Role",
    "Notification",
    "Project",
    "Proposal",
]
