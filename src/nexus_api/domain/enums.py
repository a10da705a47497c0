"""
Domain Enums

All enum types used by the project service.
Values must match exactly with database constraints (schema.sql).
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Lifecycle Enums
# ════════════════════════════════════════════════════════════════════════════


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    OPEN = "OPEN"  # Accepting proposals
    IN_PROGRESS = "IN_PROGRESS"  # A proposal was accepted and a freelancer assigned
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ProposalStatus(str, Enum):
    """Proposal lifecycle status. ACCEPTED and REJECTED are terminal."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


# ════════════════════════════════════════════════════════════════════════════
# Identity Enums
# ════════════════════════════════════════════════════════════════════════════


class Role(str, Enum):
    """Realm roles forwarded by the gateway in X-User-Roles."""

    ADMIN = "ADMIN"
    CLIENT = "CLIENT"
    FREELANCER = "FREELANCER"


# ════════════════════════════════════════════════════════════════════════════
# Event and Notification Enums
# ════════════════════════════════════════════════════════════════════════════


class EventType(str, Enum):
    """Domain event topics published to the broker."""

    PROJECT_CREATED = "project.created"
    PROJECT_UPDATED = "project.updated"
    PROJECT_CANCELLED = "project.cancelled"
    PROPOSAL_SUBMITTED = "proposal.submitted"
    PROPOSAL_ACCEPTED = "proposal.accepted"
    PROPOSAL_REJECTED = "proposal.rejected"

    @property
    def entity(self) -> str:
        """Entity prefix of the topic ("project" or "proposal")."""
        return self.value.split(".", 1)[0]


class NotificationType(str, Enum):
    """In-app notification types."""

    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    PROJECT_CANCELLED = "PROJECT_CANCELLED"
    PROPOSAL_SUBMITTED = "PROPOSAL_SUBMITTED"
    PROPOSAL_ACCEPTED = "PROPOSAL_ACCEPTED"
    PROPOSAL_REJECTED = "PROPOSAL_REJECTED"
