"""The authenticated caller as forwarded by the API gateway."""

from dataclasses import dataclass
from dataclasses import field
from typing import FrozenSet
from typing import Optional

from nexus_api.domain.enums import Role
from nexus_api.errors import PermissionDeniedError


@dataclass(frozen=True)
class Principal:
    """Caller identity: user id, optional email and the set of roles."""

    user_id: int
    email: Optional[str] = None
    roles: FrozenSet[Role] = field(default_factory=frozenset)

    @classmethod
    def from_headers(cls, user_id: str, email: Optional[str] = None, roles: Optional[str] = None) -> "Principal":
        """
        Build a principal from the gateway headers.

        Unknown role names are ignored. A ``ROLE_`` prefix is accepted.

        Raises:
            ValueError: user_id is not a positive integer
        """
        parsed_id = int(user_id.strip())
        if parsed_id <= 0:
            raise ValueError(f"Invalid user id: {user_id}")

        parsed_roles = set()
        for raw in (roles or "").split(","):
            name = raw.strip().upper().removeprefix("ROLE_")
            if name in Role.__members__:
                parsed_roles.add(Role[name])

        return cls(user_id=parsed_id, email=email or None, roles=frozenset(parsed_roles))

    def has_role(self, *roles: Role) -> bool:
        return any(role in self.roles for role in roles)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    def require_role(self, *roles: Role) -> None:
        """Raise PermissionDeniedError unless the caller is ADMIN or holds one of ``roles``."""
        if self.is_admin or self.has_role(*roles):
            return
        wanted = ", ".join(role.value for role in roles)
        raise PermissionDeniedError(f"This action requires one of the roles: {wanted}")

    def require_self_or_admin(self, user_id: int, action: str = "access this resource") -> None:
        if self.is_admin or self.user_id == user_id:
            return
        raise PermissionDeniedError(f"Not allowed to {action}")
