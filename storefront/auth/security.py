import enum
from dataclasses import dataclass, field
from typing import FrozenSet


class Role(str, enum.Enum):
    ADMIN = "ROLE_ADMIN"
    NORMAL = "ROLE_NORMAL"

    @classmethod
    def parse(cls, names) -> FrozenSet["Role"]:
        """Keep the role names this service knows about, ignore the rest."""
        known = {r.value: r for r in cls}
        return frozenset(known[n] for n in names if n in known)


@dataclass(frozen=True)
class SecurityContext:
    """Identity attached to a single request once its bearer token checks out."""
    user_id: str
    email: str
    roles: FrozenSet[Role] = field(default_factory=frozenset)
    token: str = field(default="", repr=False)

    def has_any_role(self, *roles: Role) -> bool:
        return any(r in self.roles for r in roles)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles
