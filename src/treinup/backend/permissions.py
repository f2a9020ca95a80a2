"""Document permission strings.

Permissions follow an ``<action>(<scope>)`` grammar, for example
``read(team:abc)`` or ``update(team:abc:OWNER)``.
"""

import re
from enum import Enum

_PERMISSION_RE = re.compile(r"^(?P<action>[a-z]+)\((?P<scope>[^()]+)\)$")


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class Role:
    """Builders for permission scopes."""

    @staticmethod
    def team(team_id: str, role: str | None = None) -> str:
        if not team_id:
            raise ValueError("team_id is required")
        return f"team:{team_id}:{role}" if role else f"team:{team_id}"


class Permission:
    """Builders for permission strings."""

    @staticmethod
    def of(action: Action, scope: str) -> str:
        return f"{action.value}({scope})"

    @classmethod
    def read(cls, scope: str) -> str:
        return cls.of(Action.READ, scope)

    @classmethod
    def update(cls, scope: str) -> str:
        return cls.of(Action.UPDATE, scope)

    @classmethod
    def delete(cls, scope: str) -> str:
        return cls.of(Action.DELETE, scope)


def parse_permission(permission: str) -> tuple[Action, str]:
    """Split a permission string into its action and scope.

    Raises:
        ValueError: If the string does not follow the grammar
    """
    match = _PERMISSION_RE.match(permission)
    if not match:
        raise ValueError(f"Malformed permission: {permission!r}")
    return Action(match["action"]), match["scope"]


def profile_permissions(team_id: str) -> list[str]:
    """Permissions for a profile document.

    Team members can read it; trainers and owners can update it; only
    owners can delete it.
    """
    return [
        Permission.read(Role.team(team_id)),
        Permission.update(Role.team(team_id, "OWNER")),
        Permission.update(Role.team(team_id, "TRAINER")),
        Permission.delete(Role.team(team_id, "OWNER")),
    ]
