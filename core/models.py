"""
core/models.py -- Flat snapshot dataclasses for one organization.

These records are exactly what the cache file stores: identifiers only
(logins, team ids, repo names), no object references. core/graph.py turns
them into a navigable graph.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Bump whenever the persisted layout changes. Cached files with any other
# version are treated as a cache miss.
CURRENT_VERSION = 1


class Permission(Enum):
    PULL = 1
    PUSH = 2
    ADMIN = 3

    def __lt__(self, other: "Permission") -> bool:
        if not isinstance(other, Permission):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other: "Permission") -> bool:
        if not isinstance(other, Permission):
            return NotImplemented
        return self.value <= other.value

    def __gt__(self, other: "Permission") -> bool:
        if not isinstance(other, Permission):
            return NotImplemented
        return self.value > other.value

    def __ge__(self, other: "Permission") -> bool:
        if not isinstance(other, Permission):
            return NotImplemented
        return self.value >= other.value


def permission_from_flags(flags: Optional[Mapping[str, Any]]) -> Permission:
    """Map a GitHub ``permissions`` object to a single level.

    Admin wins over push, push wins over pull. Missing flags count as false.
    """
    flags = flags or {}
    if flags.get("admin"):
        return Permission.ADMIN
    if flags.get("push"):
        return Permission.PUSH
    return Permission.PULL


@dataclass
class User:
    login: str
    is_member: bool = False
    is_owner: bool = False
    # Filled by the user-details phase; None until then.
    name: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None


@dataclass
class TeamAccess:
    repo_name: str
    permission: Permission


@dataclass
class Team:
    id: str
    name: str
    parent_id: Optional[str] = None
    maintainer_logins: list[str] = field(default_factory=list)
    member_logins: list[str] = field(default_factory=list)
    repos: list[TeamAccess] = field(default_factory=list)


@dataclass
class Repo:
    name: str
    is_private: bool
    last_push: datetime


@dataclass
class UserAccess:
    repo_name: str
    user_login: str
    permission: Permission


@dataclass
class Snapshot:
    """Point-in-time state of one organization.

    Created empty by the loader, filled phase by phase, then resolved.
    Rules only ever see the resolved graph, never this object directly.
    """

    name: str
    version: int = CURRENT_VERSION
    users: list[User] = field(default_factory=list)
    teams: list[Team] = field(default_factory=list)
    repos: list[Repo] = field(default_factory=list)
    collaborators: list[UserAccess] = field(default_factory=list)
