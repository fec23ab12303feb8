"""
cache/store.py -- JSON file cache for organization snapshots.

One pretty-printed file per organization, keyed by org name. Only the flat
snapshot is written; callers must run core.graph.resolve() on whatever
load() returns. Enums are stored by name and datetimes as ISO 8601 so the
file stays readable if Permission's internal values ever change.

A file is treated as absent when it is missing, its version differs from
CURRENT_VERSION, its stored name differs from the requested org, or it
cannot be decoded.

Usage:
    cache = SnapshotCache()
    snapshot = cache.load("dotnet")      # Snapshot or None
    cache.save(snapshot)
"""

import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from core.models import CURRENT_VERSION, Permission, Repo, Snapshot, Team, TeamAccess, User, UserAccess

logger = logging.getLogger("orgaudit.cache")


# ---------------------------------------------------------------------------
# Mappers
# ---------------------------------------------------------------------------


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "version": snapshot.version,
        "name": snapshot.name,
        "users": [
            {
                "login": u.login,
                "is_member": u.is_member,
                "is_owner": u.is_owner,
                "name": u.name,
                "company": u.company,
                "email": u.email,
            }
            for u in snapshot.users
        ],
        "teams": [
            {
                "id": t.id,
                "parent_id": t.parent_id,
                "name": t.name,
                "maintainer_logins": list(t.maintainer_logins),
                "member_logins": list(t.member_logins),
                "repos": [{"repo_name": a.repo_name, "permission": a.permission} for a in t.repos],
            }
            for t in snapshot.teams
        ],
        "repos": [{"name": r.name, "is_private": r.is_private, "last_push": r.last_push} for r in snapshot.repos],
        "collaborators": [
            {"repo_name": a.repo_name, "user_login": a.user_login, "permission": a.permission}
            for a in snapshot.collaborators
        ],
    }


def _dict_to_user(row: dict[str, Any]) -> User:
    return User(
        login=row["login"],
        is_member=bool(row.get("is_member", False)),
        is_owner=bool(row.get("is_owner", False)),
        name=row.get("name"),
        company=row.get("company"),
        email=row.get("email"),
    )


def _dict_to_team(row: dict[str, Any]) -> Team:
    return Team(
        id=row["id"],
        parent_id=row.get("parent_id"),
        name=row["name"],
        maintainer_logins=list(row.get("maintainer_logins", [])),
        member_logins=list(row.get("member_logins", [])),
        repos=[TeamAccess(repo_name=a["repo_name"], permission=Permission[a["permission"]]) for a in row.get("repos", [])],
    )


def _dict_to_repo(row: dict[str, Any]) -> Repo:
    return Repo(
        name=row["name"],
        is_private=bool(row["is_private"]),
        last_push=datetime.fromisoformat(row["last_push"]),
    )


def _dict_to_user_access(row: dict[str, Any]) -> UserAccess:
    return UserAccess(
        repo_name=row["repo_name"],
        user_login=row["user_login"],
        permission=Permission[row["permission"]],
    )


def _dict_to_snapshot(data: dict[str, Any]) -> Snapshot:
    return Snapshot(
        version=data["version"],
        name=data["name"],
        users=[_dict_to_user(r) for r in data.get("users", [])],
        teams=[_dict_to_team(r) for r in data.get("teams", [])],
        repos=[_dict_to_repo(r) for r in data.get("repos", [])],
        collaborators=[_dict_to_user_access(r) for r in data.get("collaborators", [])],
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SnapshotCache:
    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)

    def path_for(self, org_name: str) -> Path:
        return self.cache_dir / f"{org_name}.json"

    def load(self, org_name: str) -> Optional[Snapshot]:
        """Return the cached snapshot for org_name, or None on any kind of miss."""
        path = self.path_for(org_name)
        if not path.is_file():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", path, e)
            return None

        if not isinstance(data, dict) or type(data.get("version")) is not int or data["version"] != CURRENT_VERSION:
            logger.info("Cache file %s has an unsupported version, ignoring", path)
            return None

        if data.get("name") != org_name:
            logger.info("Cache file %s belongs to %r, not %r, ignoring", path, data.get("name"), org_name)
            return None

        try:
            return _dict_to_snapshot(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed cache file %s: %s", path, e)
            return None

    def save(self, snapshot: Snapshot) -> Path:
        """Write snapshot to its org's file, replacing any previous content."""
        path = self.path_for(snapshot.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(_snapshot_to_dict(snapshot), indent=2, default=_encode), encoding="utf-8")
        logger.info("Cached snapshot for %s at %s", snapshot.name, path)
        return path

    def clear(self, org_name: str) -> bool:
        """Delete the cached file for org_name. Returns True if one was removed."""
        path = self.path_for(org_name)
        if not path.is_file():
            return False
        path.unlink()
        return True
