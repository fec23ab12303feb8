"""
core/loader.py -- Builds a raw Snapshot from the GitHub API.

Phases run strictly in order, one entity at a time:

    1. members        owners (role=admin), then non-owners (role=member)
    2. teams          maintainers, all members, repo access per team
    3. repos          repo metadata, then direct collaborators per repo
    4. outside users  outside collaborators
    5. user details   name / company / email for every collected login

The quota guard runs before every remote call. Any remote failure propagates
unhandled; there is no retry beyond the rate-limit wait.

Merge-by-login: there is exactly one User per login. Only the members phase
sets is_member / is_owner (owner wins if a login shows up in both lists).
Later phases add a non-member entry for a login they have not seen yet and
never touch the flags of an existing entry. The details phase only fills
name, company and email.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from core.fetcher import GitHubClient
from core.models import Repo, Snapshot, Team, TeamAccess, User, UserAccess, permission_from_flags
from core.quota import QuotaGuard

logger = logging.getLogger("orgaudit.loader")


class ProgressReporter(Protocol):
    def report(self, text: str) -> None: ...


class LoggingProgressReporter:
    """Default reporter: one INFO log line per step."""

    def report(self, text: str) -> None:
        logger.info("%s", text)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # GitHub returns "2024-01-31T12:00:00Z"; fromisoformat needs an explicit offset before 3.11.
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _percentage(index: int, count: int) -> float:
    if count <= 0:
        return 1.0
    return (index + 1) / count


class SnapshotLoader:
    def __init__(
        self,
        client: GitHubClient,
        guard: QuotaGuard,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self.client = client
        self.guard = guard
        self.reporter = reporter or LoggingProgressReporter()
        self._users: dict[str, User] = {}

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def load(self, org_name: str) -> Snapshot:
        """Fetch every phase for org_name and return the raw (unresolved) snapshot."""
        start = datetime.now(timezone.utc)
        logger.info("Loading org data for %s from GitHub (start: %s)", org_name, start.isoformat())

        snapshot = Snapshot(name=org_name)
        self._users = {}

        self._load_members(snapshot)
        self._load_teams(snapshot)
        self._load_repos_and_collaborators(snapshot)
        self._load_outside_collaborators(snapshot)
        self._load_user_details(snapshot)

        snapshot.users = list(self._users.values())

        finish = datetime.now(timezone.utc)
        logger.info("Finished loading %s at %s. Took %s.", org_name, finish.isoformat(), finish - start)
        return snapshot

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _progress(self, task: str, item: Optional[str] = None, index: int = 0, count: int = 0) -> None:
        text = task if item is None else f"{task}: {item} {_percentage(index, count):.1%}"
        rate_limit = self.client.state.current
        if rate_limit is not None:
            text = f"{text}... (Remaining API quota: {rate_limit.remaining})"
        else:
            text = f"{text}..."
        self.reporter.report(text)

    def _call(self, method, *args: Any, **kwargs: Any) -> Any:
        self.guard.ensure_quota()
        return method(*args, **kwargs)

    def _ensure_user(self, login: str) -> User:
        user = self._users.get(login)
        if user is None:
            user = User(login=login, is_member=False, is_owner=False)
            self._users[login] = user
        return user

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _load_members(self, snapshot: Snapshot) -> None:
        self._progress("Loading owner list")
        owners = self._call(self.client.list_org_members, snapshot.name, role="admin")

        self._progress("Loading non-owner list")
        non_owners = self._call(self.client.list_org_members, snapshot.name, role="member")

        for record in owners:
            user = self._ensure_user(record["login"])
            user.is_member = True
            user.is_owner = True

        for record in non_owners:
            user = self._ensure_user(record["login"])
            user.is_member = True

    def _load_teams(self, snapshot: Snapshot) -> None:
        self._progress("Loading team list")
        teams = self._call(self.client.list_teams, snapshot.name)

        for i, record in enumerate(teams):
            self._progress("Loading team", record["name"], i, len(teams))
            parent = record.get("parent")
            team = Team(
                id=str(record["id"]),
                name=record["name"],
                parent_id=str(parent["id"]) if parent else None,
            )
            snapshot.teams.append(team)

            slug = record["slug"]
            maintainers = self._call(self.client.list_team_members, snapshot.name, slug, role="maintainer")
            team.maintainer_logins.extend(m["login"] for m in maintainers)

            members = self._call(self.client.list_team_members, snapshot.name, slug, role="all")
            team.member_logins.extend(m["login"] for m in members)

            repos = self._call(self.client.list_team_repos, snapshot.name, slug)
            for repo in repos:
                team.repos.append(
                    TeamAccess(repo_name=repo["name"], permission=permission_from_flags(repo.get("permissions")))
                )

    def _load_repos_and_collaborators(self, snapshot: Snapshot) -> None:
        self._progress("Loading repo list")
        repos = self._call(self.client.list_org_repos, snapshot.name)

        for i, record in enumerate(repos):
            self._progress("Loading repo", record.get("full_name", record["name"]), i, len(repos))
            repo = Repo(
                name=record["name"],
                is_private=bool(record.get("private")),
                last_push=_parse_timestamp(record.get("pushed_at")) or _parse_timestamp(record["created_at"]),
            )
            snapshot.repos.append(repo)

            owner = record.get("owner", {}).get("login", snapshot.name)
            collaborators = self._call(self.client.list_repo_collaborators, owner, repo.name)
            for collaborator in collaborators:
                login = collaborator["login"]
                self._ensure_user(login)
                snapshot.collaborators.append(
                    UserAccess(
                        repo_name=repo.name,
                        user_login=login,
                        permission=permission_from_flags(collaborator.get("permissions")),
                    )
                )

    def _load_outside_collaborators(self, snapshot: Snapshot) -> None:
        self._progress("Loading outside collaborators")
        outside = self._call(self.client.list_outside_collaborators, snapshot.name)
        for record in outside:
            self._ensure_user(record["login"])

    def _load_user_details(self, snapshot: Snapshot) -> None:
        users = list(self._users.values())
        for i, user in enumerate(users):
            self._progress("Loading user details", user.login, i, len(users))
            details = self._call(self.client.get_user, user.login)
            user.name = details.get("name")
            user.company = details.get("company")
            user.email = details.get("email")
