"""
core/graph.py -- Resolves a flat Snapshot into a cross-referenced graph.

The snapshot stores identifiers only (so the cache file has no cycles).
resolve() builds fresh node objects with direct references in both
directions:

    TeamNode.parent / children / maintainers / members / repos
    RepoNode.teams / users
    UserNode.teams / repos

resolve() never mutates the snapshot and can be called any number of times;
each call returns a new, independent graph. It fails loudly on dangling keys
and cyclic parent chains instead of dropping data.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional

from core.errors import AmbiguousLookupError, DanglingReferenceError, GraphIntegrityError, TeamCycleError
from core.models import Permission, Repo, Snapshot, Team, User


@dataclass(eq=False)
class UserNode:
    record: User
    teams: list["TeamNode"] = field(default_factory=list)
    repos: list["UserAccessEdge"] = field(default_factory=list)

    @property
    def login(self) -> str:
        return self.record.login

    @property
    def is_member(self) -> bool:
        return self.record.is_member

    @property
    def is_owner(self) -> bool:
        return self.record.is_owner

    @property
    def name(self) -> Optional[str]:
        return self.record.name

    @property
    def company(self) -> Optional[str]:
        return self.record.company

    @property
    def email(self) -> Optional[str]:
        return self.record.email

    def __repr__(self) -> str:
        return f"UserNode({self.login!r})"


@dataclass(eq=False)
class TeamNode:
    record: Team
    parent: Optional["TeamNode"] = None
    children: list["TeamNode"] = field(default_factory=list)
    maintainers: list[UserNode] = field(default_factory=list)
    members: list[UserNode] = field(default_factory=list)
    repos: list["TeamAccessEdge"] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    def ancestors_and_self(self) -> Iterator["TeamNode"]:
        """Yield this team, then its parent, grandparent, ... up to the root.

        resolve() has already rejected cycles; the visited set keeps this
        bounded even for a graph assembled by hand.
        """
        seen: list[str] = []
        team: Optional[TeamNode] = self
        while team is not None:
            if team.id in seen:
                raise TeamCycleError(seen + [team.id])
            seen.append(team.id)
            yield team
            team = team.parent

    def __repr__(self) -> str:
        return f"TeamNode({self.id!r}, {self.name!r})"


@dataclass(eq=False)
class RepoNode:
    record: Repo
    teams: list["TeamAccessEdge"] = field(default_factory=list)
    users: list["UserAccessEdge"] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def is_private(self) -> bool:
        return self.record.is_private

    @property
    def last_push(self) -> datetime:
        return self.record.last_push

    def __repr__(self) -> str:
        return f"RepoNode({self.name!r})"


@dataclass(eq=False)
class TeamAccessEdge:
    team: TeamNode
    repo: RepoNode
    permission: Permission


@dataclass(eq=False)
class UserAccessEdge:
    user: UserNode
    repo: RepoNode
    permission: Permission


class OrgGraph:
    """Read-only, resolved view of one Snapshot."""

    def __init__(
        self,
        snapshot: Snapshot,
        users: dict[str, UserNode],
        teams: dict[str, TeamNode],
        repos: dict[str, RepoNode],
        collaborators: list[UserAccessEdge],
    ) -> None:
        self.snapshot = snapshot
        self._users = users
        self._teams = teams
        self._repos = repos
        self.collaborators = tuple(collaborators)

    @property
    def name(self) -> str:
        return self.snapshot.name

    @property
    def version(self) -> int:
        return self.snapshot.version

    @property
    def users(self) -> tuple[UserNode, ...]:
        return tuple(self._users.values())

    @property
    def teams(self) -> tuple[TeamNode, ...]:
        return tuple(self._teams.values())

    @property
    def repos(self) -> tuple[RepoNode, ...]:
        return tuple(self._repos.values())

    def user(self, login: str) -> Optional[UserNode]:
        return self._users.get(login)

    def team(self, team_id: str) -> Optional[TeamNode]:
        return self._teams.get(team_id)

    def repo(self, name: str) -> Optional[RepoNode]:
        return self._repos.get(name)

    def find_team_by_name(self, name: str) -> Optional[TeamNode]:
        """Case-insensitive single-or-none lookup.

        Raises AmbiguousLookupError if more than one team matches.
        """
        wanted = name.casefold()
        matches = [t for t in self._teams.values() if t.name.casefold() == wanted]
        if len(matches) > 1:
            raise AmbiguousLookupError("team", name, len(matches))
        return matches[0] if matches else None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _index(items, key, kind: str) -> dict:
    out: dict = {}
    for item in items:
        k = key(item)
        if k in out:
            raise GraphIntegrityError(f"Duplicate {kind} {k!r} in snapshot")
        out[k] = item
    return out


def _lookup(index: dict, kind: str, key: str, referenced_by: str):
    node = index.get(key)
    if node is None:
        raise DanglingReferenceError(kind, key, referenced_by)
    return node


def _check_acyclic(teams: dict[str, TeamNode]) -> None:
    # Each team is walked at most once across all chains.
    done: set[str] = set()
    for start in teams.values():
        path: list[str] = []
        on_path: set[str] = set()
        team: Optional[TeamNode] = start
        while team is not None and team.id not in done:
            if team.id in on_path:
                cycle_start = path.index(team.id)
                raise TeamCycleError(path[cycle_start:] + [team.id])
            path.append(team.id)
            on_path.add(team.id)
            team = team.parent
        done.update(path)


def resolve(snapshot: Snapshot) -> OrgGraph:
    """Build an OrgGraph from a flat snapshot.

    Raises:
        DanglingReferenceError: a login, team id or repo name is referenced but absent.
        TeamCycleError:         the parent chain of some team loops.
        GraphIntegrityError:    duplicate keys in the snapshot.
    """
    users = {login: UserNode(record=u) for login, u in _index(snapshot.users, lambda u: u.login, "user").items()}
    teams = {tid: TeamNode(record=t) for tid, t in _index(snapshot.teams, lambda t: t.id, "team").items()}
    repos = {name: RepoNode(record=r) for name, r in _index(snapshot.repos, lambda r: r.name, "repo").items()}

    for team in teams.values():
        owner = f"team {team.name!r}"
        if team.record.parent_id is not None:
            team.parent = _lookup(teams, "team", team.record.parent_id, owner)
            team.parent.children.append(team)

        for login in team.record.member_logins:
            user = _lookup(users, "user", login, owner)
            team.members.append(user)
            user.teams.append(team)

        # GitHub lists maintainers under role=all as well; this only matters
        # for hand-built or partially fetched snapshots.
        for login in team.record.maintainer_logins:
            user = _lookup(users, "user", login, owner)
            team.maintainers.append(user)
            if not any(t is team for t in user.teams):
                user.teams.append(team)

        for access in team.record.repos:
            repo = _lookup(repos, "repo", access.repo_name, owner)
            edge = TeamAccessEdge(team=team, repo=repo, permission=access.permission)
            team.repos.append(edge)
            repo.teams.append(edge)

    _check_acyclic(teams)

    collaborators: list[UserAccessEdge] = []
    for access in snapshot.collaborators:
        owner = f"collaborator record for {access.user_login!r}"
        repo = _lookup(repos, "repo", access.repo_name, owner)
        user = _lookup(users, "user", access.user_login, owner)
        edge = UserAccessEdge(user=user, repo=repo, permission=access.permission)
        repo.users.append(edge)
        user.repos.append(edge)
        collaborators.append(edge)

    return OrgGraph(snapshot, users, teams, repos, collaborators)
