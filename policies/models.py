"""
policies/models.py -- Inputs and outputs of a policy run.

PolicyAnalysisContext is built once per run and only read by rules.
PolicyViolation is a plain value handed to whatever renders the report.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from core.graph import OrgGraph, RepoNode, TeamNode, UserNode


@dataclass(frozen=True)
class UserLink:
    github_login: str
    internal_alias: str


class UserLinks:
    """Directory of GitHub logins linked to a verified internal identity.

    Lookups are case-insensitive because GitHub logins are.
    """

    def __init__(self, links: Iterable[UserLink] = ()) -> None:
        self._by_login = {link.github_login.casefold(): link for link in links}

    def __len__(self) -> int:
        return len(self._by_login)

    def is_linked(self, login: str) -> bool:
        return login.casefold() in self._by_login


def load_user_links(path: Path) -> UserLinks:
    """Read a JSON array of {"githubLogin": ..., "internalAlias": ...} records."""
    rows = json.loads(Path(path).read_text(encoding="utf-8"))
    return UserLinks(UserLink(github_login=r["githubLogin"], internal_alias=r.get("internalAlias", "")) for r in rows)


@dataclass(frozen=True)
class PolicyAnalysisContext:
    graph: OrgGraph
    user_links: UserLinks
    governance_team_name: str = "microsoft"
    bots_team_name: str = "microsoft-bots"
    affiliation_name: str = "Microsoft"


@dataclass(frozen=True, eq=False)
class PolicyViolation:
    """A single finding.

    At least one of repo / team / user is set; reporters group by them.
    """

    code: str  # stable rule id, e.g. "PR09"
    title: str
    body: str
    repo: Optional[RepoNode] = None
    team: Optional[TeamNode] = None
    user: Optional[UserNode] = None

    @property
    def fingerprint(self) -> str:
        """Stable key for de-duplicating the same finding across runs."""
        parts = [self.code]
        if self.repo is not None:
            parts.append(f"repo:{self.repo.name}")
        if self.team is not None:
            parts.append(f"team:{self.team.id}")
        if self.user is not None:
            parts.append(f"user:{self.user.login}")
        return "|".join(parts)
