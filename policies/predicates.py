"""
policies/predicates.py -- Pure helper checks shared by the rules.

None of these raise for missing data; the team lookups raise
AmbiguousLookupError when a well-known team name matches more than once,
since there is then no way to tell which one is meant.
"""

from typing import Optional

from core.graph import OrgGraph, RepoNode, TeamNode, UserNode
from core.models import Permission

from .models import PolicyAnalysisContext


def get_governance_team(context: PolicyAnalysisContext) -> Optional[TeamNode]:
    return context.graph.find_team_by_name(context.governance_team_name)


def get_bots_team(context: PolicyAnalysisContext) -> Optional[TeamNode]:
    return context.graph.find_team_by_name(context.bots_team_name)


def is_repo_owned_by(repo: RepoNode, team: Optional[TeamNode]) -> bool:
    """True if team has a direct access entry on repo."""
    if team is None:
        return False
    return any(access.team is team for access in repo.teams)


def is_team_owned_by(team: TeamNode, owner: Optional[TeamNode]) -> bool:
    """True if owner is team itself or one of its ancestors."""
    if owner is None:
        return False
    return any(t is owner for t in team.ancestors_and_self())


def is_repo_owned_by_governance(context: PolicyAnalysisContext, repo: RepoNode) -> bool:
    return is_repo_owned_by(repo, get_governance_team(context))


def is_team_owned_by_governance(context: PolicyAnalysisContext, team: TeamNode) -> bool:
    return is_team_owned_by(team, get_governance_team(context))


def is_claiming_affiliation(user: UserNode, org_name: str) -> bool:
    """Case-insensitive substring match of org_name in company or email.

    Deliberately loose: "Microsoftware Ltd" counts as claiming "Microsoft".
    """
    needle = org_name.casefold()
    company = user.company or ""
    email = user.email or ""
    return needle in company.casefold() or needle in email.casefold()


def is_verified_user(context: PolicyAnalysisContext, user: UserNode) -> bool:
    """Linked in the identity directory, or a member of the bots team."""
    if context.user_links.is_linked(user.login):
        return True
    bots = get_bots_team(context)
    return bots is not None and any(m is user for m in bots.members)


def get_administrators(repo: RepoNode) -> list[UserNode]:
    """Collaborators with admin permission, excluding org owners."""
    return [a.user for a in repo.users if a.permission == Permission.ADMIN and not a.user.is_owner]


def get_owners(graph: OrgGraph) -> list[UserNode]:
    return [u for u in graph.users if u.is_owner]
