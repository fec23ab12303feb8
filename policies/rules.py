"""
policies/rules.py -- The governance rules and their registry.

Each rule is one PolicyRule subclass with a single generator method. Adding
a rule means writing the class and appending an instance to RULES; the
engine does not change.
"""

from abc import ABC, abstractmethod
from typing import Iterator

from core.models import Permission

from .models import PolicyAnalysisContext, PolicyViolation
from .predicates import (
    get_administrators,
    get_governance_team,
    get_owners,
    is_claiming_affiliation,
    is_repo_owned_by,
    is_team_owned_by,
    is_verified_user,
)


class PolicyRule(ABC):
    code: str = ""

    @abstractmethod
    def get_violations(self, context: PolicyAnalysisContext) -> Iterator[PolicyViolation]:
        """Yield zero or more violations. Must not mutate context or do I/O."""


class RepoNotOwnedByGovernanceTeam(PolicyRule):
    code = "PR01"

    def get_violations(self, context):
        governance = get_governance_team(context)
        # Without the team there is no notion of ownership to check against.
        if governance is None:
            return

        for repo in context.graph.repos:
            if not is_repo_owned_by(repo, governance):
                yield PolicyViolation(
                    self.code,
                    title=f"Repo '{repo.name}' is not owned by the {governance.name} team",
                    body=(
                        f"The repo {repo.name} does not grant access to the team {governance.name}. "
                        f"Add the {governance.name} team (or make sure the repo is meant to live elsewhere)."
                    ),
                    repo=repo,
                )


class UnverifiedRepoAdministrator(PolicyRule):
    code = "PR02"

    def get_violations(self, context):
        governance = get_governance_team(context)
        if governance is None:
            return

        for repo in context.graph.repos:
            if not is_repo_owned_by(repo, governance):
                continue
            for user in get_administrators(repo):
                if not is_verified_user(context, user):
                    yield PolicyViolation(
                        self.code,
                        title=f"Repo '{repo.name}' has an unverified administrator",
                        body=(
                            f"The user {user.login} is an administrator of {repo.name}, which is owned by "
                            f"{governance.name}, but is not linked to a verified identity. "
                            "Link the account or remove the admin permission."
                        ),
                        repo=repo,
                        user=user,
                    )


class UnverifiedGovernanceTeamMember(PolicyRule):
    code = "PR03"

    def get_violations(self, context):
        governance = get_governance_team(context)
        if governance is None:
            return

        for team in context.graph.teams:
            if not is_team_owned_by(team, governance):
                continue
            for user in team.members:
                if not is_verified_user(context, user):
                    yield PolicyViolation(
                        self.code,
                        title=f"Team '{team.name}' has an unverified member",
                        body=(
                            f"The user {user.login} is a member of {team.name}, which is nested under "
                            f"{governance.name}, but is not linked to a verified identity."
                        ),
                        team=team,
                        user=user,
                    )


class UnverifiedAffiliationClaim(PolicyRule):
    code = "PR04"

    def get_violations(self, context):
        for user in context.graph.users:
            if not user.is_member:
                continue
            if is_claiming_affiliation(user, context.affiliation_name) and not is_verified_user(context, user):
                yield PolicyViolation(
                    self.code,
                    title=f"User '{user.login}' claims to work for {context.affiliation_name} but isn't linked",
                    body=(
                        f"The profile of {user.login} mentions {context.affiliation_name} "
                        f"(company: {user.company!r}, email: {user.email!r}) but the account is not linked. "
                        "Ask the user to link their account."
                    ),
                    user=user,
                )


class OutsideCollaboratorWithWriteAccess(PolicyRule):
    code = "PR05"

    def get_violations(self, context):
        governance = get_governance_team(context)
        if governance is None:
            return

        for repo in context.graph.repos:
            if not is_repo_owned_by(repo, governance):
                continue
            for access in repo.users:
                if access.user.is_member or access.permission < Permission.PUSH:
                    continue
                yield PolicyViolation(
                    self.code,
                    title=f"Outside collaborator '{access.user.login}' can write to '{repo.name}'",
                    body=(
                        f"The outside collaborator {access.user.login} has {access.permission.name.lower()} "
                        f"access to {repo.name}. Outside collaborators should be limited to pull access."
                    ),
                    repo=repo,
                    user=access.user,
                )


class TooManyRepoAdministrators(PolicyRule):
    code = "PR06"
    threshold = 4

    def get_violations(self, context):
        for repo in context.graph.repos:
            admins = get_administrators(repo)
            if len(admins) > self.threshold:
                yield PolicyViolation(
                    self.code,
                    title=f"Repo '{repo.name}' has too many administrators",
                    body=(
                        f"The repo {repo.name} has {len(admins)} administrators. "
                        f"Reduce the number of administrators to {self.threshold} or less."
                    ),
                    repo=repo,
                )


class UnverifiedOwner(PolicyRule):
    code = "PR07"

    def get_violations(self, context):
        for user in get_owners(context.graph):
            if not is_verified_user(context, user):
                yield PolicyViolation(
                    self.code,
                    title=f"Owner '{user.login}' is not verified",
                    body=f"The organization owner {user.login} is not linked to a verified identity.",
                    user=user,
                )


class TeamWithoutMaintainers(PolicyRule):
    code = "PR08"

    def get_violations(self, context):
        for team in context.graph.teams:
            if not team.maintainers:
                yield PolicyViolation(
                    self.code,
                    title=f"Team '{team.name}' has no maintainers",
                    body=f"The team {team.name} has no maintainers. Promote at least one member to maintainer.",
                    team=team,
                )


class TooManyTeamMaintainers(PolicyRule):
    code = "PR09"
    threshold = 4

    def get_violations(self, context):
        for team in context.graph.teams:
            count = len(team.maintainers)
            if count > self.threshold:
                yield PolicyViolation(
                    self.code,
                    title=f"Team '{team.name}' has too many maintainers",
                    body=(
                        f"The team {team.name} has {count} maintainers. "
                        f"Reduce the number of maintainers to {self.threshold} or less."
                    ),
                    team=team,
                )


# Report order follows this list.
RULES: tuple[PolicyRule, ...] = (
    RepoNotOwnedByGovernanceTeam(),
    UnverifiedRepoAdministrator(),
    UnverifiedGovernanceTeamMember(),
    UnverifiedAffiliationClaim(),
    OutsideCollaboratorWithWriteAccess(),
    TooManyRepoAdministrators(),
    UnverifiedOwner(),
    TeamWithoutMaintainers(),
    TooManyTeamMaintainers(),
)
