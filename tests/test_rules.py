"""Unit tests for policies/ -- predicates, rules and the engine.

Built on the sample_snapshot fixture (see conftest.py). Identity links:
alice and bob are linked, dave-bot is verified through the bots team.
"""

import copy

import pytest

from core.errors import AmbiguousLookupError
from core.graph import resolve
from core.models import Permission, Team, User, UserAccess
from policies.engine import evaluate, iter_violations
from policies.models import PolicyAnalysisContext, PolicyViolation, UserLink, UserLinks, load_user_links
from policies.predicates import (
    get_administrators,
    get_bots_team,
    get_governance_team,
    is_claiming_affiliation,
    is_repo_owned_by_governance,
    is_team_owned_by_governance,
    is_verified_user,
)
from policies.rules import (
    RULES,
    OutsideCollaboratorWithWriteAccess,
    PolicyRule,
    RepoNotOwnedByGovernanceTeam,
    TeamWithoutMaintainers,
    TooManyRepoAdministrators,
    TooManyTeamMaintainers,
    UnverifiedAffiliationClaim,
    UnverifiedGovernanceTeamMember,
    UnverifiedOwner,
    UnverifiedRepoAdministrator,
)

LINKS = UserLinks([UserLink("alice", "alice-corp"), UserLink("BOB", "bob-corp")])


def _context(snapshot, links=LINKS):
    return PolicyAnalysisContext(graph=resolve(snapshot), user_links=links)


def _codes(violations):
    return [v.code for v in violations]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


class TestPredicates:
    def test_governance_and_bots_lookup(self, sample_snapshot):
        context = _context(sample_snapshot)
        assert get_governance_team(context).id == "1"
        assert get_bots_team(context).id == "3"

    def test_governance_team_absent(self, sample_snapshot):
        sample_snapshot.teams[0].name = "renamed"
        context = _context(sample_snapshot)
        assert get_governance_team(context) is None
        assert not is_repo_owned_by_governance(context, context.graph.repo("runtime"))

    def test_duplicate_governance_team_fails(self, sample_snapshot):
        sample_snapshot.teams.append(Team(id="7", name="MICROSOFT"))
        with pytest.raises(AmbiguousLookupError):
            get_governance_team(_context(sample_snapshot))

    def test_repo_ownership(self, sample_snapshot):
        context = _context(sample_snapshot)
        assert is_repo_owned_by_governance(context, context.graph.repo("runtime"))
        # docs is only reachable through the unrelated community team
        assert not is_repo_owned_by_governance(context, context.graph.repo("docs"))

    def test_team_ownership_through_ancestors(self, sample_snapshot):
        context = _context(sample_snapshot)
        graph = context.graph
        assert is_team_owned_by_governance(context, graph.team("1"))
        assert is_team_owned_by_governance(context, graph.team("2"))
        assert not is_team_owned_by_governance(context, graph.team("4"))

    @pytest.mark.parametrize(
        "company,email,expected",
        [
            ("Microsoft", None, True),
            ("  microsoft corp ", None, True),
            (None, "someone@MICROSOFT.com", True),
            ("Microsoftware Ltd", None, True),  # known loose match
            ("Contoso", "x@example.com", False),
            (None, None, False),
        ],
    )
    def test_affiliation_claim(self, sample_snapshot, company, email, expected):
        sample_snapshot.users[2].company = company
        sample_snapshot.users[2].email = email
        graph = resolve(sample_snapshot)
        assert is_claiming_affiliation(graph.user("carol"), "Microsoft") is expected

    def test_verified_user(self, sample_snapshot):
        context = _context(sample_snapshot)
        graph = context.graph
        assert is_verified_user(context, graph.user("alice"))
        assert is_verified_user(context, graph.user("bob"))  # link stored as "BOB"
        assert is_verified_user(context, graph.user("dave-bot"))  # bots team
        assert not is_verified_user(context, graph.user("carol"))
        assert not is_verified_user(context, graph.user("eve"))

    def test_verified_without_bots_team(self, sample_snapshot):
        sample_snapshot.teams[2].name = "automation"
        context = _context(sample_snapshot)
        assert not is_verified_user(context, context.graph.user("dave-bot"))

    def test_administrators_exclude_owners(self, sample_snapshot):
        graph = resolve(sample_snapshot)
        assert [u.login for u in get_administrators(graph.repo("runtime"))] == ["bob"]
        assert get_administrators(graph.repo("docs")) == []


# ---------------------------------------------------------------------------
# PR09 -- the representative threshold rule
# ---------------------------------------------------------------------------


class TestTooManyTeamMaintainers:
    def _with_maintainers(self, snapshot, count):
        logins = [f"m{i}" for i in range(count)]
        snapshot.users.extend(User(login, is_member=True) for login in logins)
        snapshot.teams[3].maintainer_logins = logins
        snapshot.teams[3].member_logins = list(logins)
        return _context(snapshot)

    def test_four_maintainers_is_fine(self, sample_snapshot):
        context = self._with_maintainers(sample_snapshot, 4)
        assert list(TooManyTeamMaintainers().get_violations(context)) == []

    def test_five_maintainers_is_one_violation(self, sample_snapshot):
        context = self._with_maintainers(sample_snapshot, 5)
        violations = list(TooManyTeamMaintainers().get_violations(context))
        assert len(violations) == 1
        v = violations[0]
        assert v.code == "PR09"
        assert v.team is context.graph.team("4")
        assert "5 maintainers" in v.body
        assert "4 or less" in v.body


# ---------------------------------------------------------------------------
# Other rules
# ---------------------------------------------------------------------------


class TestRules:
    def test_repo_not_owned(self, sample_snapshot):
        violations = list(RepoNotOwnedByGovernanceTeam().get_violations(_context(sample_snapshot)))
        assert [v.repo.name for v in violations] == ["docs"]

    def test_repo_not_owned_skipped_without_governance_team(self, sample_snapshot):
        sample_snapshot.teams[0].name = "renamed"
        assert list(RepoNotOwnedByGovernanceTeam().get_violations(_context(sample_snapshot))) == []

    def test_unverified_repo_admin(self, sample_snapshot):
        context = _context(sample_snapshot, UserLinks([UserLink("alice", "a")]))
        violations = list(UnverifiedRepoAdministrator().get_violations(context))
        assert [(v.repo.name, v.user.login) for v in violations] == [("runtime", "bob")]

    def test_unverified_governance_team_member(self, sample_snapshot):
        violations = list(UnverifiedGovernanceTeamMember().get_violations(_context(sample_snapshot)))
        # carol sits in dotnet-core, which is nested under microsoft
        assert [(v.team.name, v.user.login) for v in violations] == [("dotnet-core", "carol")]

    def test_unverified_affiliation_claim(self, sample_snapshot):
        context = _context(sample_snapshot, UserLinks([UserLink("alice", "a")]))
        violations = list(UnverifiedAffiliationClaim().get_violations(context))
        assert [v.user.login for v in violations] == ["bob"]

    def test_affiliation_claim_ignores_outside_collaborators(self, sample_snapshot):
        sample_snapshot.users[4].company = "Microsoft"
        violations = list(UnverifiedAffiliationClaim().get_violations(_context(sample_snapshot)))
        assert violations == []

    def test_outside_collaborator_write_access(self, sample_snapshot):
        violations = list(OutsideCollaboratorWithWriteAccess().get_violations(_context(sample_snapshot)))
        assert [(v.repo.name, v.user.login) for v in violations] == [("runtime", "eve")]
        assert "push access" in violations[0].body

    def test_too_many_repo_admins(self, sample_snapshot):
        for i in range(5):
            sample_snapshot.users.append(User(f"admin{i}", is_member=True))
            sample_snapshot.collaborators.append(UserAccess("docs", f"admin{i}", Permission.ADMIN))
        violations = list(TooManyRepoAdministrators().get_violations(_context(sample_snapshot)))
        assert [v.repo.name for v in violations] == ["docs"]

    def test_owners_do_not_count_as_repo_admins(self, sample_snapshot):
        for i in range(5):
            sample_snapshot.users.append(User(f"owner{i}", is_member=True, is_owner=True))
            sample_snapshot.collaborators.append(UserAccess("docs", f"owner{i}", Permission.ADMIN))
        assert list(TooManyRepoAdministrators().get_violations(_context(sample_snapshot))) == []

    def test_unverified_owner(self, sample_snapshot):
        assert list(UnverifiedOwner().get_violations(_context(sample_snapshot))) == []
        violations = list(UnverifiedOwner().get_violations(_context(sample_snapshot, UserLinks())))
        assert [v.user.login for v in violations] == ["alice"]

    def test_team_without_maintainers(self, sample_snapshot):
        violations = list(TeamWithoutMaintainers().get_violations(_context(sample_snapshot)))
        assert [v.team.name for v in violations] == ["microsoft-bots"]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TestEngine:
    def test_registry_codes_unique_and_ordered(self):
        codes = [rule.code for rule in RULES]
        assert codes == sorted(codes)
        assert len(codes) == len(set(codes))

    def test_concatenates_in_registry_order(self, sample_snapshot):
        codes = _codes(evaluate(_context(sample_snapshot)))
        assert codes == sorted(codes)
        assert set(codes) == {"PR01", "PR03", "PR05", "PR08"}

    def test_custom_rule_list(self, sample_snapshot):
        class AlwaysOne(PolicyRule):
            code = "T01"

            def get_violations(self, context):
                yield PolicyViolation(self.code, title="t", body="b", repo=context.graph.repos[0])

        violations = evaluate(_context(sample_snapshot), rules=[AlwaysOne(), TeamWithoutMaintainers()])
        assert _codes(violations) == ["T01", "PR08"]

    def test_lazy(self, sample_snapshot):
        calls = []

        class Recording(PolicyRule):
            code = "T02"

            def get_violations(self, context):
                calls.append(1)
                yield from ()

        iterator = iter_violations(_context(sample_snapshot), rules=[Recording()])
        assert calls == []
        assert list(iterator) == []
        assert calls == [1]

    def test_rules_do_not_mutate_snapshot(self, sample_snapshot):
        before = copy.deepcopy(sample_snapshot)
        evaluate(_context(sample_snapshot, UserLinks()))
        assert sample_snapshot == before

    def test_evaluation_is_repeatable(self, sample_snapshot):
        context = _context(sample_snapshot)
        assert [v.fingerprint for v in evaluate(context)] == [v.fingerprint for v in evaluate(context)]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestModels:
    def test_load_user_links(self, tmp_path):
        path = tmp_path / "links.json"
        path.write_text('[{"githubLogin": "Alice", "internalAlias": "alice"}, {"githubLogin": "bob"}]')
        links = load_user_links(path)
        assert len(links) == 2
        assert links.is_linked("alice")
        assert links.is_linked("ALICE")
        assert not links.is_linked("carol")

    def test_fingerprint(self, sample_snapshot):
        graph = resolve(sample_snapshot)
        v = PolicyViolation("PR02", title="t", body="b", repo=graph.repo("runtime"), user=graph.user("bob"))
        assert v.fingerprint == "PR02|repo:runtime|user:bob"
