"""
tests/conftest.py -- Shared snapshot fixtures.

sample_snapshot describes a small org:

  teams:   microsoft (root) -> dotnet-core (child) ; microsoft-bots (root) ; community (root)
  users:   alice (owner), bob, carol, dave-bot (members), eve (outside collaborator)
  repos:   runtime (private=False), docs (private=True)
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.models import Permission, Repo, Snapshot, Team, TeamAccess, User, UserAccess

PUSHED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_snapshot() -> Snapshot:
    return Snapshot(
        name="contoso",
        users=[
            User("alice", is_member=True, is_owner=True, name="Alice", company="Microsoft"),
            User("bob", is_member=True, company="Microsoft Corp"),
            User("carol", is_member=True, email="carol@example.com"),
            User("dave-bot", is_member=True),
            User("eve", is_member=False, company="Contractors Inc"),
        ],
        teams=[
            Team(
                id="1",
                name="microsoft",
                maintainer_logins=["alice"],
                member_logins=["alice", "bob"],
                repos=[TeamAccess("runtime", Permission.PUSH)],
            ),
            Team(
                id="2",
                name="dotnet-core",
                parent_id="1",
                maintainer_logins=["bob"],
                member_logins=["bob", "carol"],
                repos=[TeamAccess("runtime", Permission.ADMIN)],
            ),
            Team(id="3", name="microsoft-bots", member_logins=["dave-bot"]),
            Team(
                id="4",
                name="community",
                maintainer_logins=["carol"],
                member_logins=["carol"],
                repos=[TeamAccess("docs", Permission.PULL)],
            ),
        ],
        repos=[
            Repo("runtime", is_private=False, last_push=PUSHED),
            Repo("docs", is_private=True, last_push=PUSHED),
        ],
        collaborators=[
            UserAccess("runtime", "alice", Permission.ADMIN),
            UserAccess("runtime", "bob", Permission.ADMIN),
            UserAccess("runtime", "carol", Permission.PUSH),
            UserAccess("runtime", "eve", Permission.PUSH),
            UserAccess("docs", "eve", Permission.PULL),
        ],
    )


@pytest.fixture
def sample_snapshot() -> Snapshot:
    return make_snapshot()
