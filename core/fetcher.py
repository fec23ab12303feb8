"""
fetcher.py -- All GitHub REST calls.

Thin wrapper over requests: pagination by Link header, token auth, and a
rate-limit observation after every successful response. Errors are not
swallowed here -- raise_for_status() propagates and aborts the load.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import requests

from core.quota import RateLimit, RateLimitState

logger = logging.getLogger("orgaudit.fetcher")

GITHUB_API = "https://api.github.com"
PER_PAGE = 100


def _rate_limit_from_headers(headers: Any) -> Optional[RateLimit]:
    remaining = headers.get("X-RateLimit-Remaining")
    reset = headers.get("X-RateLimit-Reset")
    if remaining is None or reset is None:
        return None
    try:
        return RateLimit(
            remaining=int(remaining),
            reset=datetime.fromtimestamp(int(reset), tz=timezone.utc),
        )
    except ValueError:
        logger.debug("Unparseable rate limit headers: remaining=%r reset=%r", remaining, reset)
        return None


class GitHubClient:
    """Read-only GitHub client for the endpoints the snapshot loader needs.

    Args:
        token:       Personal access token or app token. Empty means anonymous.
        state:       Shared RateLimitState, overwritten after every response.
        base_url:    API root, override for GitHub Enterprise Server.
        timeout:     Per-request timeout in seconds.
        before_page: Called before every continuation page of a listing, so
                     that long listings are quota-guarded too.
    """

    def __init__(
        self,
        token: str = "",
        state: Optional[RateLimitState] = None,
        base_url: str = GITHUB_API,
        timeout: float = 30.0,
        before_page: Optional[Callable[[], None]] = None,
    ) -> None:
        self.state = state if state is not None else RateLimitState()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._before_page = before_page
        self._session = requests.Session()
        # Known public API: 3 hops is generous.
        self._session.max_redirects = 3
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "org-policy-auditor",
            }
        )
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _get(self, url: str, params: Optional[dict[str, Any]] = None) -> requests.Response:
        resp = self._session.get(url, params=params, timeout=self._timeout)
        resp.raise_for_status()
        rate_limit = _rate_limit_from_headers(resp.headers)
        if rate_limit is not None:
            self.state.observe(rate_limit)
        return resp

    def _get_json(self, path: str) -> dict[str, Any]:
        return self._get(f"{self._base_url}{path}").json()

    def _get_all(self, path: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """Follow rel="next" links until exhausted and return every item."""
        query = {"per_page": PER_PAGE, **(params or {})}
        resp = self._get(f"{self._base_url}{path}", params=query)
        items: list[dict[str, Any]] = list(resp.json())
        next_url = resp.links.get("next", {}).get("url")
        while next_url:
            if self._before_page is not None:
                self._before_page()
            # The next link already carries the query string.
            resp = self._get(next_url)
            items.extend(resp.json())
            next_url = resp.links.get("next", {}).get("url")
        return items

    # ------------------------------------------------------------------
    # Organization
    # ------------------------------------------------------------------

    def list_org_members(self, org: str, role: str = "all") -> list[dict[str, Any]]:
        """role: "admin" (owners), "member" (non-owners) or "all"."""
        return self._get_all(f"/orgs/{org}/members", {"filter": "all", "role": role})

    def list_outside_collaborators(self, org: str) -> list[dict[str, Any]]:
        return self._get_all(f"/orgs/{org}/outside_collaborators", {"filter": "all"})

    def list_org_repos(self, org: str) -> list[dict[str, Any]]:
        return self._get_all(f"/orgs/{org}/repos", {"type": "all"})

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def list_teams(self, org: str) -> list[dict[str, Any]]:
        return self._get_all(f"/orgs/{org}/teams")

    def list_team_members(self, org: str, team_slug: str, role: str = "all") -> list[dict[str, Any]]:
        """role: "maintainer", "member" or "all"."""
        return self._get_all(f"/orgs/{org}/teams/{team_slug}/members", {"role": role})

    def list_team_repos(self, org: str, team_slug: str) -> list[dict[str, Any]]:
        return self._get_all(f"/orgs/{org}/teams/{team_slug}/repos")

    # ------------------------------------------------------------------
    # Repos and users
    # ------------------------------------------------------------------

    def list_repo_collaborators(self, owner: str, repo: str) -> list[dict[str, Any]]:
        return self._get_all(f"/repos/{owner}/{repo}/collaborators", {"affiliation": "all"})

    def get_user(self, login: str) -> dict[str, Any]:
        return self._get_json(f"/users/{login}")

    def close(self) -> None:
        self._session.close()
