#!/usr/bin/env python3
"""
org-policy-auditor -- Audit a GitHub organization's access-control graph.

Usage:
  python main.py dotnet
  python main.py dotnet --links links.json
  python main.py dotnet --force-refresh
  python main.py dotnet --format json
  python main.py dotnet --no-color

Environment variables (or .env):
  GITHUB_TOKEN          Token used for all API calls. Strongly recommended.
  CACHE_DIR             Where snapshots are cached (default ~/.cache/org-policy-auditor).
  GOVERNANCE_TEAM_NAME  Team whose access marks a repo/team as owned (default "microsoft").
  BOTS_TEAM_NAME        Team whose members count as verified automation accounts.
  AFFILIATION_NAME      Name matched against user company/email fields.
"""

import argparse
import logging
import sys
from datetime import timedelta

import requests

from cache.store import SnapshotCache
from core.config import get_settings
from core.errors import GraphIntegrityError
from core.fetcher import GitHubClient
from core.loader import SnapshotLoader
from core.pipeline import load_org
from core.quota import QuotaGuard, RateLimitState
from policies.engine import evaluate
from policies.formatter import disable_color, print_terminal, to_json
from policies.models import PolicyAnalysisContext, UserLinks, load_user_links

logger = logging.getLogger("orgaudit.cli")


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="org-policy-auditor",
        description="Check a GitHub organization's teams, repos and collaborators against governance rules.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("org", metavar="ORG", help="GitHub organization name")
    parser.add_argument(
        "--links",
        metavar="PATH",
        help="JSON file of verified identity links ([{\"githubLogin\": ..., \"internalAlias\": ...}])",
    )
    parser.add_argument(
        "--force-refresh",
        action="store_true",
        help="Ignore the cached snapshot and reload everything from GitHub",
    )
    parser.add_argument(
        "--format",
        choices=["terminal", "json"],
        default="terminal",
        metavar="FORMAT",
        help="Output format: terminal (default) or json",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI color codes in terminal output",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    if args.no_color:
        disable_color()

    settings = get_settings()

    state = RateLimitState()
    guard = QuotaGuard(
        state,
        low_water_mark=settings.quota_low_water_mark,
        padding=timedelta(seconds=settings.quota_padding_seconds),
    )
    client = GitHubClient(
        token=settings.github_token,
        state=state,
        base_url=settings.github_api_url,
        timeout=settings.request_timeout,
        before_page=guard.ensure_quota,
    )
    loader = SnapshotLoader(client, guard)
    cache = SnapshotCache(settings.cache_dir)

    try:
        graph = load_org(args.org, loader, cache, force_refresh=args.force_refresh)
    except requests.RequestException as e:
        print(f"  [!] Could not load {args.org} from GitHub: {e}", file=sys.stderr)
        return 1
    except GraphIntegrityError as e:
        print(f"  [!] Snapshot for {args.org} is inconsistent: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    if args.links:
        try:
            user_links = load_user_links(args.links)
        except (OSError, ValueError, KeyError, TypeError) as e:
            print(f"  [!] Could not read identity links from {args.links}: {e}", file=sys.stderr)
            return 1
        logger.info("Loaded %d identity link(s) from %s", len(user_links), args.links)
    else:
        user_links = UserLinks()
        logger.warning("No --links file given; every user counts as unlinked.")

    context = PolicyAnalysisContext(
        graph=graph,
        user_links=user_links,
        governance_team_name=settings.governance_team_name,
        bots_team_name=settings.bots_team_name,
        affiliation_name=settings.affiliation_name,
    )

    try:
        violations = evaluate(context)
    except GraphIntegrityError as e:
        print(f"  [!] Policy analysis aborted: {e}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(to_json(violations))
    else:
        print_terminal(graph.name, violations)
    return 0


if __name__ == "__main__":
    sys.exit(main())
