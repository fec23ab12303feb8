"""
formatter.py -- Renders PolicyViolation lists to the terminal or JSON.

Full markdown/HTML reports are left to external tooling; this is the plain
listing the CLI prints.
"""

import json
import os
import sys
from collections import defaultdict
from typing import Optional

from .models import PolicyViolation

W = 68  # output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR env var (https://no-color.org).
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _dim() -> str:
    return "\033[2m" if _color_active() else ""


def _yellow() -> str:
    return "\033[93m" if _color_active() else ""


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _subject(violation: PolicyViolation) -> str:
    parts = []
    if violation.repo is not None:
        parts.append(f"repo {violation.repo.name}")
    if violation.team is not None:
        parts.append(f"team {violation.team.name}")
    if violation.user is not None:
        parts.append(f"user {violation.user.login}")
    return ", ".join(parts)


def print_terminal(org_name: str, violations: list[PolicyViolation]) -> None:
    print(f"\n{_bold()}Policy report for {org_name}{_reset()}")
    print("═" * W)
    if not violations:
        print("  No violations found.\n")
        return

    by_code: dict[str, list[PolicyViolation]] = defaultdict(list)
    for v in violations:
        by_code[v.code].append(v)

    for code, items in by_code.items():
        print(f"\n{_yellow()}{code}{_reset()}  {len(items)} violation(s)")
        print("─" * W)
        for v in items:
            print(f"  {v.title}")
            print(f"    {_dim()}{_subject(v)}{_reset()}")
            print(f"    {_dim()}{v.body}{_reset()}")

    print(f"\n  {len(violations)} violation(s) total.\n")


def to_dict(violation: PolicyViolation) -> dict:
    return {
        "code": violation.code,
        "title": violation.title,
        "body": violation.body,
        "repo": violation.repo.name if violation.repo is not None else None,
        "team": violation.team.name if violation.team is not None else None,
        "user": violation.user.login if violation.user is not None else None,
        "fingerprint": violation.fingerprint,
    }


def to_json(violations: list[PolicyViolation]) -> str:
    return json.dumps([to_dict(v) for v in violations], indent=2)
