"""
core/errors.py -- Graph integrity faults.

These mean the snapshot itself is inconsistent (bad API data or a hand-edited
cache file). They are distinct from ordinary "not found" results, which are
reported as None by lookup helpers.

Remote failures are not wrapped: requests.RequestException propagates as-is
and aborts the load.
"""


class GraphIntegrityError(Exception):
    """The snapshot cannot be resolved into a consistent graph."""


class DanglingReferenceError(GraphIntegrityError):
    """A record references a login, team id or repo name that is not in the snapshot."""

    def __init__(self, kind: str, key: str, referenced_by: str) -> None:
        self.kind = kind
        self.key = key
        self.referenced_by = referenced_by
        super().__init__(f"{referenced_by} references unknown {kind} {key!r}")


class TeamCycleError(GraphIntegrityError):
    """The team parent chain loops back on itself."""

    def __init__(self, team_ids: list[str]) -> None:
        self.team_ids = team_ids
        super().__init__("Cyclic team parent chain: " + " -> ".join(team_ids))


class AmbiguousLookupError(GraphIntegrityError):
    """A lookup that expects at most one match found several."""

    def __init__(self, kind: str, key: str, count: int) -> None:
        self.kind = kind
        self.key = key
        self.count = count
        super().__init__(f"Expected at most one {kind} matching {key!r}, found {count}")
