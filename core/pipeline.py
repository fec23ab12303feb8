"""
core/pipeline.py -- Cache-or-fetch orchestration for one organization.

No print statements. Designed to be called by the CLI (main.py) and by
tests with a fake loader.
"""

import logging
from typing import Optional, Protocol

from cache.store import SnapshotCache
from core.graph import OrgGraph, resolve
from core.models import Snapshot

logger = logging.getLogger("orgaudit.pipeline")


class Loader(Protocol):
    def load(self, org_name: str) -> Snapshot: ...


def load_org(
    org_name: str,
    loader: Loader,
    cache: Optional[SnapshotCache] = None,
    force_refresh: bool = False,
) -> OrgGraph:
    """Return the resolved graph for org_name.

    Uses the cached snapshot unless force_refresh is set or the cache misses.
    A freshly loaded snapshot is resolved before it is saved, so a snapshot
    that fails resolution is never written. Remote errors from the loader
    propagate and leave the cache untouched.
    """
    if cache is not None and not force_refresh:
        cached = cache.load(org_name)
        if cached is not None:
            logger.info("Using cached snapshot for %s", org_name)
            return resolve(cached)

    snapshot = loader.load(org_name)
    graph = resolve(snapshot)

    if cache is not None:
        cache.save(snapshot)

    return graph
