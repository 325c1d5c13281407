"""Change detection — compares a document hash against every platform's stored hash."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from spotcheck.models.result import Platform, PlatformResult, current_platform

from .store import BaselineStore

logger = logging.getLogger(__name__)


async def detect_changes(
    store: BaselineStore,
    name: str,
    digest: str,
    platforms: Sequence[Platform],
    update: bool = False,
) -> list[PlatformResult]:
    """Decide ``changed``/``updated`` for each platform.

    Screenshots differ between platforms even for identical markup, so change
    is judged on the document hash. Only the platform we are running on may
    be updated: when forced, or when it has no baseline yet.
    """
    local = current_platform()
    stored = await asyncio.gather(*(store.read_hash(name, p) for p in platforms))

    results = []
    for platform, previous in zip(platforms, stored):
        result = PlatformResult(
            platform=platform,
            changed=previous != digest,
            updated=platform is local and (update or previous is None),
        )
        logger.debug("%s on %s: changed=%s updated=%s", name, platform.value,
                     result.changed, result.updated)
        results.append(result)
    return results
