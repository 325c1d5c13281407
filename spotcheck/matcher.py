"""Screenshot matcher — turns capture results into a pass/fail verdict for test code."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from spotcheck.capture.pool import BrowserPool
from spotcheck.capture.render import Builder, Renderer
from spotcheck.capture.screenshot import screenshot
from spotcheck.models.config import CaptureOptions, env
from spotcheck.models.result import PlatformResult, current_platform

logger = logging.getLogger(__name__)


class MatchResult(BaseModel):
    passed: bool
    message: str
    results: list[PlatformResult] = Field(default_factory=list)


def resolve_options(options: CaptureOptions | None, update: Optional[bool] = None) -> CaptureOptions:
    """Fill ``update`` from SPOTCHECK_UPDATE unless the caller set it."""
    opts = options or CaptureOptions()
    if update is not None:
        return opts.model_copy(update={"update": update})
    if "update" in opts.model_fields_set:
        return opts
    return opts.model_copy(update={"update": env().SPOTCHECK_UPDATE})


def format_message(results: list[PlatformResult]) -> str:
    if not any(r.changed for r in results):
        return "Content has not changed."

    lines = [
        "Content has changed. If this is on purpose, re-run with",
        f"SPOTCHECK_UPDATE=true. Would update {current_platform().value}.",
    ]
    for r in results:
        changed = "changed" if r.changed else "unchanged"
        updated = "updated" if r.updated else "not updated"
        lines.append(f"{r.platform.value:<8}: {changed}, {updated}")
        for capture in r.captures:
            if capture.diff_path:
                lines.append(f"  {capture.state.value} #{capture.idx} diff: {capture.diff_path}")
    return "\n".join(lines)


async def match_screenshot(
    subject: Any,
    name: str,
    builder: Builder,
    pool: BrowserPool,
    options: CaptureOptions | None = None,
    update: Optional[bool] = None,
    renderer: Optional[Renderer] = None,
) -> MatchResult:
    """Capture ``subject`` and decide whether it matches its baseline.

    Passes when nothing changed, or when every changed platform was updated
    by this run. Changes on other platforms fail until they are re-recorded
    on that platform.
    """
    opts = resolve_options(options, update)
    logger.debug('Matching screenshot for "%s" (update=%s)', name, opts.update)

    results = await screenshot(subject, name, builder, pool, opts, renderer=renderer)
    passed = all(not r.changed or r.updated for r in results)
    if not passed:
        logger.warning('Screenshot "%s" does not match its baseline', name)
    return MatchResult(passed=passed, message=format_message(results), results=results)
