"""Screenshot capture — renders markup in a pooled browser and checks it against baselines."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from spotcheck.baseline.detector import detect_changes
from spotcheck.baseline.store import BaselineStore, content_hash
from spotcheck.diff.visual_diff import visual_diff
from spotcheck.models.config import CaptureOptions
from spotcheck.models.result import (
    Platform,
    PlatformResult,
    ScreenshotDiff,
    State,
    current_platform,
)
from spotcheck.utils.browser import create_capture_context

from .interaction import cancel_animations, capture_states, eligible_children
from .pool import BrowserPool, acquire
from .render import Builder, Renderer, build_document, to_markup

logger = logging.getLogger(__name__)


async def screenshot(
    element: Any,
    name: str,
    builder: Builder,
    pool: BrowserPool,
    options: CaptureOptions | None = None,
    renderer: Optional[Renderer] = None,
) -> list[PlatformResult]:
    """Check ``element`` against the stored baselines of every configured platform.

    Change is decided on the hash of the assembled document, so the browser
    is only used when the local baseline has to be (re)written. Returns one
    result per configured platform; the local one carries the captures.
    """
    opts = options or CaptureOptions()
    logger.debug('Taking screenshot for "%s"', name)

    document = await build_document(to_markup(element, renderer), builder, opts.css)
    digest = content_hash(document)
    store = BaselineStore(opts.output_dir(), opts.diff_dir())

    results = await detect_changes(store, name, digest, opts.platforms, opts.update)
    local = next((r for r in results if r.platform is current_platform()), None)

    if local is not None and local.changed and local.updated:
        local.captures = await _store_captures(store, name, document, pool, opts, local.platform)

    # Hashes go last so a failed capture never records a baseline
    for result in results:
        if result.updated:
            await store.write_hash(name, result.platform, digest)

    return results


async def compare(
    element: Any,
    name: str,
    builder: Builder,
    pool: BrowserPool,
    options: CaptureOptions | None = None,
    renderer: Optional[Renderer] = None,
) -> list[ScreenshotDiff]:
    """Capture ``element`` and diff every image against its baseline.

    Baselines are platform independent here and only written when missing or
    when ``update`` is set; a mismatch leaves the baseline untouched.
    """
    opts = options or CaptureOptions()
    logger.debug('Comparing screenshot for "%s"', name)

    document = await build_document(to_markup(element, renderer), builder, opts.css)
    store = BaselineStore(opts.output_dir(), opts.diff_dir())

    results = []
    for state, idx, after in await _capture(pool, name, document, opts.ordered_states()):
        before = await store.read_png(name, idx, state)
        if opts.update or before is None:
            await store.write_png(name, idx, state, after)
            results.append(ScreenshotDiff(state=state, idx=idx, after=after, identical=True))
        else:
            results.append(await _diff(store, name, state, idx, before, after, opts.threshold))

    logger.debug('Compared "%s": %d image(s), update=%s', name, len(results), opts.update)
    return results


async def _store_captures(
    store: BaselineStore,
    name: str,
    document: str,
    pool: BrowserPool,
    opts: CaptureOptions,
    platform: Platform,
) -> list[ScreenshotDiff]:
    captures = []
    for state, idx, after in await _capture(pool, name, document, opts.ordered_states()):
        before = None if opts.update else await store.read_png(name, idx, state, platform)
        await store.write_png(name, idx, state, after, platform)
        if before is None:
            captures.append(ScreenshotDiff(state=state, idx=idx, after=after, identical=True))
        else:
            captures.append(await _diff(store, name, state, idx, before, after, opts.threshold, platform))
    return captures


async def _diff(
    store: BaselineStore,
    name: str,
    state: State,
    idx: int,
    before: bytes,
    after: bytes,
    threshold: float,
    platform: Platform | None = None,
) -> ScreenshotDiff:
    result = await asyncio.to_thread(visual_diff, before, after, threshold)
    diff_path = None
    if not result.identical:
        diff_path = str(await store.write_diff(name, idx, state, result.img, platform))
        logger.warning('"%s" element %d (%s) differs from baseline, see %s',
                       name, idx, state.value, diff_path)
    return ScreenshotDiff(
        state=state,
        idx=idx,
        before=before,
        after=after,
        diff=result.img,
        diff_path=diff_path,
        identical=result.identical,
    )


async def _capture(
    pool: BrowserPool, name: str, document: str, states: list[State],
) -> list[tuple[State, int, bytes]]:
    """Load ``document`` into a fresh page and capture every (state, child)."""
    async with acquire(pool) as lease:
        logger.debug('Browser attached for "%s"', name)
        context = await create_capture_context(lease.browser)
        try:
            page = await context.new_page()
            page.on("console", lambda msg: logger.debug("page console: %s", msg.text))
            await page.set_content(document)
            await cancel_animations(page)

            children = await eligible_children(page)
            if not children:
                raise ValueError(f'No elements found for "{name}":\n{document}')

            return [capture async for capture in capture_states(page, children, states)]
        finally:
            await context.close()
