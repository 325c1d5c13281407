"""Browser pool — bounded set of long-lived Chromium processes with scoped checkouts."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Optional

from playwright.async_api import Browser, Playwright, async_playwright

from spotcheck.models.config import PoolOptions, env
from spotcheck.utils.browser import launch_browser

logger = logging.getLogger(__name__)

Launcher = Callable[[], Awaitable[Browser]]


class PoolState(str, Enum):
    ACTIVE = "active"
    DRAINING = "draining"
    DRAINED = "drained"


class BrowserLease:
    """Exclusive hold on one pooled browser until released."""

    def __init__(self, pool: BrowserPool, browser: Browser, generation: int):
        self.browser = browser
        self._pool = pool
        self._generation = generation
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._pool._release(self.browser, self._generation)


class BrowserPool:
    """Hands out browsers, at most ``options.max`` at a time.

    Released browsers are closed unless ``preserve_browser`` is set, in which
    case they go back to the idle set and are reused by later checkouts.

    ``drain()`` followed by ``clear()`` shuts the pool down. A checkout on a
    drained pool reopens it instead of failing: test runners may tear the
    pool down before the last capture of a suite has run. Re-check whether
    this is still needed whenever the runner's teardown ordering changes.
    """

    def __init__(self, options: PoolOptions | None = None, launcher: Optional[Launcher] = None):
        self.options = options or PoolOptions()
        settings = env()
        self.preserve_browser = (
            self.options.preserve_browser
            if self.options.preserve_browser is not None
            else settings.SPOTCHECK_PRESERVE
        )
        self._ci = settings.CI or settings.GITHUB_ACTIONS
        self._launcher = launcher
        self._playwright: Playwright | None = None
        self._generation = 0
        self._open()

    def _open(self) -> None:
        self.state = PoolState.ACTIVE
        self._generation += 1
        self._slots = asyncio.Semaphore(self.options.max)
        self._idle: list[Browser] = []
        self._leased: list[Browser] = []
        self._outstanding = 0
        self._all_released = asyncio.Event()
        self._all_released.set()

    @property
    def outstanding(self) -> int:
        return self._outstanding

    @property
    def idle(self) -> int:
        return len(self._idle)

    async def checkout(self) -> BrowserLease:
        """Wait for a free slot and return a lease on a browser."""
        if self.state is PoolState.DRAINED:
            logger.debug("Browser pool was drained, reopening")
            self._open()
        if self.state is PoolState.DRAINING:
            raise RuntimeError("Browser pool is draining, no new checkouts")

        await self._slots.acquire()
        if self.state is not PoolState.ACTIVE:
            self._slots.release()
            raise RuntimeError("Browser pool is draining, no new checkouts")

        try:
            browser = await self._take()
        except BaseException:
            self._slots.release()
            raise

        self._outstanding += 1
        self._leased.append(browser)
        self._all_released.clear()
        logger.debug("Browser checked out (%d/%d in use)", self._outstanding, self.options.max)
        return BrowserLease(self, browser, self._generation)

    async def _take(self) -> Browser:
        while self._idle:
            browser = self._idle.pop()
            if browser.is_connected():
                return browser
            logger.debug("Dropping disconnected idle browser")
        try:
            return await self._launch()
        except Exception as e:
            raise RuntimeError(f"Failed to launch browser: {e}") from e

    async def _launch(self) -> Browser:
        if self._launcher is not None:
            return await self._launcher()
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        logger.debug("Launching Chromium (headless=%s)", not self.preserve_browser)
        return await launch_browser(self._playwright, headless=not self.preserve_browser, ci=self._ci)

    async def _release(self, browser: Browser, generation: int) -> None:
        # Leases handed out before clear() must not return slots to the reopened pool
        if generation != self._generation:
            logger.debug("Ignoring release of a lease from a cleared pool")
            return

        self._leased.remove(browser)
        try:
            if not self.preserve_browser:
                await browser.close()
            elif browser.is_connected():
                self._idle.append(browser)
        finally:
            self._outstanding -= 1
            self._slots.release()
            if self._outstanding == 0:
                self._all_released.set()
            logger.debug("Browser released (%d/%d in use)", self._outstanding, self.options.max)

    async def drain(self) -> None:
        """Refuse new checkouts and wait for outstanding leases to come back."""
        if self.state is PoolState.DRAINED:
            return
        self.state = PoolState.DRAINING
        await self._all_released.wait()

    async def clear(self) -> None:
        """Terminate idle and outstanding browsers and the Playwright driver.

        Leases still held are invalidated: their later release is a no-op.
        With ``preserve_browser`` nothing is closed and the driver is kept
        for the reopened pool.
        """
        browsers = self._idle + self._leased
        self._idle, self._leased = [], []
        if self._outstanding:
            logger.warning("Clearing pool with %d browser(s) still checked out", self._outstanding)

        if self.preserve_browser:
            logger.debug("Preserving %d browser(s) on clear", len(browsers))
        else:
            for browser in browsers:
                await browser.close()
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None

        self._outstanding = 0
        self._all_released.set()
        self._generation += 1
        self.state = PoolState.DRAINED

    async def __aenter__(self) -> BrowserPool:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.drain()
        await self.clear()


@asynccontextmanager
async def acquire(pool: BrowserPool) -> AsyncIterator[BrowserLease]:
    """Check out a browser, releasing it on every exit path."""
    lease = await pool.checkout()
    try:
        yield lease
    finally:
        await lease.release()
