"""Browser launch utilities — deterministic Chromium setup for screenshots."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

DEFAULT_VIEWPORT = {"width": 800, "height": 600}

# Chromium cannot create its sandbox inside most CI containers.
CI_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


def launch_args(ci: bool) -> list[str]:
    return list(CI_ARGS) if ci else []


async def launch_browser(playwright: Playwright, headless: bool = True, ci: bool = False) -> Browser:
    """Launch Chromium for capture."""
    return await playwright.chromium.launch(headless=headless, args=launch_args(ci))


async def create_capture_context(
    browser: Browser,
    viewport: Optional[dict] = None,
) -> BrowserContext:
    """Create a browser context with rendering pinned for repeatable screenshots.

    Args:
        viewport: Optional viewport size, defaults to 800x600. Elements are
            screenshotted individually, so this only bounds layout width.
    """
    return await browser.new_context(
        viewport=viewport or DEFAULT_VIEWPORT,
        device_scale_factor=1,
        locale="en-US",
        timezone_id="UTC",
        color_scheme="light",
        reduced_motion="reduce",
    )
