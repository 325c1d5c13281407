"""Pytest configuration and shared fixtures."""

import hashlib
import io
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image

from spotcheck.capture.pool import BrowserPool
from spotcheck.models.config import CaptureOptions, PoolOptions
from spotcheck.models.result import State

pytest_plugins = ["spotcheck.pytest_plugin"]


# ============================================================================
# Image Fixtures
# ============================================================================


def make_png(width: int = 10, height: int = 10, color=(255, 255, 255, 255)) -> bytes:
    """Encode a solid color PNG."""
    out = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(out, format="PNG")
    return out.getvalue()


def png_size(buf: bytes) -> tuple[int, int]:
    return Image.open(io.BytesIO(buf)).size


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png


# ============================================================================
# Fake Browser Fixtures
# ============================================================================


def render_document(document: str) -> bytes:
    """32x10 PNG with one black or white column per bit of the document hash."""
    bits = int.from_bytes(hashlib.sha256(document.encode()).digest()[:4], "big")
    img = Image.new("RGBA", (32, 10), (0, 0, 0, 255))
    for x in range(32):
        if bits >> x & 1:
            img.paste((255, 255, 255, 255), (x, 0, x + 1, 10))
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


def make_element(width: float = 40, height: float = 20) -> AsyncMock:
    """A fake element handle whose screenshot depends on the page document."""
    element = AsyncMock()
    element.bounding_box.return_value = {"x": 0, "y": 0, "width": width, "height": height}
    element.hover = AsyncMock()
    element.focus = AsyncMock()
    return element


def make_page(boxes: list[tuple[float, float]]) -> AsyncMock:
    page = AsyncMock()
    page.on = Mock()
    page.mouse = Mock()
    page.mouse.down = AsyncMock()
    page.mouse.up = AsyncMock()
    page.mouse.move = AsyncMock()
    page.keyboard = Mock()
    page.keyboard.press = AsyncMock()
    page.evaluate = AsyncMock()
    page.document = ""

    async def set_content(html: str) -> None:
        page.document = html

    page.set_content = AsyncMock(side_effect=set_content)

    elements = []
    for width, height in boxes:
        element = make_element(width, height)

        # Same document renders the same pixels, any change flips whole columns
        async def screenshot(*args, **kwargs) -> bytes:
            return render_document(page.document)

        element.screenshot = AsyncMock(side_effect=screenshot)
        elements.append(element)

    page.query_selector_all = AsyncMock(return_value=elements)
    page.elements = elements
    return page


def make_browser(boxes: list[tuple[float, float]] | None = None) -> Mock:
    """A fake Playwright browser: browser -> context -> page."""
    page = make_page(boxes if boxes is not None else [(40, 20)])
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = Mock()
    browser.is_connected = Mock(return_value=True)
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()
    browser.page = page
    browser.context = context
    return browser


@pytest.fixture
def fake_browser() -> Mock:
    return make_browser()


@pytest.fixture
def pool_factory() -> Callable[..., BrowserPool]:
    """Build a pool whose launcher hands out fake browsers."""

    def factory(boxes=None, max: int = 2, preserve_browser: bool = False) -> BrowserPool:
        launched: list[Mock] = []

        async def launcher() -> Mock:
            browser = make_browser(boxes)
            launched.append(browser)
            return browser

        pool = BrowserPool(PoolOptions(max=max, preserve_browser=preserve_browser), launcher=launcher)
        pool.launched = launched
        return pool

    return factory


@pytest.fixture
def fake_pool(pool_factory) -> BrowserPool:
    return pool_factory()


# ============================================================================
# Capture Fixtures
# ============================================================================


@pytest.fixture
def css_builder() -> AsyncMock:
    """Builder returning one fixed stylesheet."""
    return AsyncMock(return_value=["* { width: 75px; }"])


@pytest.fixture
def capture_options(tmp_path: Path) -> CaptureOptions:
    return CaptureOptions(
        css=["foobar", "baz"],
        path="__tmp__",
        base_dir=tmp_path,
        states=[State.DEFAULT],
    )


@pytest.fixture
def screenshot_dir(tmp_path: Path) -> Path:
    return tmp_path / "__tmp__"
