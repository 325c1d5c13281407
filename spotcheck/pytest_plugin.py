"""pytest fixtures for screenshot matching.

Enable with ``pytest_plugins = ["spotcheck.pytest_plugin"]`` in the root
conftest. The browser pool lives for the whole session, so tests using it
must run on the session loop::

    @pytest.mark.asyncio(loop_scope="session")
    async def test_button(match_screenshot):
        result = await match_screenshot("<button>OK</button>", "button")
        assert result.passed, result.message
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Awaitable, Callable

import pytest
import pytest_asyncio

from spotcheck.capture.builders import file_builder
from spotcheck.capture.pool import BrowserPool
from spotcheck.capture.render import Builder
from spotcheck.matcher import MatchResult
from spotcheck.matcher import match_screenshot as _match
from spotcheck.models.config import CaptureOptions, PoolOptions


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("spotcheck")
    group.addoption(
        "--spotcheck-update",
        action="store_true",
        default=False,
        help="Re-record screenshot baselines for the current platform.",
    )


@pytest.fixture(scope="session")
def spotcheck_pool_options() -> PoolOptions:
    """Override to size the browser pool."""
    return PoolOptions()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def spotcheck_pool(spotcheck_pool_options: PoolOptions) -> AsyncIterator[BrowserPool]:
    async with BrowserPool(spotcheck_pool_options) as pool:
        yield pool


@pytest.fixture
def spotcheck_options() -> CaptureOptions:
    """Override to set css, states, platforms or paths for a directory."""
    return CaptureOptions()


@pytest.fixture
def spotcheck_builder(request: pytest.FixtureRequest) -> Builder:
    return file_builder(request.path.parent)


@pytest.fixture
def match_screenshot(
    request: pytest.FixtureRequest,
    spotcheck_pool: BrowserPool,
    spotcheck_options: CaptureOptions,
    spotcheck_builder: Builder,
) -> Callable[..., Awaitable[MatchResult]]:
    """Async matcher bound to the session pool; paths resolve next to the test file."""
    update = True if request.config.getoption("spotcheck_update") else None

    async def match(subject: Any, name: str, **overrides: Any) -> MatchResult:
        opts = CaptureOptions.model_validate({
            "base_dir": request.path.parent,
            **spotcheck_options.model_dump(exclude_unset=True),
            **overrides,
        })
        return await _match(
            subject, name, spotcheck_builder, spotcheck_pool, opts,
            update=overrides.get("update", update),
        )

    return match
