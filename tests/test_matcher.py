"""Tests for the screenshot matcher and its message."""

import pytest

from spotcheck.matcher import format_message, match_screenshot, resolve_options
from spotcheck.models.config import CaptureOptions
from spotcheck.models.result import (
    Platform,
    PlatformResult,
    ScreenshotDiff,
    State,
    current_platform,
)


class TestResolveOptions:
    def test_update_from_env(self, monkeypatch):
        monkeypatch.setenv("SPOTCHECK_UPDATE", "true")
        assert resolve_options(CaptureOptions()).update is True

    def test_env_default_false(self, monkeypatch):
        monkeypatch.delenv("SPOTCHECK_UPDATE", raising=False)
        assert resolve_options(None).update is False

    def test_explicit_option_beats_env(self, monkeypatch):
        monkeypatch.setenv("SPOTCHECK_UPDATE", "true")
        assert resolve_options(CaptureOptions(update=False)).update is False

    def test_explicit_argument_beats_everything(self, monkeypatch):
        monkeypatch.setenv("SPOTCHECK_UPDATE", "false")
        assert resolve_options(CaptureOptions(update=False), update=True).update is True


class TestFormatMessage:
    def test_unchanged(self):
        results = [PlatformResult(platform=Platform.LINUX, changed=False, updated=False)]
        assert format_message(results) == "Content has not changed."

    def test_lists_every_platform(self):
        results = [
            PlatformResult(platform=Platform.DARWIN, changed=True, updated=False),
            PlatformResult(platform=Platform.LINUX, changed=False, updated=False),
        ]

        message = format_message(results)

        assert "SPOTCHECK_UPDATE=true" in message
        assert f"Would update {current_platform().value}" in message
        assert "darwin  : changed, not updated" in message
        assert "linux   : unchanged, not updated" in message

    def test_includes_diff_paths(self):
        capture = ScreenshotDiff(state=State.HOVER, idx=1, after=b"", identical=False,
                                 diff_path="/tmp/__diff__/x.linux.1.hover.png")
        results = [PlatformResult(platform=Platform.LINUX, changed=True, updated=True, captures=[capture])]

        assert "hover #1 diff: /tmp/__diff__/x.linux.1.hover.png" in format_message(results)


@pytest.mark.integration
@pytest.mark.asyncio
class TestMatchScreenshot:
    async def test_first_run_passes(self, css_builder, fake_pool, capture_options, monkeypatch):
        monkeypatch.delenv("SPOTCHECK_UPDATE", raising=False)

        result = await match_screenshot("<div>Hello</div>", "m.first", css_builder, fake_pool,
                                        capture_options.model_copy(update={"platforms": [current_platform()]}))

        assert result.passed is True
        assert result.message.startswith("Content has changed")

    async def test_unchanged_passes(self, css_builder, fake_pool, capture_options):
        opts = capture_options.model_copy(update={"platforms": [current_platform()]})
        await match_screenshot("<div>Hello</div>", "m.same", css_builder, fake_pool, opts)

        result = await match_screenshot("<div>Hello</div>", "m.same", css_builder, fake_pool, opts)

        assert result.passed is True
        assert result.message == "Content has not changed."

    async def test_change_fails_until_updated(self, css_builder, fake_pool, capture_options, monkeypatch):
        monkeypatch.delenv("SPOTCHECK_UPDATE", raising=False)
        opts = CaptureOptions.model_validate({
            **capture_options.model_dump(exclude_unset=True, exclude={"update"}),
            "platforms": [current_platform()],
        })
        await match_screenshot("<div>Hello</div>", "m.change", css_builder, fake_pool, opts)

        failed = await match_screenshot("<div>Goodbye</div>", "m.change", css_builder, fake_pool, opts)
        assert failed.passed is False
        assert "changed, not updated" in failed.message

        monkeypatch.setenv("SPOTCHECK_UPDATE", "true")
        updated = await match_screenshot("<div>Goodbye</div>", "m.change", css_builder, fake_pool, opts)
        assert updated.passed is True

    async def test_other_platform_change_fails(self, css_builder, fake_pool, capture_options):
        result = await match_screenshot("<div>Hello</div>", "m.other", css_builder, fake_pool,
                                        capture_options, update=False)

        assert result.passed is False
        assert any(r.changed and not r.updated for r in result.results)
