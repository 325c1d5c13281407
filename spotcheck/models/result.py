"""Capture result data structures."""

from __future__ import annotations

import sys
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class State(str, Enum):
    DEFAULT = "default"
    ACTIVE = "active"
    FOCUS = "focus"
    HOVER = "hover"


class Platform(str, Enum):
    DARWIN = "darwin"
    LINUX = "linux"
    WINDOWS = "windows"


# Execution order, never reordered by configuration.
ALL_STATES: tuple[State, ...] = (State.DEFAULT, State.ACTIVE, State.FOCUS, State.HOVER)
ALL_PLATFORMS: tuple[Platform, ...] = (Platform.DARWIN, Platform.LINUX, Platform.WINDOWS)


def current_platform() -> Platform:
    if sys.platform == "darwin":
        return Platform.DARWIN
    if sys.platform.startswith(("win", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.LINUX


class DiffResult(BaseModel):
    img: bytes  # PNG composite: before | after | diff
    identical: bool
    mismatch: Optional[int] = None  # None when dimensions differ


class ScreenshotDiff(BaseModel):
    """One capture for a (state, element index) pair."""
    state: State
    idx: int
    after: bytes
    before: Optional[bytes] = None
    diff: Optional[bytes] = None
    diff_path: Optional[str] = None  # written only on mismatch
    identical: bool = True


class PlatformResult(BaseModel):
    platform: Platform
    changed: bool
    updated: bool
    captures: list[ScreenshotDiff] = Field(default_factory=list)
