"""Configuration models for spotcheck."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from spotcheck.models.result import ALL_PLATFORMS, ALL_STATES, Platform, State

_TRUE = ("true", "1", "yes")
_FALSE = ("", "false", "0", "no")


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        value = str(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE:
            return True
        if normalized in _FALSE:
            return False
    raise ValueError(f"Invalid boolean value: {value!r}")


class Env(BaseModel):
    """Environment toggles consulted as defaults."""

    SPOTCHECK_UPDATE: bool = False
    SPOTCHECK_PRESERVE: bool = False
    TEST_CLEAN: bool = True
    CI: bool = False
    GITHUB_ACTIONS: bool = False

    @field_validator("SPOTCHECK_UPDATE", "SPOTCHECK_PRESERVE", "TEST_CLEAN", mode="before")
    @classmethod
    def coerce_bool(cls, v: object) -> bool:
        return parse_bool(v)

    # CI providers disagree on the value, any non-empty flag counts
    @field_validator("CI", "GITHUB_ACTIONS", mode="before")
    @classmethod
    def coerce_flag(cls, v: object) -> bool:
        return str(v).strip().lower() not in _FALSE


def env() -> Env:
    """Parse the spotcheck toggles out of the process environment."""
    fields = Env.model_fields.keys()
    return Env(**{k: v for k, v in os.environ.items() if k in fields})


class PoolOptions(BaseModel):
    max: int = Field(default=10, ge=1)  # maximum number of browsers to spawn
    preserve_browser: Optional[bool] = None  # None -> SPOTCHECK_PRESERVE


class CaptureOptions(BaseModel):
    css: Optional[list[str]] = None  # stylesheet paths handed to the builder
    path: str = "__screenshots__"
    diff_path: str = "__diff__"
    threshold: float = Field(default=0.1, ge=0, le=1)  # tolerated YIQ colour distance per pixel
    base_dir: Optional[Path] = None  # relative paths resolve here, default cwd
    update: bool = False
    states: list[State] = Field(default_factory=lambda: list(ALL_STATES))
    platforms: list[Platform] = Field(default_factory=lambda: list(ALL_PLATFORMS))

    def output_dir(self) -> Path:
        return self._resolve(self.path)

    def diff_dir(self) -> Path:
        return self._resolve(self.diff_path)

    def _resolve(self, loc: str) -> Path:
        p = Path(loc)
        if p.is_absolute():
            return p
        return (self.base_dir or Path.cwd()) / p

    def ordered_states(self) -> list[State]:
        """Configured states in the fixed execution order."""
        return [s for s in ALL_STATES if s in self.states]


class SpotcheckConfig(BaseModel):
    capture: CaptureOptions = Field(default_factory=CaptureOptions)
    pool: PoolOptions = Field(default_factory=PoolOptions)

    @classmethod
    def load(cls, path: str | Path) -> "SpotcheckConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            # Forced updates are a per-run decision, never a stored default
            data = self.model_dump(mode="json", exclude_none=True, exclude={"capture": {"update"}})
            json.dump(data, f, indent=2)
