"""Baseline store — content hashes and PNG baselines on disk, one file per key."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from spotcheck.models.result import Platform, State

logger = logging.getLogger(__name__)


def content_hash(document: str) -> str:
    """Stable fingerprint of a fully assembled document."""
    return hashlib.sha256(document.encode("utf-8")).hexdigest()


def basename(name: str, *, platform: Platform | None = None, idx: int | None = None,
             state: State | None = None, ext: str = "png") -> str:
    """File name for ``name``: ``<quoted>[.<platform>][.<idx>][.<state>].<ext>``."""
    parts = [quote(name, safe="")]
    if platform is not None:
        parts.append(platform.value)
    if idx is not None:
        parts.append(str(idx))
    if state is not None:
        parts.append(state.value)
    parts.append(ext)
    return ".".join(parts)


class BaselineStore:
    """Reads and writes baseline files under ``root``.

    Missing files read as ``None``. Nothing here deletes a baseline.
    """

    def __init__(self, root: Path, diff_dir: Optional[Path] = None):
        self.root = root
        self.diff_dir = diff_dir or root / "__diff__"

    def hash_path(self, name: str, platform: Platform) -> Path:
        return self.root / basename(name, platform=platform, ext="hash")

    def png_path(self, name: str, idx: int, state: State, platform: Platform | None = None) -> Path:
        return self.root / basename(name, platform=platform, idx=idx, state=state)

    def diff_path(self, name: str, idx: int, state: State, platform: Platform | None = None) -> Path:
        return self.diff_dir / basename(name, platform=platform, idx=idx, state=state)

    async def read_hash(self, name: str, platform: Platform) -> str | None:
        path = self.hash_path(name, platform)
        try:
            return (await asyncio.to_thread(path.read_text, encoding="utf-8")).strip()
        except FileNotFoundError:
            return None

    async def write_hash(self, name: str, platform: Platform, digest: str) -> Path:
        path = self.hash_path(name, platform)
        await asyncio.to_thread(_write, path, digest.encode("utf-8"))
        logger.info("Stored hash for %s (%s)", name, platform.value)
        return path

    async def read_png(self, name: str, idx: int, state: State, platform: Platform | None = None) -> bytes | None:
        path = self.png_path(name, idx, state, platform)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None

    async def write_png(self, name: str, idx: int, state: State, img: bytes,
                        platform: Platform | None = None) -> Path:
        path = self.png_path(name, idx, state, platform)
        await asyncio.to_thread(_write, path, img)
        logger.info("Stored baseline %s", path.name)
        return path

    async def write_diff(self, name: str, idx: int, state: State, img: bytes,
                         platform: Platform | None = None) -> Path:
        path = self.diff_path(name, idx, state, platform)
        await asyncio.to_thread(_write, path, img)
        logger.debug("Wrote diff artifact %s", path)
        return path


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
