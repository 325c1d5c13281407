"""Ready-made css builders."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from .render import Builder

logger = logging.getLogger(__name__)


def file_builder(base_dir: Optional[Path] = None) -> Builder:
    """Build css by reading the stylesheet files as they are on disk.

    Relative paths resolve against ``base_dir`` (default: cwd). No
    compilation happens; preprocessed css should come from a real build step.
    """

    async def build(document: str, css_paths: list[str]) -> list[str]:
        paths = [_resolve(p, base_dir) for p in css_paths]
        for path in paths:
            if not path.exists():
                raise FileNotFoundError(f"Stylesheet not found: {path}")
        logger.debug("Reading %d stylesheet(s)", len(paths))
        return list(await asyncio.gather(
            *(asyncio.to_thread(p.read_text, encoding="utf-8") for p in paths)
        ))

    return build


def _resolve(loc: str, base_dir: Optional[Path]) -> Path:
    path = Path(loc)
    if path.is_absolute():
        return path
    return (base_dir or Path.cwd()) / path
