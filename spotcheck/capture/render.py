"""Render pipeline — turns a markup fragment into the document loaded into the page."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

# (document without css, stylesheet paths) -> raw css text blocks
Builder = Callable[[str, list[str]], Awaitable[list[str]]]
Renderer = Callable[[Any], str]


def to_markup(element: Any, renderer: Optional[Renderer] = None) -> str:
    """Serialize a capture target to markup.

    Strings are used as-is. Anything else goes through ``renderer``, or its
    own ``__html__`` method (the markupsafe/Jinja protocol) if none is given.
    """
    if isinstance(element, str):
        return element
    if renderer is not None:
        return renderer(element)
    if hasattr(element, "__html__"):
        return str(element.__html__())
    raise TypeError(f"Cannot render {type(element).__name__} to markup without a renderer")


def style_blocks(css: Sequence[str]) -> list[str]:
    return [f"<style>{text}</style>" for text in css]


def render(markup: str, css: Optional[Sequence[str]] = None) -> str:
    head = "\n".join(css) if css else ""
    return (
        '<html lang="en">\n'
        f"  <head>{head}</head>\n"
        "  <body>\n"
        f"    {markup}\n"
        "  </body>\n"
        "</html>\n"
    )


async def build_document(markup: str, builder: Builder, css_paths: Optional[list[str]]) -> str:
    """Return the final document with the builder's css inlined.

    The builder is only invoked when ``css_paths`` is set; it receives the
    css-less document so it can scan the markup for the classes in use.
    """
    if css_paths is None:
        return render(markup)

    css = await builder(render(markup), list(css_paths))
    logger.debug("Builder returned %d css block(s) for %d path(s)", len(css), len(css_paths))
    return render(markup, style_blocks(css))
