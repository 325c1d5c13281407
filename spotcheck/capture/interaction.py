"""Interaction states — drives elements through hover/active/focus and screenshots them."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Sequence

from playwright.async_api import ElementHandle, Page

from spotcheck.models.result import State

logger = logging.getLogger(__name__)

_CANCEL_ANIMATIONS = """() => {
    for (const anim of document.getAnimations()) {
        anim.cancel();
    }
}"""

_BLUR_ACTIVE = """() => {
    if (document.activeElement) {
        document.activeElement.blur();
    }
}"""


async def apply_state(page: Page, element: ElementHandle, state: State) -> None:
    """Put the page into ``state`` for ``element``."""
    match state:
        case State.DEFAULT:
            pass
        case State.HOVER:
            await element.hover()
        case State.ACTIVE:
            await element.hover()
            await page.mouse.down()
        case State.FOCUS:
            await element.focus()
            # The element may sit under the pointer, keep hover out of the shot
            await page.mouse.move(-1, -1)
        case _:
            raise ValueError(f"Unknown state: {state}")


async def reset_input(page: Page) -> None:
    """Undo pointer and focus side effects of the previous capture.

    After ``mouse.down`` the next captures lose the default focus ring
    unless focus is cycled: press Tab, then blur whatever took focus.
    """
    await page.mouse.up()
    await page.keyboard.press("Tab")
    await page.evaluate(_BLUR_ACTIVE)


async def cancel_animations(page: Page) -> None:
    # cancel(), not finish(): infinite animations never finish
    await page.evaluate(_CANCEL_ANIMATIONS)


async def capture_element(page: Page, element: ElementHandle, state: State) -> bytes:
    try:
        await apply_state(page, element, state)
        return await element.screenshot(type="png", animations="disabled")
    finally:
        await reset_input(page)


async def eligible_children(page: Page) -> list[ElementHandle]:
    """Top-level body children with a non-empty bounding box, in document order."""
    children = []
    for el in await page.query_selector_all("body > *"):
        box = await el.bounding_box()
        if box and box["width"] != 0 and box["height"] != 0:
            children.append(el)
    return children


async def capture_states(
    page: Page, children: Sequence[ElementHandle], states: Sequence[State],
) -> AsyncIterator[tuple[State, int, bytes]]:
    """Yield ``(state, idx, png)`` for every child under every state.

    Everything runs sequentially on the one page: hover, focus and pointer
    presses need the page focused, so states cannot be captured in parallel.
    """
    for state in states:
        for idx, element in enumerate(children):
            img = await capture_element(page, element, state)
            logger.debug("Captured element %d in state %s (%d bytes)", idx, state.value, len(img))
            yield state, idx, img
