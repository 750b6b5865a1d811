"""Bounded element interactions used by the step interpreter."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, List, Optional, TypeVar

from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from automation.dsl.models import StepBase

log = logging.getLogger(__name__)

T = TypeVar("T")


class StepError(Exception):
    """Failure of a single step; never escapes the interpreter."""

    def __init__(self, message: str, *, code: str = "ACTION"):
        super().__init__(message)
        self.code = code


async def with_timeout(op: Awaitable[T], ms: int, *, label: str = "operation") -> T:
    """Await ``op`` for at most ``ms`` milliseconds.

    Any timeout, whether raised by asyncio or by Playwright itself, surfaces as
    a ``StepError`` with code ``TIMEOUT``.
    """

    try:
        return await asyncio.wait_for(op, timeout=ms / 1000)
    except asyncio.TimeoutError as exc:
        raise StepError(f"Timed out after {ms} ms while {label}", code="TIMEOUT") from exc
    except PlaywrightTimeoutError as exc:
        raise StepError(f"Timed out after {ms} ms while {label}", code="TIMEOUT") from exc


def _css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def locator_candidates(step: StepBase) -> List[str]:
    """Playwright selectors for a step, in the recorder's preference order."""

    candidates: List[str] = []
    if step.xpath:
        candidates.append(f"xpath={step.xpath}")
    if step.id:
        candidates.append(f'[id="{_css_string(step.id)}"]')
    if step.name:
        candidates.append(f'[name="{_css_string(step.name)}"]')
    if step.placeholder:
        candidates.append(f'[placeholder="{_css_string(step.placeholder)}"]')
    if step.class_name:
        classes = [part for part in step.class_name.split() if part]
        if classes:
            candidates.append("".join(f'[class~="{_css_string(part)}"]' for part in classes))
    if step.text and step.tag_name:
        clean_text = " ".join(step.text.split())
        candidates.append(f'{step.tag_name.lower()}:has-text("{_css_string(clean_text)}")')
    return candidates


def locator_selector(step: StepBase) -> Optional[str]:
    candidates = locator_candidates(step)
    return candidates[0] if candidates else None


async def resolve_locator(page: Page, step: StepBase, *, timeout: int) -> Locator:
    """Return the first match of the most preferred selector that matches anything.

    When no candidate matches yet, the preferred selector is returned so the
    following action waits on it.
    """

    candidates = locator_candidates(step)
    if not candidates:
        raise StepError(f"{step.step_type} step has no usable locator", code="LOCATOR")
    if len(candidates) > 1:
        for selector in candidates:
            locator = page.locator(selector)
            if await with_timeout(locator.count(), timeout, label=f"counting {selector}"):
                return locator.first
        log.debug("No candidate matched yet for %s, waiting on %s", step.step_type, candidates[0])
    return page.locator(candidates[0]).first


async def scroll_into_view(locator: Locator, timeout: int) -> None:
    await with_timeout(
        locator.scroll_into_view_if_needed(timeout=timeout),
        timeout,
        label="scrolling element into view",
    )


async def safe_click(locator: Locator, *, timeout: int) -> None:
    await scroll_into_view(locator, timeout)
    await with_timeout(locator.click(timeout=timeout), timeout, label="clicking element")


async def safe_fill(locator: Locator, value: str, *, timeout: int) -> None:
    """Overwrite the field value; ``fill`` clears existing content first."""

    await scroll_into_view(locator, timeout)
    await with_timeout(locator.fill(value, timeout=timeout), timeout, label="filling element")


async def safe_select(locator: Locator, value: str, *, timeout: int) -> None:
    await scroll_into_view(locator, timeout)
    await with_timeout(locator.select_option(value, timeout=timeout), timeout, label="selecting option")


async def safe_press(page: Page, key: str, *, timeout: int) -> None:
    await with_timeout(page.keyboard.press(key), timeout, label=f"pressing {key}")


async def wait_visible(locator: Locator, *, timeout: int) -> None:
    await with_timeout(
        locator.wait_for(state="visible", timeout=timeout),
        timeout,
        label="waiting for element to become visible",
    )


async def page_text(page: Page, *, timeout: int) -> str:
    text = await with_timeout(page.inner_text("body", timeout=timeout), timeout, label="reading page text")
    return text or ""
