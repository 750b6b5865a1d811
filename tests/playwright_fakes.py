"""In-memory stand-ins for the parts of the Playwright page API the runner touches."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeLocator:
    def __init__(
        self,
        selector: str,
        page: "FakePage",
        *,
        exists: bool = True,
        visible: bool = True,
        on_click: Optional[Callable[["FakePage"], None]] = None,
        hang: bool = False,
        error: Optional[Exception] = None,
        appears_after: int = 0,
    ) -> None:
        self.selector = selector
        self.page = page
        self.exists = exists
        self.visible = visible
        self.on_click = on_click
        self.hang = hang
        self.error = error
        self.appears_after = appears_after
        self.value = ""

    @property
    def first(self) -> "FakeLocator":
        return self

    async def _act(self, action: str, **details: Any) -> None:
        self.page.record.append((self.selector, action, details))
        if self.hang:
            await asyncio.sleep(10)
        if self.error is not None:
            raise self.error
        if not self.exists:
            raise PlaywrightTimeoutError(f"Timeout {details.get('timeout')}ms exceeded waiting for {self.selector}")

    async def count(self) -> int:
        self.page.record.append((self.selector, "count", {}))
        return 1 if self.exists else 0

    async def scroll_into_view_if_needed(self, *, timeout: Optional[int] = None) -> None:
        await self._act("scroll", timeout=timeout)

    async def click(self, *, timeout: Optional[int] = None) -> None:
        await self._act("click", timeout=timeout)
        if self.on_click is not None:
            self.on_click(self.page)

    async def fill(self, value: str, *, timeout: Optional[int] = None) -> None:
        await self._act("fill", value=value, timeout=timeout)
        self.value = value

    async def select_option(self, value: str, *, timeout: Optional[int] = None) -> List[str]:
        await self._act("select_option", value=value, timeout=timeout)
        self.value = value
        return [value]

    async def wait_for(self, *, state: str = "visible", timeout: Optional[int] = None) -> None:
        await self._act("wait_for", state=state, timeout=timeout)
        if state == "visible" and not self.visible:
            if self.appears_after:
                self.appears_after -= 1
                self.visible = self.appears_after == 0
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.selector} to be visible")


class FakeKeyboard:
    def __init__(self, page: "FakePage") -> None:
        self.page = page

    async def press(self, key: str) -> None:
        self.page.record.append(("keyboard", "press", {"key": key}))


class FakePage:
    def __init__(
        self,
        *,
        url: str = "about:blank",
        body_text: str = "",
        text_after_wait: Optional[str] = None,
        url_after_wait: Optional[str] = None,
        screenshot_error: Optional[Exception] = None,
        goto_error: Optional[Exception] = None,
    ) -> None:
        self.url = url
        self.body_text = body_text
        self.text_after_wait = text_after_wait
        self.url_after_wait = url_after_wait
        self.screenshot_error = screenshot_error
        self.goto_error = goto_error
        self.record: List[tuple[str, str, Dict[str, Any]]] = []
        self.locators: Dict[str, FakeLocator] = {}
        self.requested_selectors: List[str] = []
        self.keyboard = FakeKeyboard(self)
        self.screenshots_taken = 0
        self.closed = False

    def add(self, selector: str, **kwargs: Any) -> FakeLocator:
        locator = FakeLocator(selector, self, **kwargs)
        self.locators[selector] = locator
        return locator

    def locator(self, selector: str) -> FakeLocator:
        self.requested_selectors.append(selector)
        return self.locators.get(selector) or FakeLocator(selector, self, exists=False, visible=False)

    async def goto(self, url: str, *, wait_until: str = "load", timeout: Optional[int] = None) -> None:
        self.record.append(("page", "goto", {"url": url, "wait_until": wait_until, "timeout": timeout}))
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url

    async def inner_text(self, selector: str, *, timeout: Optional[int] = None) -> str:
        return self.body_text

    async def wait_for_url(self, predicate: Callable[[str], bool], *, wait_until: str = "load", timeout=None):
        if self.url_after_wait is not None:
            self.url = self.url_after_wait
        if not predicate(self.url):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for URL")

    async def wait_for_function(self, script: str, *, arg: Any = None, timeout=None):
        if self.text_after_wait is not None:
            self.body_text = self.text_after_wait
        if arg not in self.body_text:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded")
        return True

    async def screenshot(self, *, type: str = "png", timeout: Optional[int] = None) -> bytes:
        if self.screenshot_error is not None:
            raise self.screenshot_error
        self.screenshots_taken += 1
        return b"\x89PNG-fake"

    def is_closed(self) -> bool:
        return self.closed

    async def wait_for_timeout(self, ms: int) -> None:
        self.record.append(("page", "wait_for_timeout", {"ms": ms}))


def actions(page: FakePage, action: str) -> List[str]:
    return [selector for selector, name, _ in page.record if name == action]


__all__ = ["FakeLocator", "FakePage", "PlaywrightError", "PlaywrightTimeoutError", "actions"]
