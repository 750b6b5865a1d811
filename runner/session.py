"""Browser session lifecycle: one isolated browser per run."""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from typing import Any, Callable, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from automation.dsl import Manifest

from .config import RunnerConfig
from .executor import StepInterpreter
from .reporter import RunReporter, RunResult
from .structured_logging import prepare_event_log

log = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    IDLE = "IDLE"
    LAUNCHING = "LAUNCHING"
    RUNNING = "RUNNING"
    CLOSING = "CLOSING"


class SessionLaunchError(RuntimeError):
    """The browser could not be started for a run."""


class BrowserSession:
    """Async context manager owning a Playwright browser, context and page.

    Whatever was opened is closed on every exit path, including a failure
    half-way through launching.
    """

    def __init__(
        self,
        config: RunnerConfig,
        *,
        headless: bool,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self.config = config
        self.headless = headless
        self.state = SessionState.IDLE
        self._playwright_factory = playwright_factory
        self._pw: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self) -> "BrowserSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> Page:
        if self.state is not SessionState.IDLE:
            raise SessionLaunchError(f"session cannot be opened from state {self.state.value}")
        self.state = SessionState.LAUNCHING
        mode = "headless" if self.headless else "headed"
        log.info("Launching %s browser", mode)
        try:
            self._pw = await self._playwright_factory().start()
            self._browser = await self._pw.chromium.launch(
                headless=self.headless,
                slow_mo=self.config.slow_mo_for(self.headless),
            )
            self._context = await self._browser.new_context(
                viewport={"width": self.config.viewport_width, "height": self.config.viewport_height}
            )
            self.page = await self._context.new_page()
        except Exception as exc:
            log.error("Browser launch failed: %s", exc)
            await self.close()
            raise SessionLaunchError(f"Failed to launch browser: {exc}") from exc
        self.state = SessionState.RUNNING
        return self.page

    async def close(self) -> None:
        if self.state is SessionState.IDLE and self._pw is None:
            return
        self.state = SessionState.CLOSING
        page, context, browser, pw = self.page, self._context, self._browser, self._pw
        self.page = None
        self._context = None
        self._browser = None
        self._pw = None

        if page is not None and not self.headless and self.config.headed_close_delay_ms:
            try:
                if not page.is_closed():
                    await page.wait_for_timeout(self.config.headed_close_delay_ms)
            except Exception as exc:
                log.debug("Headed close delay interrupted: %s", exc)
        for name, resource in (("context", context), ("browser", browser)):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as exc:
                log.debug("Closing %s failed (already closed?): %s", name, exc)
        if pw is not None:
            try:
                await pw.stop()
            except Exception as exc:
                log.debug("Stopping Playwright failed: %s", exc)
        self.state = SessionState.IDLE
        log.info("Browser session cleaned up")


async def execute_manifest(
    manifest: Manifest,
    *,
    headless: bool,
    config: RunnerConfig,
    run_id: Optional[str] = None,
    session_factory: Callable[..., BrowserSession] = BrowserSession,
) -> RunResult:
    """Launch a fresh session, replay ``manifest`` and always tear down.

    ``SessionLaunchError`` propagates to the caller; everything that happens
    once the page is up is reported through the returned ``RunResult``.
    """

    if not manifest.steps:
        raise ValueError("manifest must contain at least one step")
    run_id = run_id or uuid.uuid4().hex[:8]
    event_log = prepare_event_log(run_id, config.log_root)
    reporter = RunReporter(event_log=event_log)
    try:
        async with session_factory(config, headless=headless) as session:
            interpreter = StepInterpreter(session.page, config, reporter)
            try:
                return await asyncio.wait_for(interpreter.run(manifest), timeout=config.run_timeout_s)
            except asyncio.TimeoutError:
                log.warning("Run %s exceeded %ss, tearing down", run_id, config.run_timeout_s)
                reporter.fail(f"Run exceeded {config.run_timeout_s:g}s time limit")
                return reporter.snapshot()
    finally:
        if event_log is not None:
            event_log.close()
