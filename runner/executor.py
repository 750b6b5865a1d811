"""Deterministic replay of recorded step manifests against a live page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Literal, Optional

from playwright.async_api import Error as PlaywrightError, Page

from automation.dsl import (
    AssertTextStep,
    AssertUrlStep,
    AssertVisibleStep,
    ClickStep,
    InputStep,
    KeydownStep,
    Manifest,
    ScrollStep,
    StepBase,
)

from .config import RunnerConfig
from .reporter import RunReporter, RunResult
from .safe_interactions import (
    StepError,
    page_text,
    resolve_locator,
    safe_click,
    safe_fill,
    safe_press,
    safe_select,
    wait_visible,
    with_timeout,
)

log = logging.getLogger(__name__)

OutcomeStatus = Literal["success", "warning", "failed"]

_TEXT_PRESENT_SCRIPT = """
    (needle) => {
        const body = document.body;
        return !!body && (body.innerText || '').includes(needle);
    }
"""

_HINT_MAX_LENGTH = 160


def _first_line(exc: BaseException) -> str:
    text = str(exc).strip()
    if not text:
        return type(exc).__name__
    return text.splitlines()[0]


@dataclass(slots=True)
class StepOutcome:
    status: OutcomeStatus
    detail: str = ""
    error: Optional[StepError] = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


_LOG_LABELS = {"success": "Success", "warning": "Warning", "failed": "Failed"}


class StepInterpreter:
    """Replays one manifest, one step at a time, against a single page."""

    def __init__(self, page: Page, config: RunnerConfig, reporter: Optional[RunReporter] = None) -> None:
        self.page = page
        self.config = config
        self.reporter = reporter or RunReporter()

    async def run(self, manifest: Manifest) -> RunResult:
        steps = manifest.steps
        if not steps:
            raise ValueError("manifest must contain at least one step")

        navigation_note = await self._navigate(steps[0])
        for index, step in enumerate(steps):
            outcome = await self._execute_step(index, step, is_last=manifest.is_last(index))
            detail = outcome.detail
            if index == 0 and navigation_note:
                detail = f"{detail}; {navigation_note}" if detail else navigation_note
            self.reporter.log_step(index, step.step_type, _LOG_LABELS[outcome.status], detail)
            await self._capture(index, outcome.status)

            if not outcome.ok:
                message = f"Execution failed at Step {index + 1} [{step.step_type}]: {detail}"
                hint = await self._failure_hint()
                if hint:
                    message = f"{message} (page shows: {hint})"
                log.info("Run aborted at step %d: %s", index + 1, message)
                self.reporter.fail(message)
                return self.reporter.snapshot()

        return self.reporter.snapshot()

    async def _navigate(self, step: StepBase) -> str:
        if not step.url:
            return ""
        timeout = self.config.navigation_timeout_ms
        try:
            await with_timeout(
                self.page.goto(step.url, wait_until="domcontentloaded", timeout=timeout),
                timeout,
                label=f"navigating to {step.url}",
            )
        except Exception as exc:
            log.warning("Navigation to %s failed, continuing with first step: %s", step.url, exc)
            return f"navigation to {step.url} did not complete ({_first_line(exc)})"
        return ""

    async def _execute_step(self, index: int, step: StepBase, *, is_last: bool) -> StepOutcome:
        try:
            detail = await self._perform(step)
            return StepOutcome("success", detail)
        except StepError as exc:
            error = exc
        except PlaywrightError as exc:
            error = StepError(_first_line(exc), code="ACTION")
        except Exception as exc:
            log.exception("Unexpected error in step %d", index + 1)
            error = StepError(_first_line(exc), code="ACTION")

        if step.is_assertion:
            return await self._assertion_fallback(step, error, is_last=is_last)
        return StepOutcome("failed", _first_line(error), error=error)

    async def _assertion_fallback(self, step: StepBase, error: StepError, *, is_last: bool) -> StepOutcome:
        if is_last:
            message = f"{step.step_type} {self._expectation(step)}: {_first_line(error)}"
            self.reporter.mark_lenient(message)
            log.info("Ignoring final step assertion mismatch: %s", message)
            return StepOutcome("warning", f"final step assertion mismatch ignored ({_first_line(error)})")

        try:
            await self._wait_for_assertion(step)
        except Exception as exc:
            failure = StepError(
                f"{step.step_type} {self._expectation(step)} not satisfied within "
                f"{self.config.assertion_wait_ms} ms ({_first_line(exc)})",
                code="ASSERTION",
            )
            return StepOutcome("failed", str(failure), error=failure)
        return StepOutcome("success", "passed after waiting")

    @staticmethod
    def _expectation(step: StepBase) -> str:
        if isinstance(step, AssertUrlStep):
            return f"expected URL to contain '{step.value}'"
        if isinstance(step, AssertTextStep):
            return f"expected page text to contain '{step.value}'"
        return f"expected {step.describe_locator()} to be visible"

    async def _perform(self, step: StepBase) -> str:
        timeout = self.config.action_timeout_ms
        page = self.page
        if isinstance(step, ClickStep):
            await safe_click(await resolve_locator(page, step, timeout=timeout), timeout=timeout)
            return ""
        if isinstance(step, InputStep):
            locator = await resolve_locator(page, step, timeout=timeout)
            if step.tag_name and step.tag_name.upper() == "SELECT":
                await safe_select(locator, step.value, timeout=timeout)
            else:
                await safe_fill(locator, step.value, timeout=timeout)
            return ""
        if isinstance(step, KeydownStep):
            await safe_press(page, step.key, timeout=timeout)
            return ""
        if isinstance(step, ScrollStep):
            return f"scroll to ({step.scroll_x or 0:g}, {step.scroll_y or 0:g}) recorded, not replayed"
        if isinstance(step, AssertUrlStep):
            current = page.url
            if step.value not in current:
                raise StepError(f"current URL '{current}' does not contain '{step.value}'", code="ASSERTION")
            return ""
        if isinstance(step, AssertTextStep):
            text = await page_text(page, timeout=timeout)
            if step.value not in text:
                raise StepError(f"text '{step.value}' not found on page", code="ASSERTION")
            return ""
        if isinstance(step, AssertVisibleStep):
            await wait_visible(await resolve_locator(page, step, timeout=timeout), timeout=timeout)
            return ""
        raise StepError(f"Unsupported step type {step.step_type}", code="ACTION")

    async def _wait_for_assertion(self, step: StepBase) -> None:
        wait_ms = self.config.assertion_wait_ms
        page = self.page
        if isinstance(step, AssertUrlStep):
            expected = step.value
            await with_timeout(
                page.wait_for_url(lambda url: expected in url, wait_until="commit", timeout=wait_ms),
                wait_ms,
                label=f"waiting for URL to contain '{expected}'",
            )
        elif isinstance(step, AssertTextStep):
            await with_timeout(
                page.wait_for_function(_TEXT_PRESENT_SCRIPT, arg=step.value, timeout=wait_ms),
                wait_ms,
                label=f"waiting for text '{step.value}'",
            )
        elif isinstance(step, AssertVisibleStep):
            await wait_visible(await resolve_locator(page, step, timeout=wait_ms), timeout=wait_ms)
        else:
            raise StepError(f"{step.step_type} is not an assertion", code="ACTION")

    async def _capture(self, index: int, status: OutcomeStatus) -> None:
        timeout = self.config.screenshot_timeout_ms
        try:
            image = await with_timeout(
                self.page.screenshot(type="png", timeout=timeout),
                timeout,
                label="capturing screenshot",
            )
        except Exception as exc:
            log.warning("Screenshot for step %d failed: %s", index + 1, exc)
            return
        self.reporter.add_screenshot(index, image, status)

    async def _failure_hint(self) -> Optional[str]:
        keywords: List[str] = [kw.lower() for kw in self.config.failure_keywords]
        if not keywords:
            return None
        try:
            text = await page_text(self.page, timeout=self.config.action_timeout_ms)
        except Exception as exc:
            log.debug("Could not read page text for failure hint: %s", exc)
            return None
        for line in text.splitlines():
            candidate = " ".join(line.split())
            if not candidate:
                continue
            lowered = candidate.lower()
            if any(keyword in lowered for keyword in keywords):
                return candidate[:_HINT_MAX_LENGTH]
        return None
