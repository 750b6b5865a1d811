import asyncio

import pytest

from automation.dsl import models
from runner.safe_interactions import (
    StepError,
    locator_selector,
    resolve_locator,
    safe_click,
    safe_fill,
    safe_press,
    safe_select,
    wait_visible,
    with_timeout,
)

from playwright_fakes import FakePage, PlaywrightTimeoutError


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"xpath": "//form/button", "id": "submit"}, "xpath=//form/button"),
        ({"id": "submit", "name": "go"}, '[id="submit"]'),
        ({"name": "q", "placeholder": "Search"}, '[name="q"]'),
        ({"placeholder": "Search"}, '[placeholder="Search"]'),
        ({"className": "btn  btn-primary"}, '[class~="btn"][class~="btn-primary"]'),
        ({"text": "  Sign\n in ", "tagName": "BUTTON"}, 'button:has-text("Sign in")'),
    ],
)
def test_locator_preference_order(fields, expected):
    step = models.ClickStep(**fields)
    assert locator_selector(step) == expected


def test_selector_escapes_quotes():
    step = models.ClickStep(id='say "hi"')
    assert locator_selector(step) == '[id="say \\"hi\\""]'


def test_resolve_locator_without_selector_raises_locator_error():
    step = models.KeydownStep(key="Tab")
    with pytest.raises(StepError) as excinfo:
        asyncio.run(resolve_locator(FakePage(), step, timeout=500))
    assert excinfo.value.code == "LOCATOR"


def test_resolve_locator_takes_first_match():
    page = FakePage()
    target = page.add('[id="login-btn"]')
    assert asyncio.run(resolve_locator(page, models.ClickStep(id="login-btn"), timeout=500)) is target
    assert page.requested_selectors == ['[id="login-btn"]']


def test_resolve_locator_prefers_earlier_candidate_when_both_match():
    page = FakePage()
    by_id = page.add('[id="menu"]')
    page.add('div:has-text("Menu")')
    step = models.ClickStep(id="menu", text="Menu", tagName="DIV")
    assert asyncio.run(resolve_locator(page, step, timeout=500)) is by_id


def test_resolve_locator_falls_back_to_text_and_tag():
    page = FakePage()
    icon = page.add('svg:has-text("Menu")')
    step = models.ClickStep(tagName="svg", className="stale-class", text="Menu")
    assert asyncio.run(resolve_locator(page, step, timeout=500)) is icon


def test_resolve_locator_waits_on_preferred_when_nothing_matches():
    page = FakePage()
    step = models.ClickStep(id="later", text="Later", tagName="BUTTON")
    locator = asyncio.run(resolve_locator(page, step, timeout=500))
    assert locator.selector == '[id="later"]'


def test_svg_class_name_uses_base_val():
    step = models.ClickStep(tagName="svg", className={"baseVal": "icon icon-menu", "animVal": "icon"}, text="Menu")
    assert step.class_name == "icon icon-menu"
    assert locator_selector(step) == '[class~="icon"][class~="icon-menu"]'


def test_non_string_class_name_is_dropped():
    step = models.ClickStep(tagName="svg", className={}, text="Menu")
    assert step.class_name is None
    assert locator_selector(step) == 'svg:has-text("Menu")'


def test_safe_select_chooses_option():
    page = FakePage()
    locator = page.add('[id="country"]')

    asyncio.run(safe_select(locator, "TH", timeout=500))

    assert locator.value == "TH"
    assert [action for _, action, _ in page.record] == ["scroll", "select_option"]


def test_with_timeout_converts_asyncio_timeout():
    async def _hang():
        await asyncio.sleep(5)

    with pytest.raises(StepError) as excinfo:
        asyncio.run(with_timeout(_hang(), 20, label="waiting"))
    assert excinfo.value.code == "TIMEOUT"
    assert "Timed out after 20 ms while waiting" in str(excinfo.value)


def test_with_timeout_converts_playwright_timeout():
    async def _expire():
        raise PlaywrightTimeoutError("Timeout 500ms exceeded")

    with pytest.raises(StepError) as excinfo:
        asyncio.run(with_timeout(_expire(), 500, label="clicking element"))
    assert excinfo.value.code == "TIMEOUT"


def test_with_timeout_returns_value():
    async def _value():
        return 42

    assert asyncio.run(with_timeout(_value(), 100)) == 42


def test_safe_click_scrolls_before_clicking():
    page = FakePage()
    locator = page.add('[id="next"]')

    asyncio.run(safe_click(locator, timeout=500))

    assert [action for _, action, _ in page.record] == ["scroll", "click"]
    assert all(details["timeout"] == 500 for _, _, details in page.record)


def test_safe_fill_overwrites_value():
    page = FakePage()
    locator = page.add('[id="search"]')
    locator.value = "old text"

    asyncio.run(safe_fill(locator, "foo", timeout=500))

    assert locator.value == "foo"


def test_safe_click_on_missing_element_times_out():
    page = FakePage()
    with pytest.raises(StepError) as excinfo:
        asyncio.run(safe_click(page.locator('[id="missing"]').first, timeout=500))
    assert excinfo.value.code == "TIMEOUT"


def test_hanging_click_is_bounded():
    page = FakePage()
    locator = page.add('[id="slow"]', hang=True)
    with pytest.raises(StepError):
        asyncio.run(safe_click(locator, timeout=30))


def test_safe_press_uses_keyboard():
    page = FakePage()
    asyncio.run(safe_press(page, "Enter", timeout=500))
    assert page.record == [("keyboard", "press", {"key": "Enter"})]


def test_wait_visible_fails_for_hidden_element():
    page = FakePage()
    locator = page.add('[id="banner"]', visible=False)
    with pytest.raises(StepError):
        asyncio.run(wait_visible(locator, timeout=500))
