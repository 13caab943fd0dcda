"""Exploratory interaction with an unknown booking calendar UI.

The host page's markup is neither documented nor stable, so every probe uses
broad, overlapping selectors and clicks a bounded number of visible matches.
Each step is attempted independently: a failing step is logged and the
driver moves on to the next one. Only the initial page load may fail the
run, because without it nothing can be captured.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import structlog
from bs4 import BeautifulSoup
from playwright.async_api import Locator, Page

from .config import Settings
from .navigation import NEXT_SELECTORS, PREVIOUS_SELECTORS, MonthNavigator, first_visible
from .utils import normalise_whitespace

LOGGER = structlog.get_logger(__name__)

ERROR_PAGE_MARKERS = ("appErrorMessage", "Prøv på nytt")

CALENDAR_SELECTORS = (
    '[class*="calendar"]',
    '[class*="date"]',
    '[class*="month"]',
    '[class*="day"]',
    '[class*="appointment"]',
    '[class*="booking"]',
    ".calendar",
    ".date-picker",
    ".month-view",
)
DATE_SELECTOR = (
    '[class*="date"], [class*="day"], [data-date], [data-day], '
    '[class*="available"], [class*="bookable"]'
)
CLICKABLE_SELECTOR = 'button, [role="button"], [onclick], [class*="click"], [class*="select"]'
CLICKABLE_TEXT_KEYWORDS = ("date", "time", "slot", "book", "dato", "ledig", "bestill")

# Clickable candidates inspected for matching text before giving up.
MAX_CLICKABLE_SCAN = 50

ERROR_CLASS = re.compile(r"error", re.IGNORECASE)


class NavigationError(RuntimeError):
    """The booking page could not be loaded."""


@dataclass
class InteractionReport:
    """What the driver attempted on the page."""

    steps: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    clicks: Dict[str, int] = field(default_factory=dict)
    reloaded: bool = False

    @property
    def total_clicks(self) -> int:
        return sum(self.clicks.values())


def find_error_marker(html: str) -> Optional[str]:
    """Return the first known error-page marker present in ``html``."""
    for marker in ERROR_PAGE_MARKERS:
        if marker in html:
            return marker
    return None


def error_banners(html: str) -> List[str]:
    """Visible text of elements styled as errors."""
    soup = BeautifulSoup(html, "html.parser")
    banners: List[str] = []
    for element in soup.find_all(attrs={"class": ERROR_CLASS}):
        text = normalise_whitespace(element.get_text(" "))
        if text and text not in banners:
            banners.append(text)
    return banners


class InteractionDriver:
    """Drives a booking page so it issues the API calls worth capturing."""

    def __init__(self, page: Page, settings: Settings):
        self._page = page
        self._settings = settings

    async def run(
        self,
        url: str,
        target_month: Optional[date] = None,
        *,
        today: Optional[date] = None,
    ) -> InteractionReport:
        report = InteractionReport()

        await self._load(url, report)

        if target_month is not None:
            navigator = MonthNavigator(self._page, self._settings)

            async def navigate_month() -> int:
                return await navigator.navigate(target_month, today=today)

            await self._attempt("month", navigate_month, report)

        await self._attempt("calendar", self._probe_calendar, report)
        await self._attempt("paging", self._probe_paging, report)
        await self._attempt("dates", self._probe_dates, report)
        await self._attempt("buttons", self._probe_buttons, report)

        await self._attempt("settle", self._settle, report)
        LOGGER.info(
            "interaction.complete",
            steps=report.steps,
            failures=list(report.failures),
            clicks=report.total_clicks,
        )
        return report

    async def _attempt(
        self,
        name: str,
        step: Callable[[], Awaitable[int]],
        report: InteractionReport,
    ) -> None:
        report.steps.append(name)
        try:
            report.clicks[name] = await step()
        except Exception as exc:  # noqa: BLE001
            report.failures[name] = str(exc)
            LOGGER.warning("interaction.step_failed", step=name, error=str(exc))

    async def _load(self, url: str, report: InteractionReport) -> None:
        """Open ``url``; reload once if the page renders a known error state."""
        LOGGER.info("interaction.navigate", url=url)
        report.steps.append("load")
        try:
            await self._page.goto(
                url,
                wait_until="networkidle",
                timeout=self._settings.navigation_timeout_ms,
            )
        except Exception as exc:
            raise NavigationError(f"Failed to load {url}: {exc}") from exc

        await self._page.wait_for_timeout(self._settings.initial_settle_ms)

        try:
            html = await self._page.content()
            LOGGER.info(
                "interaction.loaded",
                title=await self._page.title(),
                current_url=self._page.url,
            )
            for banner in error_banners(html):
                LOGGER.info("interaction.error_banner", text=banner[:200])

            marker = find_error_marker(html)
            if marker is None:
                return
            LOGGER.warning("interaction.error_page", marker=marker)
            report.reloaded = True
            await self._page.reload(
                wait_until="networkidle",
                timeout=self._settings.navigation_timeout_ms,
            )
            await self._page.wait_for_timeout(self._settings.reload_settle_ms)
        except Exception as exc:  # noqa: BLE001
            report.failures["load"] = str(exc)
            LOGGER.warning("interaction.reload_failed", error=str(exc))

    async def _probe_calendar(self) -> int:
        clicks = 0
        for selector in CALENDAR_SELECTORS:
            elements = await self._candidates(selector)
            clicks += await self._click_each(
                elements[: self._settings.max_calendar_clicks],
                self._settings.click_settle_ms,
            )
        return clicks

    async def _probe_paging(self) -> int:
        """Page forward then back so month-level API calls fire."""
        clicks = 0
        forward = await self._candidates(", ".join(NEXT_SELECTORS))
        for button in forward[: self._settings.max_paging_clicks]:
            if not await self._click(button, self._settings.paging_settle_ms):
                continue
            clicks += 1
            back = await first_visible(self._page, PREVIOUS_SELECTORS)
            if back is not None and await self._click(back, self._settings.paging_settle_ms):
                clicks += 1
        return clicks

    async def _probe_dates(self) -> int:
        elements = await self._candidates(DATE_SELECTOR)
        LOGGER.info("interaction.date_candidates", count=len(elements))
        clicks = 0
        for element in elements[: self._settings.max_date_clicks]:
            if not await self._click(element, self._settings.date_settle_ms):
                continue
            clicks += 1
            try:
                await element.scroll_into_view_if_needed(timeout=self._settings.click_timeout_ms)
                await self._page.wait_for_timeout(self._settings.scroll_settle_ms)
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("interaction.scroll_failed", error=str(exc))
        return clicks

    async def _probe_buttons(self) -> int:
        elements = await self._candidates(CLICKABLE_SELECTOR)
        clicks = 0
        for element in elements[:MAX_CLICKABLE_SCAN]:
            if clicks >= self._settings.max_button_clicks:
                break
            try:
                if not await element.is_visible():
                    continue
                text = (await element.text_content(timeout=self._settings.click_timeout_ms)) or ""
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("interaction.text_failed", error=str(exc))
                continue
            lowered = text.lower()
            if not any(keyword in lowered for keyword in CLICKABLE_TEXT_KEYWORDS):
                continue
            LOGGER.debug("interaction.button", text=normalise_whitespace(text)[:80])
            if await self._click(element, self._settings.click_settle_ms):
                clicks += 1
        return clicks

    async def _settle(self) -> int:
        await self._page.wait_for_timeout(self._settings.final_settle_ms)
        return 0

    async def _candidates(self, selector: str) -> List[Locator]:
        try:
            return await self._page.locator(selector).all()
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("interaction.selector_failed", selector=selector, error=str(exc))
            return []

    async def _click_each(self, elements: Sequence[Locator], settle_ms: int) -> int:
        clicks = 0
        for element in elements:
            if await self._click(element, settle_ms):
                clicks += 1
        return clicks

    async def _click(self, element: Locator, settle_ms: int) -> bool:
        """Click ``element`` if visible, then pause; never raises."""
        try:
            if not await element.is_visible():
                return False
            await element.click(timeout=self._settings.click_timeout_ms)
            await self._page.wait_for_timeout(settle_ms)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("interaction.click_failed", error=str(exc))
            return False
        return True
