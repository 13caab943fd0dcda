"""Month paging on third-party calendar widgets."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import structlog
from playwright.async_api import Locator, Page

from .config import Settings

LOGGER = structlog.get_logger(__name__)

NEXT_SELECTORS = (
    '[class*="next"], [class*="forward"], [class*="arrow-right"]',
    'button:has-text(">"), button:has-text("Next"), [aria-label*="next" i]',
)
PREVIOUS_SELECTORS = (
    '[class*="prev"], [class*="back"], [class*="arrow-left"]',
    'button:has-text("<"), button:has-text("Prev"), [aria-label*="previous" i]',
)

# Candidates inspected per selector when looking for a visible control.
MAX_CANDIDATES = 5


def months_between(target: date, today: date) -> int:
    """Signed number of calendar months from ``today`` to ``target``."""
    return (target.year * 12 + target.month) - (today.year * 12 + today.month)


async def first_visible(page: Page, selectors: Sequence[str]) -> Optional[Locator]:
    """Return the first visible element matching any selector, in order."""
    for selector in selectors:
        try:
            candidates = await page.locator(selector).all()
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("navigation.selector_failed", selector=selector, error=str(exc))
            continue
        for candidate in candidates[:MAX_CANDIDATES]:
            try:
                if await candidate.is_visible():
                    return candidate
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("navigation.visibility_failed", selector=selector, error=str(exc))
    return None


class MonthNavigator:
    """Pages a calendar forward or backward until it shows a target month.

    Best effort: a missing control or failed click is logged and the next
    attempt proceeds. The caller never sees an exception.
    """

    def __init__(self, page: Page, settings: Settings):
        self._page = page
        self._settings = settings

    async def navigate(self, target_month: date, *, today: Optional[date] = None) -> int:
        """Click the paging control ``|months_between|`` times; return successful clicks."""
        today = today or date.today()
        diff = months_between(target_month, today)
        if diff == 0:
            LOGGER.info("navigation.already_on_month", month=f"{target_month:%Y-%m}")
            return 0

        forward = diff > 0
        selectors = NEXT_SELECTORS if forward else PREVIOUS_SELECTORS
        direction = "next" if forward else "previous"
        clicks = 0

        for attempt in range(1, abs(diff) + 1):
            try:
                control = await first_visible(self._page, selectors)
                if control is None:
                    LOGGER.warning("navigation.control_missing", direction=direction, attempt=attempt)
                    continue
                await control.click(timeout=self._settings.click_timeout_ms)
                clicks += 1
                await self._page.wait_for_timeout(self._settings.month_settle_ms)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning(
                    "navigation.click_failed",
                    direction=direction,
                    attempt=attempt,
                    error=str(exc),
                )

        LOGGER.info(
            "navigation.complete",
            month=f"{target_month:%Y-%m}",
            requested=abs(diff),
            clicked=clicks,
        )
        return clicks
