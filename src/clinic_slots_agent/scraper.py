"""End-to-end availability scrape of a booking calendar."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, Optional

import structlog

from .browser import BrowserLaunchError, BrowserSession
from .capture import ResponseCapture, log_captured_urls
from .config import Settings
from .extraction import extract_availability, summarise_dates
from .interaction import InteractionDriver
from .models import ScrapeResult, Slot
from .rotation import ProxyRotator, random_user_agent

LOGGER = structlog.get_logger(__name__)

DEMO_NOTE = "Demo data - browser engine not available in this hosting environment"
DEMO_DOCTORS = ("Dr. Smith", "Dr. Johnson")
DEMO_TIMES = (
    ("09:00", "10:30", "14:00"),
    ("11:00", "15:30"),
    ("09:30", "13:00", "16:00", "17:30"),
)


def demo_result(clinic_label: str, today: Optional[date] = None) -> ScrapeResult:
    """Synthetic, clearly labelled availability for hosts that cannot run a browser."""
    today = today or date.today()
    slots = []
    for offset, times in enumerate(DEMO_TIMES, start=1):
        day = (today + timedelta(days=offset)).isoformat()
        for index, time in enumerate(times):
            slots.append(Slot(date=day, time=time, doctor=DEMO_DOCTORS[index % len(DEMO_DOCTORS)]))
    return ScrapeResult(
        clinic=f"{clinic_label} (Demo Mode)",
        available_dates=summarise_dates(slots),
        slots=slots,
        raw_data={"note": DEMO_NOTE},
        demo=True,
    )


class AvailabilityScraper:
    """Runs capture, interaction and extraction against one booking page.

    ``scrape`` never raises (cancellation aside): failures become a result with
    ``error`` set and whatever could be extracted.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        proxies: Optional[ProxyRotator] = None,
        user_agent_factory: Callable[[], str] = random_user_agent,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
    ):
        self._settings = settings or Settings()
        self._proxies = proxies if proxies is not None else ProxyRotator.from_settings(self._settings)
        self._user_agent_factory = user_agent_factory
        self._session_factory = session_factory
        LOGGER.debug("scraper.configured", proxies=len(self._proxies))

    @property
    def settings(self) -> Settings:
        return self._settings

    async def scrape(
        self,
        url: str,
        proxy: Optional[str] = None,
        target_month: Optional[date] = None,
        *,
        today: Optional[date] = None,
    ) -> ScrapeResult:
        clinic = self._settings.clinic_label
        if not url or not url.strip():
            return ScrapeResult(clinic=clinic, error="A target URL is required")

        proxy = proxy or self._proxies.next()
        user_agent = self._user_agent_factory()
        LOGGER.info(
            "scrape.start",
            url=url,
            proxy=proxy or "none",
            month=f"{target_month:%Y-%m}" if target_month else None,
        )

        capture = ResponseCapture(url, self._settings.relevant_hosts)
        try:
            async with self._session_factory(self._settings, proxy=proxy, user_agent=user_agent) as session:
                capture.attach(session.page)
                driver = InteractionDriver(session.page, self._settings)
                await driver.run(url, target_month, today=today)
                records = capture.records
        except BrowserLaunchError as exc:
            LOGGER.error("scrape.launch_failed", error=str(exc))
            if self._settings.demo_on_launch_failure:
                LOGGER.warning("scrape.demo_fallback")
                return demo_result(clinic, today)
            return ScrapeResult(clinic=clinic, error=str(exc))
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("scrape.degraded", error=str(exc))
            return ScrapeResult(clinic=clinic, error=str(exc) or exc.__class__.__name__)

        log_captured_urls(records)
        try:
            availability = extract_availability(records)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("scrape.extraction_failed", error=str(exc))
            return ScrapeResult(
                clinic=clinic,
                raw_data=records if self._settings.include_raw_data else None,
                error=f"Extraction failed: {exc}",
            )

        LOGGER.info(
            "scrape.complete",
            slots=len(availability.slots),
            available_dates=len(availability.available_dates),
        )
        return ScrapeResult(
            clinic=clinic,
            available_dates=availability.available_dates,
            slots=availability.slots,
            raw_data=records if self._settings.include_raw_data else None,
        )


async def scrape(
    url: str,
    proxy: Optional[str] = None,
    target_month: Optional[date] = None,
    *,
    settings: Optional[Settings] = None,
) -> ScrapeResult:
    """Scrape ``url`` with a fresh :class:`AvailabilityScraper`."""
    return await AvailabilityScraper(settings).scrape(url, proxy, target_month)
