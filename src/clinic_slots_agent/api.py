"""FastAPI application exposing the availability scrape."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

import structlog
from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from .cache import ResultCache
from .config import Settings
from .scraper import AvailabilityScraper
from .utils import parse_month

LOGGER = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    scraper: Optional[AvailabilityScraper] = None,
    cache: Optional[ResultCache] = None,
) -> FastAPI:
    """Build the app; collaborators are injectable for tests."""
    if settings is None:
        settings = Settings()
    if scraper is None:
        scraper = AvailabilityScraper(settings)
    if cache is None:
        cache = ResultCache(settings.cache_ttl_seconds)

    app = FastAPI(title="Clinic Slots Agent", version="0.1.0")

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/scrape", response_model=None)
    async def scrape_availability(
        proxy: Optional[str] = Query(default=None),
        month: Optional[str] = Query(default=None),
    ):
        """Scrape the configured clinic, serving fresh cached results when available."""
        target_url = settings.target_url
        if not target_url:
            return JSONResponse(
                status_code=500,
                content={"error": "TARGET_CLINIC_URL environment variable is not configured"},
            )

        target_month = parse_month(month)
        if month and target_month is None:
            LOGGER.warning("api.month_ignored", month=month)

        key = ResultCache.key_for(target_url, proxy, target_month)
        cached = cache.get(key)
        if cached is not None:
            result, age = cached
            LOGGER.info("api.cache_hit", key=key, age=round(age))
            payload = result.model_dump(mode="json", by_alias=True)
            payload.update(cached=True, cacheAge=round(age))
            return payload

        LOGGER.info("api.scrape", month=f"{target_month:%Y-%m}" if target_month else None)
        result = await scraper.scrape(target_url, proxy or None, target_month)
        cache.set(key, result)
        cache.cleanup()

        payload = result.model_dump(mode="json", by_alias=True)
        payload.update(cached=False, scrapedAt=datetime.now(tz=timezone.utc).isoformat())
        return payload

    return app
