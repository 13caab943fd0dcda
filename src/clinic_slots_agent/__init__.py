"""Clinic booking calendar availability scraper."""

from importlib.metadata import PackageNotFoundError, version

from .models import AvailableDate, CapturedResponse, ScrapeResult, Slot
from .scraper import AvailabilityScraper, scrape

try:
    __version__ = version("clinic-slots-agent")
except PackageNotFoundError:  # pragma: no cover - fallback during local dev
    __version__ = "0.0.0"

__all__ = [
    "AvailabilityScraper",
    "AvailableDate",
    "CapturedResponse",
    "ScrapeResult",
    "Slot",
    "__version__",
    "scrape",
]
