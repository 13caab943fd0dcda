"""Network response capture for booking calendar pages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlparse

import structlog
from playwright.async_api import Page, Response

from .models import CapturedResponse

LOGGER = structlog.get_logger(__name__)

# URL substrings suggesting booking/calendar/scheduling data.
RELEVANT_KEYWORDS = (
    "api",
    "calendar",
    "appointment",
    "availability",
    "booking",
    "time",
    "slot",
    "service",
    "clinic",
    "doctor",
    "schedule",
    "date",
    "month",
    "week",
)

DATA_TOKENS = ("json", "data")

JSON_CONTENT_TYPES = ("application/json", "text/json", "+json")

# Static assets are never captured, even from relevant URLs.
STATIC_CONTENT_TYPES = ("image/", "font/", "video/", "audio/", "javascript", "text/css", "octet-stream")


def is_json_content_type(content_type: str) -> bool:
    lowered = content_type.lower()
    return any(token in lowered for token in JSON_CONTENT_TYPES)


def is_static_content_type(content_type: str) -> bool:
    lowered = content_type.lower()
    return any(token in lowered for token in STATIC_CONTENT_TYPES)


class ResponseCapture:
    """Collects relevant JSON/text responses emitted by a page.

    The buffer belongs to a single scrape invocation. Handlers never raise:
    a response that cannot be read is logged and skipped.
    """

    def __init__(self, target_url: Optional[str] = None, hosts: Iterable[str] = ()):
        host_tokens = [host.lower() for host in hosts if host]
        if target_url:
            target_host = urlparse(target_url).hostname
            if target_host:
                host_tokens.append(target_host.lower())
        self._hosts: tuple[str, ...] = tuple(dict.fromkeys(host_tokens))
        self._records: List[CapturedResponse] = []

    @property
    def records(self) -> List[CapturedResponse]:
        """Snapshot of the buffer in capture order."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def attach(self, page: Page) -> None:
        """Subscribe to every response the page receives."""
        page.on("response", self.on_response)

    def is_relevant(self, url: str) -> bool:
        lowered = url.lower()
        if any(keyword in lowered for keyword in RELEVANT_KEYWORDS):
            return True
        return any(host in lowered for host in self._hosts) and any(
            token in lowered for token in DATA_TOKENS
        )

    async def on_response(self, response: Response) -> None:
        """Record ``response`` if it passes the relevance filter."""
        try:
            url = response.url
            if not self.is_relevant(url):
                return
            record = await self._read(response)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("capture.response_failed", error=str(exc))
            return

        if record is None:
            return
        self._records.append(record)
        LOGGER.info(
            "capture.response",
            url=record.url,
            status=record.status,
            is_text=record.is_text,
        )

    async def _read(self, response: Response) -> Optional[CapturedResponse]:
        headers = dict(response.headers or {})
        content_type = headers.get("content-type", "")

        if is_static_content_type(content_type):
            return None
        if is_json_content_type(content_type):
            try:
                body = await response.json()
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("capture.parse_failed", url=response.url, error=str(exc))
            else:
                return self._record(response, headers, body, is_text=False)

        try:
            text = await response.text()
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("capture.body_unavailable", url=response.url, error=str(exc))
            return None
        if not text:
            return None
        return self._record(response, headers, text, is_text=True)

    @staticmethod
    def _record(response: Response, headers: dict, body, *, is_text: bool) -> CapturedResponse:
        return CapturedResponse(
            url=response.url,
            status=response.status,
            headers={str(key): str(value) for key, value in headers.items()},
            body=body,
            captured_at=datetime.now(tz=timezone.utc),
            is_text=is_text,
        )


def log_captured_urls(records: Sequence[CapturedResponse]) -> None:
    LOGGER.info("capture.summary", count=len(records))
    for record in records:
        LOGGER.debug("capture.url", url=record.url, status=record.status)
