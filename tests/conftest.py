"""Fixtures: zero-delay settings and Playwright page doubles."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock, AsyncMock

import pytest

from clinic_slots_agent.config import Settings


class FakeElement:
    """Stand-in for a Playwright ``Locator`` resolved to one element."""

    def __init__(
        self,
        name: str = "element",
        *,
        visible: bool = True,
        text: str = "",
        fail_click: bool = False,
    ):
        self.name = name
        self.visible = visible
        self.text = text
        self.fail_click = fail_click
        self.clicks = 0
        self.scrolled = 0
        self.text_timeouts: List[Optional[int]] = []

    async def is_visible(self) -> bool:
        return self.visible

    async def click(self, timeout: Optional[int] = None) -> None:
        if self.fail_click:
            raise RuntimeError(f"{self.name} is detached")
        self.clicks += 1

    async def text_content(self, timeout: Optional[int] = None) -> str:
        self.text_timeouts.append(timeout)
        return self.text

    async def scroll_into_view_if_needed(self, timeout: Optional[int] = None) -> None:
        self.scrolled += 1


class FakeLocator:
    def __init__(self, elements: List[FakeElement], error: Optional[Exception] = None):
        self._elements = elements
        self._error = error

    async def all(self) -> List[FakeElement]:
        if self._error is not None:
            raise self._error
        return list(self._elements)


class FakePage:
    """Minimal async ``Page`` double.

    ``elements`` maps an exact selector string to the elements it matches.
    ``responses`` are delivered to ``response`` handlers when ``goto`` runs.
    """

    def __init__(
        self,
        *,
        html: str = "<html><body><div class='calendar'></div></body></html>",
        elements: Optional[Dict[str, List[FakeElement]]] = None,
        responses: Optional[List[Any]] = None,
        goto_error: Optional[Exception] = None,
        broken_selectors: tuple = (),
    ):
        self.html = html
        self.elements = elements or {}
        self.responses = responses or []
        self.goto_error = goto_error
        self.broken_selectors = broken_selectors
        self.url = "about:blank"
        self.handlers: Dict[str, List[Callable]] = {}
        self.waits: List[int] = []
        self.gotos: List[str] = []
        self.reloads = 0

    def on(self, event: str, handler: Callable) -> None:
        self.handlers.setdefault(event, []).append(handler)

    async def emit_response(self, response: Any) -> None:
        for handler in self.handlers.get("response", []):
            await handler(response)

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[int] = None) -> None:
        self.gotos.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        for response in self.responses:
            await self.emit_response(response)

    async def reload(self, wait_until: str = "load", timeout: Optional[int] = None) -> None:
        self.reloads += 1

    async def wait_for_timeout(self, timeout: int) -> None:
        self.waits.append(timeout)

    async def content(self) -> str:
        return self.html

    async def title(self) -> str:
        return "Timebestilling"

    def locator(self, selector: str) -> FakeLocator:
        if selector in self.broken_selectors:
            return FakeLocator([], error=RuntimeError(f"bad selector {selector}"))
        return FakeLocator(self.elements.get(selector, []))


def make_response(
    url: str,
    *,
    body: Any = None,
    text: str = "",
    content_type: str = "application/json; charset=utf-8",
    status: int = 200,
    json_error: Optional[Exception] = None,
    text_error: Optional[Exception] = None,
) -> MagicMock:
    """Playwright ``Response`` double with async ``json``/``text``."""
    response = MagicMock()
    response.url = url
    response.status = status
    response.headers = {"content-type": content_type}
    response.json = AsyncMock(side_effect=json_error, return_value=body)
    response.text = AsyncMock(side_effect=text_error, return_value=text)
    return response


@pytest.fixture
def settings() -> Settings:
    """Settings with every pause set to zero."""
    return Settings(
        target_url=None,
        proxy_list="",
        initial_settle_ms=0,
        reload_settle_ms=0,
        click_settle_ms=0,
        paging_settle_ms=0,
        month_settle_ms=0,
        date_settle_ms=0,
        scroll_settle_ms=0,
        final_settle_ms=0,
        demo_on_launch_failure=False,
    )
