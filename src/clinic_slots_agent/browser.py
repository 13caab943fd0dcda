"""Scoped Playwright browser session."""

from __future__ import annotations

import asyncio
import sys
from typing import Any, Dict, Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError, Page, Playwright, async_playwright
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_none

from .config import Settings

LOGGER = structlog.get_logger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


class BrowserLaunchError(RuntimeError):
    """Chromium could not be started."""


async def install_chromium() -> None:
    """Install the Chromium build Playwright expects."""
    LOGGER.info("browser.install.start")
    process = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "playwright",
        "install",
        "chromium",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    output, _ = await process.communicate()
    if process.returncode != 0:
        tail = output.decode(errors="replace")[-500:] if output else ""
        raise BrowserLaunchError(f"playwright install chromium exited with {process.returncode}: {tail}")
    LOGGER.info("browser.install.complete")


async def _install_before_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    LOGGER.warning("browser.launch_failed", attempt=retry_state.attempt_number, error=str(exc))
    await install_chromium()


class BrowserSession:
    """Helper that owns one headless Chromium, context and page.

    Everything acquired is released on exit, including when entering fails
    part way through.
    """

    def __init__(self, settings: Settings, *, proxy: Optional[str] = None, user_agent: Optional[str] = None):
        self._settings = settings
        self._proxy = proxy
        self._user_agent = user_agent
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Playwright page has not been initialised")
        return self._page

    async def __aenter__(self) -> "BrowserSession":
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._launch(self._playwright)
            self._context = await self._browser.new_context(
                user_agent=self._user_agent,
                viewport={
                    "width": self._settings.viewport_width,
                    "height": self._settings.viewport_height,
                },
            )
            self._page = await self._context.new_page()
        except BaseException as exc:
            await self.close()
            if isinstance(exc, Exception) and not isinstance(exc, BrowserLaunchError):
                raise BrowserLaunchError(f"Browser session failed to start: {exc}") from exc
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        for name, resource in (
            ("context", self._context),
            ("browser", self._browser),
        ):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("browser.close_failed", resource=name, error=str(exc))
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("browser.close_failed", resource="playwright", error=str(exc))
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None

    def launch_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "headless": self._settings.headless,
            "args": list(LAUNCH_ARGS),
        }
        if self._proxy:
            options["proxy"] = {"server": self._proxy}
        return options

    async def _launch(self, playwright: Playwright) -> Browser:
        """Launch Chromium, installing it once and retrying when allowed."""
        options = self.launch_options()
        LOGGER.info("browser.launch", headless=self._settings.headless, proxy=self._proxy or "none")

        # Constrained hosts cannot run the binary at all; installing there is pointless.
        attempts = 1 if self._settings.demo_on_launch_failure else 2
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_none(),
                retry=retry_if_exception_type(PlaywrightError),
                before_sleep=_install_before_retry,
                reraise=True,
            ):
                with attempt:
                    return await playwright.chromium.launch(**options)
        except (PlaywrightError, BrowserLaunchError) as exc:
            raise BrowserLaunchError(f"Browser launch failed: {exc}") from exc
        raise BrowserLaunchError("Browser launch failed")  # safety net
