"""
Document view: the long-lived browser page the source site keeps updated.

A scan reads the page's current markup; a reload re-navigates it, which is
the only way to recover when the site's own live updates stall.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlparse

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

from scraper.document import DocumentQuery, HtmlDocument

logger = get_logger(__name__)


class DocumentViewError(Exception):
    """The page could not be read or reloaded."""


BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-default-browser-check",
    "--disable-dev-shm-usage",
]


class DocumentView(ABC):
    """Owner of the current document and its reload lifecycle."""

    @property
    @abstractmethod
    def path(self) -> str:
        """Path component of the current page URL."""

    @abstractmethod
    async def open(self) -> None:
        pass

    @abstractmethod
    async def read(self) -> DocumentQuery:
        """Snapshot of the document as it is right now."""

    @abstractmethod
    async def reload(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class PlaywrightDocumentView(DocumentView):
    """Chromium page kept open on the source URL."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("PlaywrightDocumentView not open. Call open() first.")
        return self._page

    @property
    def path(self) -> str:
        url = self._page.url if self._page is not None else self._settings.source_url
        return urlparse(url).path or "/"

    async def open(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._settings.browser_headless,
            args=BROWSER_ARGS,
        )
        context_kwargs: dict[str, object] = {"viewport": {"width": 1440, "height": 900}}
        if self._settings.browser_user_agent:
            context_kwargs["user_agent"] = self._settings.browser_user_agent
        self._context = await self._browser.new_context(**context_kwargs)
        self._context.set_default_navigation_timeout(self._settings.browser_navigation_timeout_s * 1000)
        self._page = await self._context.new_page()
        await self._page.goto(self._settings.source_url, wait_until="domcontentloaded")
        logger.info("document_view_opened", url=self._settings.source_url)

    async def read(self) -> DocumentQuery:
        try:
            html = await self.page.content()
        except PlaywrightError as exc:
            raise DocumentViewError(f"read failed: {exc}") from exc
        return HtmlDocument(html)

    async def reload(self) -> None:
        try:
            await self.page.reload(wait_until="domcontentloaded")
        except PlaywrightError as exc:
            raise DocumentViewError(f"reload failed: {exc}") from exc
        logger.info("document_view_reloaded", url=self.page.url)

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._page = self._context = self._browser = self._playwright = None
        logger.info("document_view_closed")
