"""Isolated browser window for the embedded web login

The window loads the provider login page in a fresh, throwaway browser
context and reports the first navigation to the redirect URI without
letting the page load.
"""

import logging
import re
from typing import Callable, Optional, Protocol

from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError, Page, Playwright, Request, Route
from playwright.async_api import async_playwright

import settings
from .constants import WINDOW_HEIGHT, WINDOW_WIDTH

logger = logging.getLogger(__name__)


def is_redirect_callback(url: str, redirect_uri: str) -> bool:
    """True for a navigation to ``redirect_uri`` that carries an auth code"""
    return url.startswith(redirect_uri) and "code=" in url


RedirectHandler = Callable[[str], None]
ClosedHandler = Callable[[], None]


class AuthWindow(Protocol):
    """Window owned by one embedded login session"""

    async def open(
        self,
        url: str,
        redirect_uri: str,
        on_redirect: RedirectHandler,
        on_closed: ClosedHandler,
    ) -> None:
        ...

    async def close(self) -> None:
        ...


class PlaywrightAuthWindow:
    """Headed Chromium window in a non-persistent context

    Two signals are watched for the redirect: the route handler (navigation
    about to be sent) and the page ``request`` event (which also fires for
    server-side redirect hops). Whichever comes first wins.
    """

    def __init__(
        self,
        title: Optional[str] = None,
        channel: Optional[str] = None,
        width: int = WINDOW_WIDTH,
        height: int = WINDOW_HEIGHT,
    ):
        self.title = title
        self.channel = channel if channel is not None else settings.WEB_OAUTH_BROWSER_CHANNEL
        self.width = width
        self.height = height

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

        self._redirect_uri = ""
        self._on_redirect: Optional[RedirectHandler] = None
        self._on_closed: Optional[ClosedHandler] = None
        self._redirect_seen = False
        self._closing = False
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def open(
        self,
        url: str,
        redirect_uri: str,
        on_redirect: RedirectHandler,
        on_closed: ClosedHandler,
    ) -> None:
        self._redirect_uri = redirect_uri
        self._on_redirect = on_redirect
        self._on_closed = on_closed

        launch_kwargs = {
            "headless": False,
            "args": [f"--window-size={self.width},{self.height}"],
        }
        if self.channel:
            launch_kwargs["channel"] = self.channel

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(**launch_kwargs)
        self._browser.on("disconnected", lambda _: self._notify_closed())

        # new_context() never persists cookies or cache to disk
        self._context = await self._browser.new_context(
            viewport={"width": self.width, "height": self.height},
            service_workers="block",
        )
        await self._context.route(re.compile("^" + re.escape(redirect_uri)), self._handle_route)

        self._page = await self._context.new_page()
        self._page.on("request", self._handle_request)
        self._page.on("close", lambda _: self._notify_closed())

        logger.info(f"[WebOAuth] Opening login window{f' ({self.title})' if self.title else ''}")
        try:
            await self._page.goto(url, wait_until="commit")
        except PlaywrightError as e:
            # goto fails when the redirect is aborted before the first commit
            logger.debug(f"[WebOAuth] Initial navigation ended: {e}")

    async def _handle_route(self, route: Route):
        url = route.request.url
        if is_redirect_callback(url, self._redirect_uri):
            logger.debug(f"[WebOAuth] will-navigate: {url[:100]}...")
            self._notify_redirect(url)
            await route.abort()
        else:
            await route.continue_()

    def _handle_request(self, request: Request):
        if request.is_navigation_request() and is_redirect_callback(request.url, self._redirect_uri):
            logger.debug(f"[WebOAuth] will-redirect: {request.url[:100]}...")
            self._notify_redirect(request.url)

    def _notify_redirect(self, url: str):
        if self._redirect_seen or self._on_redirect is None:
            return
        self._redirect_seen = True
        self._on_redirect(url)

    def _notify_closed(self):
        if self._closed:
            return
        self._closed = True
        if not self._closing and self._on_closed is not None:
            logger.info("[WebOAuth] Login window closed by user")
            self._on_closed()

    async def close(self) -> None:
        """Close the window and release the browser; idempotent"""
        self._closing = True
        try:
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
        except PlaywrightError as e:
            logger.debug(f"[WebOAuth] Error while closing login window: {e}")
        finally:
            self._context = None
            self._browser = None
            self._page = None
            self._closed = True
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
