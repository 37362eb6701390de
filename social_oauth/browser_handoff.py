"""Opening login URLs in the system browser or a BitBrowser profile"""

import asyncio
import logging
import webbrowser
from typing import Callable, Optional

import httpx

import settings
from utils.errors import ProtocolError
from utils.http import http_session

logger = logging.getLogger(__name__)


class BrowserLauncher:
    """Hands a URL to the BitBrowser local API when configured, else the OS browser

    A BitBrowser failure never aborts a login; the OS default browser is
    used instead.
    """

    def __init__(
        self,
        bitbrowser_port: Optional[int] = None,
        bitbrowser_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        opener: Callable[[str], bool] = webbrowser.open,
    ):
        self.bitbrowser_port = bitbrowser_port if bitbrowser_port is not None else settings.BITBROWSER_PORT
        self.bitbrowser_id = bitbrowser_id if bitbrowser_id is not None else settings.BITBROWSER_ID
        self.http_client = http_client
        self.opener = opener

    @property
    def bitbrowser_configured(self) -> bool:
        return bool(self.bitbrowser_port and self.bitbrowser_id)

    @property
    def api_base(self) -> str:
        return f"http://127.0.0.1:{self.bitbrowser_port}"

    async def _bitbrowser_call(self, action: str, payload: dict):
        try:
            async with http_session(self.http_client) as client:
                response = await client.post(f"{self.api_base}/browser/{action}", json=payload)
        except httpx.RequestError as e:
            raise ProtocolError(
                f"Cannot reach BitBrowser on port {self.bitbrowser_port}; is it running? ({e})"
            ) from e

        if not response.is_success:
            raise ProtocolError(
                f"BitBrowser API error: {response.status_code} - {response.text[:200]}",
                http_status=response.status_code,
            )
        try:
            result = response.json()
        except ValueError:
            result = {}
        logger.debug(f"BitBrowser {action} response: {result}")
        if isinstance(result, dict) and result.get("success") is False:
            raise ProtocolError(result.get("msg") or f"BitBrowser {action} failed")

    async def open_in_bitbrowser(self, url: str):
        """Open ``url`` in the configured BitBrowser profile

        Raises:
            ProtocolError: Endpoint unreachable, non-2xx, or success=false
        """
        logger.info(f"Opening login URL in BitBrowser profile {self.bitbrowser_id}")
        await self._bitbrowser_call("open", {"id": self.bitbrowser_id, "args": [url]})

    async def close_bitbrowser(self):
        """Close the BitBrowser profile opened for a login"""
        if not self.bitbrowser_configured:
            return
        logger.info(f"Closing BitBrowser profile {self.bitbrowser_id}")
        await self._bitbrowser_call("close", {"id": self.bitbrowser_id})

    async def open(self, url: str) -> str:
        """Open a login URL

        Returns:
            "bitbrowser" or "system", whichever actually received the URL
        """
        if self.bitbrowser_configured:
            try:
                await self.open_in_bitbrowser(url)
                return "bitbrowser"
            except ProtocolError as e:
                logger.warning(f"BitBrowser hand-off failed, falling back to default browser: {e.message}")

        await asyncio.to_thread(self.opener, url)
        return "system"
