"""
Async JSON fetcher for crosupdates.

Wraps a single aiohttp session. `get_json` raises `FetchError`; `fetch_json`
never raises: every failure is logged under the caller's label and
reported as `None`.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout

from crosupdates.exceptions import FetchError
from crosupdates.log_utils import logger
from crosupdates.utils import get_user_agent


class JsonFetcher:
    """
    Fetches JSON documents from upstream HTTP endpoints.

    One attempt per call, no retries. With the default `timeout=None` a
    request may wait indefinitely.

    Example:
        async with JsonFetcher() as fetcher:
            builds = await fetcher.fetch_json(url, "Serving builds fetch failed")
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        """
        Parameters:
            timeout (Optional[float]): Total request timeout in seconds, or None for no limit.
            session (Optional[ClientSession]): Pre-built session to use; the fetcher
                will not close a session it did not create.
        """
        self.timeout = ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "JsonFetcher":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_default_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": get_user_agent(),
        }

    async def _ensure_session(self) -> ClientSession:
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                timeout=self.timeout,
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the underlying session if this fetcher created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_json(self, url: str) -> Any:
        """
        GET `url` and decode the body as JSON.

        Raises:
            FetchError: On a non-2xx status, network error, timeout or
                undecodable body. `status_code` is set only for HTTP errors.
        """
        session = await self._ensure_session()
        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(
                        f"HTTP {response.status}",
                        url=url,
                        status_code=response.status,
                    )
                try:
                    # Upstream endpoints do not always label their JSON correctly
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise FetchError(
                        "Invalid JSON", url=url, details=f"invalid JSON from {url}: {e}"
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError("Request failed", url=url, details=repr(e)) from e

    async def fetch_json(
        self, url: str, error_label: str, quiet: bool = False
    ) -> Optional[Any]:
        """
        Like `get_json`, but failures are logged under `error_label` instead of raised.

        Parameters:
            url (str): Endpoint to request.
            error_label (str): Prefix for the logged error message.
            quiet (bool): Log failures at debug level instead of error, for
                sources where missing data is routine.

        Returns:
            The decoded JSON value, or None on any failure.
        """
        log = logger.debug if quiet else logger.error
        try:
            return await self.get_json(url)
        except FetchError as e:
            if e.status_code is not None:
                log(f"{error_label}: {e.status_code}")
            else:
                log(f"{error_label}: {e.details}")
            return None
