"""
Registry Client

HTTP access to the public package mirror and the default-library CDN.
"""

import asyncio
import json
from typing import Any, Optional

import aiohttp

from vfshost.core.config_loader import RegistryConfig
from vfshost.exceptions import RemoteFetchError
from vfshost.logger import get_logger


class RegistryClient:
    """
    Thin aiohttp wrapper that turns every transport, status or decoding
    problem into a RemoteFetchError.

    A shared ``aiohttp.ClientSession`` may be injected; otherwise one is
    opened per request. No timeout is applied unless configured, so the
    transport's own behavior governs.
    """

    def __init__(
        self,
        config: RegistryConfig,
        http_session: Optional[aiohttp.ClientSession] = None
    ):
        self._base_url = config.base_url.rstrip('/')
        self._timeout = config.timeout
        self._http = http_session
        self._logger = get_logger('fetcher')

    def package_url(self, package: str, path: str) -> str:
        return f"{self._base_url}/{package}/{path.lstrip('/')}"

    async def get_text(self, url: str, package: str) -> str:
        """
        GET ``url`` and return the body as text.

        Raises:
            RemoteFetchError: On network errors, a non-2xx status or a body
                that does not decode
        """
        try:
            if self._http is not None:
                return await self._request(self._http, url, package)
            async with aiohttp.ClientSession() as http:
                return await self._request(http, url, package)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RemoteFetchError(
                package, f"network error: {type(exc).__name__}: {exc}", url=url
            ) from exc

    async def get_json(self, url: str, package: str) -> Any:
        """
        GET ``url`` and decode the body as JSON.

        Raises:
            RemoteFetchError: As get_text, or when the body is not valid JSON
        """
        text = await self.get_text(url, package)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise RemoteFetchError(package, f"malformed JSON: {exc}", url=url) from exc

    async def _request(self, http: aiohttp.ClientSession, url: str, package: str) -> str:
        kwargs: dict[str, Any] = {}
        if self._timeout is not None:
            kwargs['timeout'] = aiohttp.ClientTimeout(total=self._timeout)

        self._logger.debug("GET", context={'url': url})
        async with http.get(url, **kwargs) as response:
            if not 200 <= response.status < 300:
                raise RemoteFetchError(
                    package, f"HTTP {response.status}", url=url, status=response.status
                )
            try:
                return await response.text()
            except UnicodeDecodeError as exc:
                raise RemoteFetchError(
                    package, f"undecodable body: {exc.reason}", url=url, status=response.status
                ) from exc
