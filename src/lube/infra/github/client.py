"""Async client fetching release archives.

Every request is bounded by a connect (TCP + TLS) timeout, a response-header
timeout and an overall request deadline. Nothing is retried; the first
failure is raised to the caller.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from ...config import FetchSettings
from ...errors import (
    AssetNotFoundError,
    AssetNotUploadedError,
    BadRequestError,
    FetchError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    UnknownStatusError,
)

STATE_UPLOADED = "uploaded"

APPLICATION_JSON = "application/json"
APPLICATION_OCTET_STREAM = "application/octet-stream"


def status_to_error(status_code: int, url: str) -> FetchError | None:
    """Map a response status to the matching FetchError, or None on success."""
    match status_code:
        case 200 | 204:
            return None
        case 404:
            return NotFoundError("Not found", details=url)
        case 400:
            return BadRequestError("Bad request", details=url)
        case 401:
            return UnauthorizedError("Unauthorized", details=url)
        case 403:
            return ForbiddenError("Forbidden", details=url)
        case _:
            return UnknownStatusError(status_code, details=url)


class ReleaseClient:
    """Downloads release assets and archive URLs.

    Attributes:
        settings: API location, token and timeout bounds
    """

    def __init__(
        self,
        settings: FetchSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Fetch settings from the run configuration
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings
        self._transport = transport

    def _timeout(self) -> httpx.Timeout:
        # httpx's connect phase includes the TLS handshake
        connect = self.settings.connect_timeout + self.settings.tls_handshake_timeout
        return httpx.Timeout(
            self.settings.request_timeout,
            connect=connect,
            read=self.settings.response_header_timeout,
        )

    def _headers(self, accept: str) -> dict[str, str]:
        headers = {"Accept": accept}
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"
        return headers

    async def _request(self, client: httpx.AsyncClient, url: str, accept: str) -> bytes:
        """Issue one GET bounded by the overall request deadline."""
        logger.debug(f"GET {url}")
        try:
            async with asyncio.timeout(self.settings.request_timeout):
                response = await client.get(url, headers=self._headers(accept))
        except TimeoutError as e:
            raise FetchError(
                f"Request timed out after {self.settings.request_timeout}s",
                details=url,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Request failed: {e}", details=url) from e

        if error := status_to_error(response.status_code, url):
            raise error
        return response.content

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout(),
            follow_redirects=True,
            transport=self._transport,
        )

    async def get_release_asset(self, owner: str, repo: str, tag: str) -> bytes:
        """Download the release archive published under ``tag``.

        Args:
            owner: Repository owner
            repo: Repository name
            tag: Release tag

        Returns:
            Raw bytes of the ``release-<tag>`` asset

        Raises:
            FetchError: Or one of its subclasses for every failure
        """
        release_url = (
            f"{self.settings.api_url.rstrip('/')}/repos/"
            f"{quote(owner, safe='')}/{quote(repo, safe='')}/releases/tags/{quote(tag, safe='')}"
        )
        asset_name = self.settings.asset_name_template.format(tag=tag)

        async with self._client() as client:
            body = await self._request(client, release_url, APPLICATION_JSON)
            try:
                release: dict[str, Any] = json.loads(body)
            except ValueError as e:
                raise FetchError("Release response is not valid JSON", details=release_url) from e
            if not isinstance(release, dict):
                raise FetchError("Release response is not a JSON object", details=release_url)

            assets = release.get("assets") or []
            if not isinstance(assets, list) or not all(isinstance(a, dict) for a in assets):
                raise FetchError("Release assets are not a list of objects", details=release_url)
            asset = next((a for a in assets if a.get("name") == asset_name), None)
            if asset is None:
                raise AssetNotFoundError(
                    f"Release {tag} has no asset named {asset_name}",
                    details=release_url,
                )
            if asset.get("state") != STATE_UPLOADED:
                raise AssetNotUploadedError(asset_name, str(asset.get("state")))

            asset_url = asset.get("url")
            if not isinstance(asset_url, str) or not asset_url:
                raise FetchError(f"Asset {asset_name} has no download URL", details=release_url)

            logger.info(f"Downloading {asset_name} from {owner}/{repo}")
            return await self._request(client, asset_url, APPLICATION_OCTET_STREAM)

    async def fetch_url(self, url: str) -> bytes:
        """Download an archive from an arbitrary URL."""
        async with self._client() as client:
            logger.info(f"Downloading archive {url}")
            return await self._request(client, url, APPLICATION_OCTET_STREAM)
