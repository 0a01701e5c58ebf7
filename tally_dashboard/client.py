"""
Tally HTTP client for the dashboard.

Async counterpart of the loader's client: POSTs XML envelopes to the Tally
server and hands the response to the envelope codec. A single attempt is
made per call; retry, when configured, is the orchestrator's business.
"""
from __future__ import annotations
from typing import Optional
import httpx
from loguru import logger

from .config import DashboardConfig
from .parsers.base import ParsedDocument, ParseFailure, build_request, ensure_status_ok, parse_envelope
from .requests import render

DEFAULT_HEADERS = {
    "Content-Type": "text/xml",
    "Accept": "text/xml",
    "User-Agent": "tally-dashboard/1.0",
}


class TallyError(Exception):
    """Base class for acquisition failures."""
    pass


class UnreachableError(TallyError):
    """Raised when the reachability check fails."""
    pass


class TransportError(TallyError):
    """Raised on network failure or non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TallyStatusError(TransportError):
    """Raised when Tally answers with an envelope STATUS other than 1."""
    pass


class MalformedResponseError(TallyError):
    """Raised when the response body is not well-formed XML."""

    def __init__(self, failure: ParseFailure):
        super().__init__(f"Malformed XML from Tally: {failure.error}")
        self.failure = failure


def reachability_request() -> str:
    """Minimal read-only envelope used to probe the server."""
    return build_request("Export Data", render("list_of_accounts"))


class TallyClient:
    """
    HTTP client for the Tally XML API.

    Usage:
        async with TallyClient(config) as client:
            if await client.check_reachable():
                doc = await client.send(xml)

    ``http_client`` may be supplied (tests pass one backed by
    ``httpx.MockTransport``); the client then does not close it.
    """

    def __init__(
        self,
        config: Optional[DashboardConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or DashboardConfig.from_env()
        self.base_url = self.config.base_url.rstrip("/")
        self.timeout = self.config.request_timeout
        self._http = http_client
        self._owns_http = http_client is None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(headers=DEFAULT_HEADERS, timeout=self.timeout)
            self._owns_http = True
        return self._http

    async def _post(self, url: str, xml: str) -> httpx.Response:
        return await self.http.post(
            url, content=xml.encode("utf-8"), headers=DEFAULT_HEADERS, timeout=self.timeout
        )

    async def check_reachable(self, base_url: Optional[str] = None) -> bool:
        """
        Probe the server with a "List of Accounts" export.

        Any 2xx counts as reachable. Network errors, refusals and timeouts
        are logged and reported as False, never raised.
        """
        url = (base_url or self.base_url).rstrip("/")
        try:
            r = await self._post(url, reachability_request())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Tally connection failed at {url}: {e!r}")
            return False
        if not r.is_success:
            logger.warning(f"Tally at {url} answered HTTP {r.status_code}")
            return False
        logger.debug(f"Tally reachable at {url}")
        return True

    async def send(self, xml_payload: str, base_url: Optional[str] = None) -> ParsedDocument:
        """
        POST an envelope and parse the response.

        Raises:
            TransportError: network failure or non-success HTTP status
            TallyStatusError: envelope STATUS is present and not 1
            MalformedResponseError: response is not well-formed XML
        """
        url = (base_url or self.base_url).rstrip("/")
        logger.debug(f"POST {url} ({len(xml_payload)} bytes)")
        try:
            r = await self._post(url, xml_payload)
        except httpx.TimeoutException as e:
            logger.error(f"Tally request timed out after {self.timeout}s")
            raise TransportError(f"Request timeout: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Tally request to {url} failed: {e!r}")
            raise TransportError(f"Request failed: {e}") from e

        if not r.is_success:
            logger.error(f"Tally returned HTTP {r.status_code}")
            raise TransportError(f"Tally returned HTTP {r.status_code}", status_code=r.status_code)

        result = parse_envelope(r.text)
        if isinstance(result, ParseFailure):
            logger.warning(f"Unparsable Tally response ({len(result.raw_xml)} chars): {result.error}")
            raise MalformedResponseError(result)

        error_msg = ensure_status_ok(result)
        if error_msg:
            raise TallyStatusError(error_msg, status_code=r.status_code)
        return result

    async def close(self):
        """Close the underlying HTTP client if this instance created it."""
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
