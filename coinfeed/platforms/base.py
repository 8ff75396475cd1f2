import asyncio
import socket
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import quote

import aiodns
import aiohttp
from pydantic import ValidationError

from coinfeed.logger.logger import Logger
from coinfeed.platforms.errors import (
    InvalidRequest,
    MalformedResponse,
    NetworkError,
    NetworkErrorKind,
    RateLimited,
    ServerError,
    Unauthorized,
)
from coinfeed.utils.parsing import synthesize_image_url
from coinfeed.utils.retry import RetryPolicy

NOT_CONNECTED_MARKERS = (
    "network is unreachable",
    "no route to host",
    "name or service not known",
    "temporary failure in name resolution",
    "nodename nor servname provided",
)


class BaseProviderClient:
    """Base class for upstream adapters: one upstream, one capability.

    Subclasses set ``name``, ``BASE_URL``, ``TIMEOUT`` and ``DEFAULT_RETRY_POLICY``
    and turn the JSON returned by ``_get_json`` into normalized models. The HTTP
    status convention and transport failure mapping live here.
    """

    name = "provider"
    BASE_URL = ""
    TIMEOUT = 5.0
    DEFAULT_RETRY_POLICY = RetryPolicy()

    def __init__(self, logger: Logger, session: Optional[aiohttp.ClientSession] = None,
                 api_key: Optional[str] = None, retry_policy: Optional[RetryPolicy] = None) -> None:
        self.logger = logger
        self.session = session
        self._owns_session = session is None
        self.api_key = api_key or None
        self.retry_policy = retry_policy or self.DEFAULT_RETRY_POLICY

    async def __aenter__(self):
        self._ensure_session()
        return self

    async def __aexit__(self, _exc_type, _exc_val, _exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the session only if this client created it."""
        if self.session and self._owns_session:
            try:
                self.logger.debug(f"Closing {self.__class__.__name__} session")
                await self.session.close()
            except Exception as e:
                self.logger.error(f"Error closing session in {self.__class__.__name__}: {e}")
            finally:
                self.session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    def _headers(self) -> Dict[str, str]:
        """Auth headers for this upstream; empty when no key is configured."""
        return {}

    def _quote_id(self, asset_id: str) -> str:
        asset_id = (asset_id or "").strip()
        if not asset_id:
            raise InvalidRequest("asset id must not be empty", provider=self.name)
        if "/" in asset_id or any(ch.isspace() for ch in asset_id):
            raise InvalidRequest(f"asset id '{asset_id}' cannot be placed in a URL", provider=self.name)
        return quote(asset_id, safe="-_.")

    async def _get_json(self, url: str, params: Optional[Mapping[str, Any]] = None,
                        headers: Optional[Mapping[str, str]] = None, timeout: Optional[float] = None) -> Any:
        """
        GET ``url`` and return the decoded JSON body.

        Raises:
            Unauthorized: 401/403
            RateLimited: 429 (``retry_after`` from the Retry-After header when present)
            ServerError: any other non-2xx status
            MalformedResponse: body is not JSON
            NetworkError: transport failure, classified by kind
        """
        session = self._ensure_session()
        merged_headers = {"Accept": "application/json", **self._headers(), **(headers or {})}
        request_timeout = aiohttp.ClientTimeout(total=timeout or self.TIMEOUT)

        try:
            self.logger.debug(f"{self.name} GET {url} params={dict(params or {})}")
            async with session.get(url, params=params, headers=merged_headers, timeout=request_timeout) as response:
                status = response.status
                if not 200 <= status < 300:
                    await self._raise_for_status(response)
                try:
                    return await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError) as e:
                    raise MalformedResponse(f"response is not valid JSON: {e}", provider=self.name) from e
        except asyncio.TimeoutError as e:
            raise NetworkError(NetworkErrorKind.TIMEOUT, f"timed out after {timeout or self.TIMEOUT:.1f}s",
                               provider=self.name) from e
        except aiohttp.ClientConnectorError as e:
            kind = NetworkErrorKind.NOT_CONNECTED if self._is_not_connected(e) else NetworkErrorKind.TRANSIENT
            raise NetworkError(kind, f"{type(e).__name__} - {e}", provider=self.name) from e
        except aiohttp.InvalidURL as e:
            raise InvalidRequest(f"cannot build request URL: {e}", provider=self.name) from e
        except aiohttp.ClientResponseError as e:
            # raised by the client itself (redirect loops, bad headers), not by our status check
            raise ServerError(e.status or 0, e.message or str(e), provider=self.name) from e
        except aiohttp.ClientError as e:
            raise NetworkError(NetworkErrorKind.TRANSIENT, f"{type(e).__name__} - {e}", provider=self.name) from e

    async def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        status = response.status
        try:
            error_text = await response.text()
        except Exception:
            error_text = "Failed to read error response"
        # Log as debug - the cascade logs the failure with proper context
        self.logger.debug(f"{self.name} error response: Status {status} - {error_text[:200]}")

        if status in (401, 403):
            raise Unauthorized(f"HTTP {status}: credentials rejected", provider=self.name)
        if status == 429:
            raise RateLimited(f"HTTP 429: {error_text[:120]}".strip(), provider=self.name,
                              retry_after=self._retry_after(response))
        raise ServerError(status, f"HTTP {status}", provider=self.name)

    @staticmethod
    def _retry_after(response: aiohttp.ClientResponse) -> Optional[float]:
        headers = getattr(response, "headers", None)
        if not isinstance(headers, Mapping):
            return None
        value = headers.get("Retry-After")
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _is_not_connected(error: aiohttp.ClientConnectorError) -> bool:
        os_error = getattr(error, "os_error", None)
        if isinstance(os_error, (socket.gaierror, aiodns.error.DNSError)):
            return True
        text = str(error).lower()
        return any(marker in text for marker in NOT_CONNECTED_MARKERS)

    def _expect(self, data: Any, kind: type, what: str) -> Any:
        """Fail with MalformedResponse unless ``data`` is of ``kind``."""
        if not isinstance(data, kind):
            raise MalformedResponse(f"expected {what}, got {type(data).__name__}", provider=self.name)
        return data

    @staticmethod
    def _as_dict(value: Any) -> Dict[str, Any]:
        """Nested JSON object, or an empty dict when the upstream sent something else."""
        return value if isinstance(value, dict) else {}

    def _build_models(self, model: type, rows: Iterable[Dict[str, Any]]) -> List[Any]:
        """Validate normalized rows into ``model``; rows failing validation (e.g. empty id) are skipped.

        Mapping code that trips over an unexpected JSON shape surfaces as MalformedResponse.
        """
        items = []
        try:
            for row in rows:
                try:
                    items.append(model(**row))
                except ValidationError as e:
                    self.logger.debug(f"{self.name} skipping invalid {model.__name__}: {e.errors()[0].get('msg', e)}")
        except (AttributeError, KeyError, TypeError) as e:
            raise MalformedResponse(f"unexpected {model.__name__} shape: {e}", provider=self.name) from e
        return items


class SymbolImageClient(BaseProviderClient):
    """Adapter for an upstream without direct image URLs; images are synthesized from the symbol."""

    DEFAULT_IMAGE_CDN = "https://raw.githubusercontent.com/spothq/cryptocurrency-icons/master/128/color"

    def __init__(self, logger: Logger, session: Optional[aiohttp.ClientSession] = None,
                 api_key: Optional[str] = None, retry_policy: Optional[RetryPolicy] = None,
                 image_cdn: Optional[str] = None) -> None:
        super().__init__(logger, session=session, api_key=api_key, retry_policy=retry_policy)
        self.image_cdn = image_cdn or self.DEFAULT_IMAGE_CDN

    def image_for(self, symbol: Any) -> str:
        return synthesize_image_url(self.image_cdn, str(symbol or ""))
