"""HTTP client for the Zotero web API."""

from __future__ import annotations
import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any
import httpx
from .errors import ApiRequestError, ConflictError, PaginationAnomaly
from .scope import LibraryScope


logger = logging.getLogger(__name__)

BASE_URL = "https://api.zotero.org"
API_VERSION = "3"
USER_AGENT = "Zotero-CLI"
API_KEY_HEADER = "Zotero-API-Key"
VERSION_HEADER = "If-Unmodified-Since-Version"
BACKOFF_HEADER = "Backoff"
TOTAL_RESULTS_HEADER = "Total-Results"
REDACTED = "<API-KEY>"

Sleep = Callable[[float], Awaitable[Any]]
QueryParams = Mapping[str, Any]


@dataclass(slots=True)
class ApiResponse:
    """Decoded body together with the response metadata."""

    data: Any
    headers: httpx.Headers
    status_code: int


@dataclass(slots=True)
class Page:
    """One page of a paginated collection."""

    records: list[Any] = field(default_factory=list)
    next_url: str | None = None
    backoff: float | None = None


def encode_params(params: QueryParams | None) -> list[tuple[str, Any]]:
    """Flatten ``params`` into query pairs, repeating keys for list values."""
    pairs: list[tuple[str, Any]] = []
    for key, value in (params or {}).items():
        values = value if isinstance(value, list | tuple) else [value]
        pairs.extend((key, item) for item in values)
    return pairs


def parse_backoff(headers: httpx.Headers) -> float | None:
    """Return the delay requested by the ``Backoff`` header, if numeric."""
    raw = headers.get(BACKOFF_HEADER)
    if raw is None:
        return None
    try:
        seconds = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric Backoff header %r", raw)
        return None
    return seconds if seconds > 0 else None


def next_link(response: httpx.Response) -> str | None:
    """Return the URL of the ``rel="next"`` link of ``response``."""
    header = response.headers.get("Link")
    if not header:
        return None
    url = response.links.get("next", {}).get("url")
    if url:
        return url
    if "next" in header:
        msg = f"Link header announces a next page without a usable URL: {header!r}"
        raise PaginationAnomaly(msg)
    return None


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _encode_body(body: Any) -> str | bytes:
    if isinstance(body, str | bytes):
        return body
    return json.dumps(body)


class ApiClient:
    """Asynchronous wrapper around :class:`httpx.AsyncClient`.

    Scoped paths are prefixed with ``/users/{id}`` or ``/groups/{id}``. All
    requests carry the API key and the protocol version headers.
    """

    def __init__(
        self,
        *,
        api_key: str,
        scope: LibraryScope | None = None,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Create a client bound to ``base_url`` and ``scope``."""
        self._api_key = api_key
        self.scope = scope
        self.base_url = base_url.rstrip("/")
        self._sleep = sleep
        headers = {
            "User-Agent": USER_AGENT,
            "Zotero-API-Version": API_VERSION,
            API_KEY_HEADER: api_key,
        }
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            follow_redirects=True,
        )

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def redact(self, text: str) -> str:
        """Hide the API key in ``text``."""
        if not self._api_key:
            return text
        return text.replace(self._api_key, REDACTED)

    def scoped_path(self, path: str, *, scoped: bool = True) -> str:
        """Return ``path`` with the library prefix applied when ``scoped``."""
        if not path.startswith("/"):
            path = f"/{path}"
        if not scoped:
            return path
        if self.scope is None:
            msg = "A user or group library is required for scoped requests"
            raise RuntimeError(msg)
        return f"{self.scope.prefix}{path}"

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: QueryParams | None = None,
        content: str | bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        request = self._client.build_request(
            method,
            url,
            params=encode_params(params) if params else None,
            content=content,
            headers=dict(headers) if headers else None,
        )
        shown = self.redact(str(request.url))
        logger.info("%s %s", method, shown)
        try:
            response = await self._client.send(request)
        except httpx.HTTPError as exc:
            msg = f"Unable to reach the Zotero API ({method} {shown}): {exc}"
            raise ApiRequestError(self.redact(msg)) from exc

        if response.status_code == httpx.codes.PRECONDITION_FAILED:
            body = self.redact(response.text)
            msg = (
                f"{method} {shown} failed: the resource was modified since the "
                f"expected version ({body.strip() or 'precondition failed'})"
            )
            raise ConflictError(msg, status_code=response.status_code, body=body)
        if response.is_error:
            body = self.redact(response.text)
            msg = f"{method} {shown} failed with status {response.status_code}"
            if body.strip():
                msg = f"{msg}: {body.strip()}"
            raise ApiRequestError(msg, status_code=response.status_code, body=body)
        return response

    async def get(
        self,
        path: str,
        *,
        scoped: bool = True,
        params: QueryParams | None = None,
        full_response: bool = False,
        raw: bool = False,
    ) -> Any:
        """Issue one GET request.

        Returns the decoded body, the raw bytes when ``raw`` is set, or an
        :class:`ApiResponse` when ``full_response`` is set.
        """
        response = await self._send(
            "GET", self.scoped_path(path, scoped=scoped), params=params
        )
        data = response.content if raw else _decode(response)
        if full_response:
            return ApiResponse(
                data=data, headers=response.headers, status_code=response.status_code
            )
        return data

    def _page(self, response: httpx.Response) -> Page:
        body = _decode(response)
        if body is None:
            records: list[Any] = []
        elif isinstance(body, list):
            records = body
        else:
            records = [body]
        try:
            url = next_link(response)
        except PaginationAnomaly as exc:
            logger.warning("Stopping pagination: %s", self.redact(str(exc)))
            url = None
        return Page(
            records=records, next_url=url, backoff=parse_backoff(response.headers)
        )

    async def fetch_all(
        self, path: str, params: QueryParams | None = None
    ) -> list[Any]:
        """Return every record of a paginated collection, in server order.

        Continuation requests use the next link verbatim; it already carries
        the query state, so neither the scope prefix nor ``params`` are
        applied again.
        """
        response = await self._send("GET", self.scoped_path(path), params=params)
        page = self._page(response)
        records = list(page.records)
        while page.next_url:
            if page.backoff:
                logger.info("Backing off for %s seconds", page.backoff)
                await self._sleep(page.backoff)
            response = await self._send("GET", page.next_url)
            page = self._page(response)
            records.extend(page.records)
        return records

    async def count(self, path: str, params: QueryParams | None = None) -> int:
        """Return the ``Total-Results`` reported for ``path``."""
        response = await self._send("GET", self.scoped_path(path), params=params)
        total = response.headers.get(TOTAL_RESULTS_HEADER)
        if total is None:
            msg = f"GET {path} did not report {TOTAL_RESULTS_HEADER}"
            raise ApiRequestError(msg, status_code=response.status_code)
        try:
            return int(total)
        except ValueError as exc:
            msg = f"GET {path} reported an invalid {TOTAL_RESULTS_HEADER}: {total!r}"
            raise ApiRequestError(msg, status_code=response.status_code) from exc

    async def post(
        self,
        path: str,
        body: Any,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """POST ``body`` to a scoped ``path``."""
        merged = {"Content-Type": "application/json", **(headers or {})}
        response = await self._send(
            "POST",
            self.scoped_path(path),
            content=_encode_body(body),
            headers=merged,
        )
        return _decode(response)

    async def put(self, path: str, body: Any) -> Any:
        """Replace the resource at a scoped ``path``."""
        response = await self._send(
            "PUT",
            self.scoped_path(path),
            content=_encode_body(body),
            headers={"Content-Type": "application/json"},
        )
        return _decode(response)

    async def patch(self, path: str, body: Any, version: int | None = None) -> Any:
        """Partially update a scoped ``path``.

        When ``version`` is given the server rejects the update with
        :class:`ConflictError` if the resource changed in the meantime.
        """
        headers = {"Content-Type": "application/json"}
        if version is not None:
            headers[VERSION_HEADER] = str(version)
        response = await self._send(
            "PATCH",
            self.scoped_path(path),
            content=_encode_body(body),
            headers=headers,
        )
        return _decode(response)

    async def delete(self, path: str, version: int | None = None) -> Any:
        """Delete a scoped ``path``, guarded by ``version`` when given."""
        headers = {"Content-Type": "application/json"}
        if version is not None:
            headers[VERSION_HEADER] = str(version)
        response = await self._send(
            "DELETE", self.scoped_path(path), headers=headers
        )
        return _decode(response)

    async def key_info(self) -> Any:
        """Return the details of the API key in use."""
        return await self.get(f"/keys/{self._api_key}", scoped=False)

    async def upload(self, url: str, content: bytes, content_type: str) -> None:
        """POST file content to a storage URL handed out by the API.

        The storage service is not the Zotero API, so the API key headers are
        not sent along.
        """
        logger.info("POST %s", url)
        try:
            async with httpx.AsyncClient(timeout=self._client.timeout) as storage:
                response = await storage.post(
                    url, content=content, headers={"Content-Type": content_type}
                )
        except httpx.HTTPError as exc:
            raise ApiRequestError(f"Unable to upload file to {url}: {exc}") from exc
        if response.is_error:
            msg = f"File upload to {url} failed with status {response.status_code}"
            raise ApiRequestError(
                msg, status_code=response.status_code, body=response.text
            )


async def lookup_user_id(api_key: str, *, base_url: str = BASE_URL) -> int:
    """Return the id of the user owning ``api_key``."""
    async with ApiClient(api_key=api_key, base_url=base_url) as client:
        info = await client.key_info()
    try:
        return int(info["userID"])
    except (KeyError, TypeError, ValueError) as exc:
        msg = "The key information returned by the API has no userID"
        raise ApiRequestError(msg) from exc


__all__ = [
    "API_VERSION",
    "BASE_URL",
    "REDACTED",
    "USER_AGENT",
    "VERSION_HEADER",
    "ApiClient",
    "ApiResponse",
    "Page",
    "encode_params",
    "lookup_user_id",
    "next_link",
    "parse_backoff",
]
