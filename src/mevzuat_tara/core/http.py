from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

import httpx
import orjson
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter
from tenacity.wait import wait_base

from .auth import CredentialProvider
from .errors import (
    AuthError,
    ConnectivityError,
    ProtocolError,
    RemoteError,
    RequestTimeoutError,
)

DEFAULT_UA = "mevzuat-tara/0.1 python-httpx"
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}

logger = structlog.get_logger(__name__)


class HttpError(Exception):
    """Retryable status returned by the remote side."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


RETRYABLE_ERRORS = (HttpError, ConnectivityError, RequestTimeoutError)


def extract_error_message(text: str | None, fallback: str) -> str:
    """Pull a readable message out of a (possibly JSON) error body."""
    if not text:
        return fallback
    try:
        data = orjson.loads(text)
    except orjson.JSONDecodeError:
        return text
    if isinstance(data, str):
        return data or fallback
    if isinstance(data, dict):
        detail = data.get("detail")
        if isinstance(detail, list):
            fields = [
                ".".join(str(part) for part in entry.get("loc", []))
                for entry in detail
                if isinstance(entry, dict)
            ]
            return f"Eksik alanlar: {', '.join(fields)}"
        for key in ("detail", "message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return text


class HttpClient:
    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        user_agent: str = DEFAULT_UA,
        timeout: float = 30.0,
        stream_read_timeout: float | None = None,
        max_attempts: int = 5,
        wait: wait_base | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        session_factory: Callable[..., httpx.AsyncClient] = httpx.AsyncClient,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.max_attempts = max_attempts
        self.wait = wait or wait_exponential_jitter(initial=1, max=8)
        self.stream_timeout = httpx.Timeout(timeout, read=stream_read_timeout)
        self.session = session_factory(
            base_url=self.base_url,
            timeout=timeout,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.session.aclose()

    def auth_headers(self) -> dict[str, str]:
        token = self.credentials.token()
        if not token:
            raise AuthError()
        return {"Authorization": f"Bearer {token}"}

    def _check(self, resp: httpx.Response) -> None:
        if resp.status_code == 401:
            raise AuthError()
        if resp.status_code in RETRYABLE_STATUSES:
            raise HttpError(f"retryable status {resp.status_code}", resp.status_code)
        if resp.is_error:
            fallback = f"API Hatası: {resp.status_code} - {resp.reason_phrase}"
            raise RemoteError(extract_error_message(resp.text, fallback), resp.status_code)

    def _json(self, resp: httpx.Response) -> Any:
        try:
            return orjson.loads(resp.content)
        except orjson.JSONDecodeError as exc:
            raise ProtocolError() from exc

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {**kwargs.pop("headers", {}), **self.auth_headers()}
        try:
            return await self.session.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError() from exc
        except httpx.TransportError as exc:
            raise ConnectivityError() from exc
        except httpx.HTTPError as exc:
            raise ProtocolError() from exc

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET with retries; idempotent reads only."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            wait=self.wait,
            stop=stop_after_attempt(self.max_attempts),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    resp = await self._send("GET", path, params=params)
                    self._check(resp)
        except HttpError as exc:
            fallback = f"API Hatası: {exc.status_code}"
            raise RemoteError(extract_error_message(resp.text, fallback), exc.status_code) from exc
        return self._json(resp)

    async def post_json(self, path: str, payload: Any | None = None) -> Any:
        resp = await self._send("POST", path, json=payload)
        try:
            self._check(resp)
        except HttpError as exc:
            fallback = f"API Hatası: {exc.status_code}"
            raise RemoteError(extract_error_message(resp.text, fallback), exc.status_code) from exc
        return self._json(resp)

    @asynccontextmanager
    async def stream_post(self, path: str, payload: Any) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a long-lived POST and yield its body as raw byte chunks."""
        headers = self.auth_headers()
        try:
            async with self.session.stream(
                "POST", path, json=payload, headers=headers, timeout=self.stream_timeout
            ) as resp:
                if resp.status_code == 401:
                    raise AuthError()
                if resp.is_error:
                    body = (await resp.aread()).decode("utf-8", errors="replace")
                    fallback = f"API Hatası: {resp.status_code} - {resp.reason_phrase}"
                    raise RemoteError(extract_error_message(body, fallback), resp.status_code)
                logger.debug("stream.opened", path=path, status=resp.status_code)
                yield resp.aiter_bytes()
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError() from exc
        except httpx.TransportError as exc:
            raise ConnectivityError() from exc
        except httpx.HTTPError as exc:
            raise ProtocolError() from exc
