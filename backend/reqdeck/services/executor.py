"""
Send an ``ApiRequest`` and map the reply onto an ``ApiResponse``.

One attempt per call, no retries. The request is written to history before
anything can fail, so the user always finds what they tried to send.
"""
import asyncio
import functools
import logging
import re
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import httpx

from reqdeck.errors import InvalidRequestError, RequestCancelledError, TransportError
from reqdeck.schemas.common import KeyValue
from reqdeck.schemas.environment import Environment
from reqdeck.schemas.request import ApiRequest, ProxySettings, ProxyType
from reqdeck.schemas.response import ApiResponse, ResponseCookie
from reqdeck.services import request_builder, variables
from reqdeck.services.environment_store import EnvironmentStore
from reqdeck.services.history_store import HistoryStore

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ApiRequest], httpx.AsyncClient]

_PROXY_SCHEMES = {
    ProxyType.HTTP: "http",
    ProxyType.SOCKS5: "socks5",
}


def _build_proxy(settings: ProxySettings) -> httpx.Proxy | None:
    if not settings.enabled or settings.type == ProxyType.NONE or not settings.host:
        return None
    scheme = _PROXY_SCHEMES.get(settings.type)
    if scheme is None:
        logger.warning("Proxy type %s is not supported, sending without proxy", settings.type.value)
        return None
    auth = (settings.username, settings.password) if settings.use_authentication else None
    return httpx.Proxy(f"{scheme}://{settings.host}:{settings.port}", auth=auth)


def _bypass_patterns(bypass_list: str) -> list[str]:
    return [f"all://{host}" for host in re.split(r"[;,\s]+", bypass_list) if host]


def build_client(request: ApiRequest, max_redirects: int = 10) -> httpx.AsyncClient:
    """A one-off client configured by the request's own transport settings."""
    timeout = request.timeout / 1000 if request.timeout > 0 else None
    proxy = _build_proxy(request.proxy)

    kwargs: dict = {
        "timeout": timeout,
        "follow_redirects": request.follow_redirects,
        "max_redirects": max_redirects,
        "verify": request.verify_ssl,
        "cookies": httpx.Cookies(),
    }
    if proxy is not None:
        bypass = _bypass_patterns(request.proxy.bypass_list)
        if bypass:
            # mounts win over the client-level proxy; bypassed hosts go direct
            kwargs["mounts"] = {
                "all://": httpx.AsyncHTTPTransport(proxy=proxy, verify=request.verify_ssl),
                **{pattern: httpx.AsyncHTTPTransport(verify=request.verify_ssl) for pattern in bypass},
            }
        else:
            kwargs["proxy"] = proxy
    return httpx.AsyncClient(**kwargs)


def _map_cookies(jar) -> list[ResponseCookie]:
    cookies = []
    for cookie in jar:
        cookies.append(ResponseCookie(
            name=cookie.name,
            value=cookie.value or "",
            domain=cookie.domain,
            path=cookie.path or "/",
            expires=datetime.fromtimestamp(cookie.expires, timezone.utc) if cookie.expires else None,
            http_only=cookie.has_nonstandard_attr("HttpOnly"),
            secure=cookie.secure,
        ))
    return cookies


def map_response(response: httpx.Response, elapsed: timedelta, cookie_jar=None) -> ApiResponse:
    content_length = response.headers.get("content-length", "")
    return ApiResponse(
        status_code=response.status_code,
        status_description=response.reason_phrase,
        # duplicates kept, e.g. several Set-Cookie lines
        headers=[KeyValue(key=k, value=v) for k, v in response.headers.multi_items()],
        content_type=response.headers.get("content-type", ""),
        content_length=int(content_length) if content_length.isdigit() else len(response.content),
        body=response.text,
        raw_body=response.content,
        response_time=elapsed,
        redirect_count=len(response.history),
        cookies=_map_cookies(cookie_jar if cookie_jar is not None else response.cookies.jar),
    )


class RequestExecutor:
    def __init__(
        self,
        environment_store: EnvironmentStore,
        history_store: HistoryStore,
        client_factory: ClientFactory | None = None,
        max_redirects: int = 10,
    ) -> None:
        self._environments = environment_store
        self._history = history_store
        self._client_factory = client_factory or functools.partial(
            build_client, max_redirects=max_redirects
        )
        self._environment: Environment | None = None

    async def initialize(self) -> None:
        """Warm the active-environment cache; await once before the first send."""
        self._environment = self._environments.initialize()

    def _refresh_environment(self) -> Environment | None:
        self._environment = self._environments.get_active()
        return self._environment

    async def send(
        self,
        request: ApiRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> ApiResponse:
        """Send ``request`` once.

        Invalid requests come back as an ``ApiResponse`` with only
        ``error_message`` set. Network failures raise ``TransportError``;
        a set ``cancel_event`` raises ``RequestCancelledError``.
        """
        environment = self._refresh_environment()
        processed = variables.process_request(request, environment)
        self._history.record(request)

        try:
            wire = request_builder.build(processed)
        except InvalidRequestError as exc:
            logger.info("Not sending %s %r: %s", processed.method.value, processed.url, exc)
            return ApiResponse.failure(str(exc))

        logger.info("Sending %s %s", wire.method, wire.url)
        client = self._client_factory(processed)
        try:
            http_request = client.build_request(**wire.to_httpx_kwargs())
            start = time.perf_counter()
            try:
                response = await self._send(client, http_request, cancel_event)
            except httpx.TimeoutException as exc:
                raise TransportError(f"Request timed out after {processed.timeout} ms") from exc
            except httpx.RequestError as exc:
                raise TransportError(str(exc) or type(exc).__name__) from exc
            elapsed = timedelta(seconds=time.perf_counter() - start)
            result = map_response(response, elapsed, client.cookies.jar)
        finally:
            await client.aclose()

        logger.info(
            "%s %s -> %s in %.2f ms",
            wire.method, wire.url, result.status_code, elapsed.total_seconds() * 1000,
        )
        self._history.record(request, result)
        return result

    @staticmethod
    async def _send(
        client: httpx.AsyncClient,
        http_request: httpx.Request,
        cancel_event: asyncio.Event | None,
    ) -> httpx.Response:
        if cancel_event is None:
            return await client.send(http_request)
        if cancel_event.is_set():
            raise RequestCancelledError("Request was cancelled")

        send_task = asyncio.ensure_future(client.send(http_request))
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({send_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (send_task, cancel_task):
                if not task.done():
                    task.cancel()
        if send_task in done:
            return send_task.result()

        await asyncio.gather(send_task, return_exceptions=True)
        logger.info("%s %s cancelled", http_request.method, http_request.url)
        raise RequestCancelledError("Request was cancelled")
