import asyncio

import httpx
import pytest

from reqdeck.errors import RequestCancelledError, TransportError
from reqdeck.schemas.common import KeyValue, Variable
from reqdeck.schemas.environment import Environment
from reqdeck.schemas.request import ApiRequest, HttpMethod, ProxySettings, ProxyType, RawBody
from reqdeck.services import executor as executor_module
from reqdeck.services.collection_store import CollectionStore
from reqdeck.services.environment_store import EnvironmentStore
from reqdeck.services.executor import RequestExecutor, build_client
from reqdeck.services.history_store import HistoryStore
from reqdeck.services.persistence import MemoryDocumentStore


class _Harness:
    """Executor wired to in-memory stores and a mock transport."""

    def __init__(self, handler) -> None:
        documents = MemoryDocumentStore()
        self.environments = EnvironmentStore(documents)
        self.history = HistoryStore(documents, CollectionStore(documents))
        self.seen: list[httpx.Request] = []

        def recording_handler(request: httpx.Request):
            self.seen.append(request)
            return handler(request)

        def client_factory(api_request: ApiRequest) -> httpx.AsyncClient:
            return httpx.AsyncClient(
                transport=httpx.MockTransport(recording_handler),
                follow_redirects=api_request.follow_redirects,
            )

        self.executor = RequestExecutor(self.environments, self.history, client_factory=client_factory)

    def send(self, request: ApiRequest, cancel_event=None):
        return asyncio.run(self.executor.send(request, cancel_event))


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="hello")


def test_successful_send_maps_response():
    def handler(request):
        return httpx.Response(
            201,
            headers=[("Content-Type", "application/json"), ("X-Dup", "1"), ("X-Dup", "2")],
            content=b'{"ok": true}',
        )

    harness = _Harness(handler)
    response = harness.send(ApiRequest(method=HttpMethod.POST, url="https://api.test/items"))

    assert response.status_code == 201
    assert response.status_description == "Created"
    assert response.is_success is True
    assert response.body == '{"ok": true}'
    assert response.raw_body == b'{"ok": true}'
    assert response.content_type == "application/json"
    assert response.content_length == len(b'{"ok": true}')
    assert [h.value for h in response.headers if h.key.lower() == "x-dup"] == ["1", "2"]
    assert response.response_time.total_seconds() >= 0
    assert response.error_message == ""


def test_send_resolves_active_environment():
    harness = _Harness(_ok)
    harness.environments.create(Environment(name="Dev", variables=[Variable(key="HOST", value="api.test")]))

    harness.send(ApiRequest(url="https://{{HOST}}/v1", headers=[KeyValue(key="X-Host", value="{{HOST}}")]))

    [sent] = harness.seen
    assert str(sent.url) == "https://api.test/v1"
    assert sent.headers["X-Host"] == "api.test"


def test_history_keeps_unresolved_request_and_final_response():
    harness = _Harness(_ok)
    harness.environments.create(Environment(name="Dev", variables=[Variable(key="HOST", value="api.test")]))

    harness.send(ApiRequest(url="https://{{HOST}}/v1"))

    [item] = harness.history.list()
    assert item.request.url == "https://{{HOST}}/v1"
    assert item.response.status_code == 200


def test_invalid_url_returns_error_response_and_records_history():
    harness = _Harness(_ok)
    response = harness.send(ApiRequest(url=""))

    assert response.status_code is None
    assert response.error_message == "URL cannot be empty"
    assert response.is_success is False
    assert harness.seen == []
    assert len(harness.history.list()) == 1


def test_transport_failure_raises_after_history_write():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    harness = _Harness(handler)
    with pytest.raises(TransportError) as excinfo:
        harness.send(ApiRequest(url="https://down.test/"))

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    [item] = harness.history.list()
    assert item.request.url == "https://down.test/"
    assert item.response.status_description == "No response"


def test_timeout_is_a_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    harness = _Harness(handler)
    with pytest.raises(TransportError, match="timed out"):
        harness.send(ApiRequest(url="https://slow.test/", timeout=50))


def test_redirects_are_counted():
    def handler(request):
        if request.url.path == "/old":
            return httpx.Response(302, headers={"Location": "https://api.test/new"})
        return httpx.Response(200, text="moved")

    harness = _Harness(handler)
    response = harness.send(ApiRequest(url="https://api.test/old"))

    assert response.status_code == 200
    assert response.redirect_count == 1
    assert response.body == "moved"


def test_response_cookies_are_collected():
    def handler(request):
        return httpx.Response(200, headers={"Set-Cookie": "session=abc; Path=/"})

    harness = _Harness(handler)
    response = harness.send(ApiRequest(url="https://api.test/login"))

    assert [(c.name, c.value) for c in response.cookies] == [("session", "abc")]


def test_body_is_sent_on_the_wire():
    harness = _Harness(_ok)
    harness.send(ApiRequest(
        method=HttpMethod.POST,
        url="https://api.test/echo",
        body=RawBody(raw_content='{"a": 1}', content_type="application/json"),
    ))
    [sent] = harness.seen
    assert sent.content == b'{"a": 1}'
    assert sent.headers["Content-Type"] == "application/json"


def test_cancel_event_aborts_in_flight_request():
    async def handler(request):
        await asyncio.sleep(10)
        return httpx.Response(200)

    harness = _Harness(handler)

    async def scenario():
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)
        return await harness.executor.send(ApiRequest(url="https://api.test/slow"), cancel)

    with pytest.raises(RequestCancelledError):
        asyncio.run(asyncio.wait_for(scenario(), timeout=5))


def test_already_cancelled_event_sends_nothing():
    harness = _Harness(_ok)

    async def scenario():
        cancel = asyncio.Event()
        cancel.set()
        return await harness.executor.send(ApiRequest(url="https://api.test/"), cancel)

    with pytest.raises(RequestCancelledError):
        asyncio.run(scenario())
    assert harness.seen == []


def test_initialize_warms_environment_cache():
    harness = _Harness(_ok)
    env = harness.environments.create(Environment(name="Dev"))
    asyncio.run(harness.executor.initialize())
    assert harness.executor._environment.id == env.id


def test_build_client_uses_request_settings():
    request = ApiRequest(url="https://api.test", timeout=5000, follow_redirects=False)
    client = build_client(request, max_redirects=3)
    try:
        assert client.timeout.read == 5.0
        assert client.follow_redirects is False
        assert client.max_redirects == 3
    finally:
        asyncio.run(client.aclose())


def test_proxy_settings():
    assert executor_module._build_proxy(ProxySettings()) is None

    proxy = executor_module._build_proxy(ProxySettings(
        enabled=True, type=ProxyType.HTTP, host="proxy.local", port=3128,
        use_authentication=True, username="u", password="p",
    ))
    assert proxy.url == httpx.URL("http://proxy.local:3128")
    assert proxy.auth == ("u", "p")

    socks4 = ProxySettings(enabled=True, type=ProxyType.SOCKS4, host="proxy.local")
    assert executor_module._build_proxy(socks4) is None


def test_bypass_patterns():
    assert executor_module._bypass_patterns("localhost; *.internal,10.0.0.1") == [
        "all://localhost",
        "all://*.internal",
        "all://10.0.0.1",
    ]


@pytest.mark.parametrize("method", [HttpMethod.PATCH, HttpMethod.CONNECT])
def test_uncommon_methods_go_out_verbatim(method):
    harness = _Harness(_ok)
    response = harness.send(ApiRequest(method=method, url="https://api.test/resource"))

    [sent] = harness.seen
    assert sent.method == method.value
    assert response.status_code == 200
