"""
Turn a resolved ``ApiRequest`` into a ``WireRequest``.

Order matters and is fixed: validate, append query parameters, substitute
path variables, copy headers, apply auth, attach the body.
"""
import base64
import json
from urllib.parse import quote, quote_plus, urlencode, urlsplit

from reqdeck.errors import InvalidRequestError
from reqdeck.schemas.common import enabled_entries
from reqdeck.schemas.proxy import WireRequest
from reqdeck.schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    BasicAuth,
    BearerAuth,
    BinaryBody,
    FormDataBody,
    GraphQLBody,
    HttpMethod,
    RawBody,
    UrlEncodedBody,
)

_BODYLESS_METHODS = {HttpMethod.GET, HttpMethod.HEAD}


def validate_request(request: ApiRequest) -> None:
    """Raise ``InvalidRequestError`` unless the url is a well-formed absolute URI."""
    url = request.url.strip() if request.url else ""
    if not url:
        raise InvalidRequestError("URL cannot be empty")
    try:
        parts = urlsplit(url)
        parts.port  # raises on a malformed port
    except ValueError as exc:
        raise InvalidRequestError(f"URL is not valid: {exc}") from exc
    if not parts.scheme or not parts.netloc:
        raise InvalidRequestError("URL is not valid")


def append_query(url: str, query: str) -> str:
    if not query:
        return url
    if "?" not in url:
        return f"{url}?{query}"
    if url.endswith("?"):
        return url + query
    return f"{url}&{query}"


def build_url(request: ApiRequest) -> str:
    url = request.url.strip()

    query = "&".join(
        f"{quote_plus(param.key)}={quote_plus(param.value)}"
        for param in enabled_entries(request.query_parameters)
    )
    url = append_query(url, query)

    for path_var in enabled_entries(request.path_variables):
        url = url.replace(f"{{{path_var.key}}}", quote(path_var.value, safe=""))
    return url


def _set_header(headers: list[tuple[str, str]], name: str, value: str) -> None:
    wanted = name.lower()
    headers[:] = [(k, v) for k, v in headers if k.lower() != wanted]
    headers.append((name, value))


def _apply_auth(request: ApiRequest, url: str, headers: list[tuple[str, str]]) -> str:
    """Inject auth into headers (in place) or the query string; returns the url."""
    auth = request.authentication
    if not auth.enabled:
        return url
    if isinstance(auth, BasicAuth):
        credentials = base64.b64encode(f"{auth.username}:{auth.password}".encode()).decode()
        _set_header(headers, "Authorization", f"Basic {credentials}")
    elif isinstance(auth, BearerAuth):
        _set_header(headers, "Authorization", f"Bearer {auth.token}")
    elif isinstance(auth, ApiKeyAuth):
        if auth.add_to_header:
            _set_header(headers, auth.api_key_name, auth.api_key)
        else:
            url = append_query(url, f"{auth.api_key_name}={quote_plus(auth.api_key)}")
    # OAuth1/OAuth2/Digest/NTLM/AWS/Custom are stored but not signed here
    return url


def _build_body(
    request: ApiRequest,
    headers: list[tuple[str, str]],
) -> tuple[bytes | None, list[tuple[str, str]] | None]:
    if request.method in _BODYLESS_METHODS:
        return None, None

    body = request.body
    if isinstance(body, RawBody):
        if body.content_type:
            _set_header(headers, "Content-Type", body.content_type)
        return body.raw_content.encode("utf-8"), None

    if isinstance(body, FormDataBody):
        return None, [(item.key, item.value) for item in enabled_entries(body.form_data)]

    if isinstance(body, UrlEncodedBody):
        pairs = [(item.key, item.value) for item in enabled_entries(body.url_encoded_data)]
        _set_header(headers, "Content-Type", "application/x-www-form-urlencoded")
        return urlencode(pairs).encode("ascii"), None

    if isinstance(body, GraphQLBody):
        variables: object = {}
        if body.graphql_variables.strip():
            try:
                variables = json.loads(body.graphql_variables)
            except json.JSONDecodeError as exc:
                raise InvalidRequestError(f"GraphQL variables are not valid JSON: {exc}") from exc
        payload = json.dumps({"query": body.graphql_query, "variables": variables})
        _set_header(headers, "Content-Type", "application/json")
        return payload.encode("utf-8"), None

    if isinstance(body, BinaryBody) and body.binary_data:
        _set_header(headers, "Content-Type", "application/octet-stream")
        return body.binary_data, None

    return None, None


def build(request: ApiRequest) -> WireRequest:
    validate_request(request)

    url = build_url(request)
    headers = [(h.key, h.value) for h in enabled_entries(request.headers)]
    url = _apply_auth(request, url, headers)
    content, multipart = _build_body(request, headers)

    return WireRequest(
        method=request.method.value,
        url=url,
        headers=headers,
        content=content,
        multipart=multipart,
    )
