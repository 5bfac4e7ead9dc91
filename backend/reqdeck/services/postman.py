"""
Postman Collection v2.1 / Environment interchange.

Best effort and lossy both ways. Basic, Bearer and API-key auth round-trip;
OAuth1/OAuth2/Digest/NTLM/AWS are imported into their stored variants with
whatever fields Postman carries, and are never exported.
"""
from datetime import datetime, timezone
from typing import Any

from reqdeck.schemas.collection import Collection, CollectionNode
from reqdeck.schemas.common import KeyValue, Variable
from reqdeck.schemas.environment import Environment
from reqdeck.schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    Authentication,
    AwsSignatureAuth,
    BasicAuth,
    BearerAuth,
    DigestAuth,
    FormDataBody,
    GraphQLBody,
    HttpMethod,
    NoAuth,
    NoBody,
    NtlmAuth,
    OAuth1Auth,
    OAuth2Auth,
    RawBody,
    RequestBody,
    UrlEncodedBody,
)

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"
EXPORTED_USING = "reqdeck"

_LANGUAGE_CONTENT_TYPES = {
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "text": "text/plain",
    "javascript": "application/javascript",
}
_CONTENT_TYPE_LANGUAGES = {v: k for k, v in _LANGUAGE_CONTENT_TYPES.items()}


# ────────────────────────────────────────────────────────────
# Import helpers
# ────────────────────────────────────────────────────────────

def _pairs(entries: list[dict] | None) -> dict[str, str]:
    """Postman ``[{key, value}]`` auth arrays as a plain dict."""
    result: dict[str, str] = {}
    for entry in entries or []:
        if isinstance(entry, dict) and entry.get("key"):
            result[entry["key"]] = str(entry.get("value", ""))
    return result


def _key_values(entries: list[dict] | None) -> list[KeyValue]:
    """Header/query/form entries; disabled ones are skipped."""
    result: list[KeyValue] = []
    for entry in entries or []:
        if not isinstance(entry, dict) or entry.get("disabled", False):
            continue
        result.append(KeyValue(
            key=entry.get("key", ""),
            value=str(entry.get("value", "") or ""),
            description=_text(entry.get("description")),
        ))
    return result


def _text(value: Any) -> str:
    # descriptions may be a plain string or {"content": ..., "type": ...}
    if isinstance(value, dict):
        return str(value.get("content", ""))
    return str(value) if value else ""


def infer_content_type(raw: str, language: str | None = None) -> str:
    if language and language.lower() in _LANGUAGE_CONTENT_TYPES:
        return _LANGUAGE_CONTENT_TYPES[language.lower()]
    trimmed = (raw or "").strip()
    if trimmed:
        if (trimmed.startswith("{") and trimmed.endswith("}")) or (
            trimmed.startswith("[") and trimmed.endswith("]")
        ):
            return "application/json"
        if trimmed.startswith("<") and trimmed.endswith(">"):
            return "application/xml"
    return "text/plain"


def _parse_body(body_data: dict | None) -> RequestBody:
    if not body_data:
        return NoBody()

    mode = (body_data.get("mode") or "").lower()

    if mode == "raw":
        raw = body_data.get("raw", "") or ""
        language = (body_data.get("options") or {}).get("raw", {}).get("language")
        return RawBody(raw_content=raw, content_type=infer_content_type(raw, language))

    if mode == "formdata":
        # file parts have no value we could send
        fields = [
            f for f in body_data.get("formdata") or []
            if isinstance(f, dict) and f.get("type", "text") == "text"
        ]
        return FormDataBody(form_data=_key_values(fields))

    if mode == "urlencoded":
        return UrlEncodedBody(url_encoded_data=_key_values(body_data.get("urlencoded")))

    if mode == "graphql":
        graphql = body_data.get("graphql") or {}
        return GraphQLBody(
            graphql_query=graphql.get("query", "") or "",
            graphql_variables=graphql.get("variables", "") or "",
        )

    return NoBody()


def _parse_auth(auth_data: dict | None) -> Authentication:
    if not auth_data:
        return NoAuth()

    auth_type = (auth_data.get("type") or "noauth").lower()
    config = _pairs(auth_data.get(auth_type))

    if auth_type == "basic":
        return BasicAuth(username=config.get("username", ""), password=config.get("password", ""))

    if auth_type == "bearer":
        return BearerAuth(token=config.get("token", ""))

    if auth_type == "apikey":
        return ApiKeyAuth(
            api_key_name=config.get("key", ""),
            api_key=config.get("value", ""),
            add_to_header=config.get("in", "header").lower() != "query",
        )

    if auth_type == "oauth2":
        return OAuth2Auth(
            client_id=config.get("clientId", ""),
            client_secret=config.get("clientSecret", ""),
            auth_url=config.get("authUrl", ""),
            access_token_url=config.get("accessTokenUrl", ""),
            redirect_url=config.get("redirect_uri", ""),
            scope=config.get("scope", ""),
            access_token=config.get("accessToken", ""),
        )

    if auth_type == "oauth1":
        return OAuth1Auth(
            consumer_key=config.get("consumerKey", ""),
            consumer_secret=config.get("consumerSecret", ""),
            access_token=config.get("token", ""),
            token_secret=config.get("tokenSecret", ""),
            signature_method=config.get("signatureMethod", "HMAC-SHA1"),
        )

    if auth_type == "digest":
        return DigestAuth(
            username=config.get("username", ""),
            password=config.get("password", ""),
            realm=config.get("realm", ""),
            nonce=config.get("nonce", ""),
            algorithm=config.get("algorithm", "MD5"),
        )

    if auth_type == "ntlm":
        return NtlmAuth(
            username=config.get("username", ""),
            password=config.get("password", ""),
            domain=config.get("domain", ""),
            workstation=config.get("workstation", ""),
        )

    if auth_type == "awsv4":
        return AwsSignatureAuth(
            access_key=config.get("accessKey", ""),
            secret_key=config.get("secretKey", ""),
            region=config.get("region", ""),
            service=config.get("service", ""),
        )

    return NoAuth()


def _parse_request(item: dict) -> ApiRequest:
    req_data = item["request"]
    name = item.get("name", "") or ""

    # a bare string is shorthand for a GET to that URL
    if isinstance(req_data, str):
        return ApiRequest(name=name, method=HttpMethod.GET, url=req_data)

    url_data = req_data.get("url") or {}
    if isinstance(url_data, str):
        url = url_data
        query: list[KeyValue] = []
        path_variables: list[KeyValue] = []
    else:
        url = url_data.get("raw", "") or ""
        query = _key_values(url_data.get("query"))
        path_variables = _key_values(url_data.get("variable"))

    return ApiRequest(
        name=name,
        description=_text(req_data.get("description")),
        method=HttpMethod.parse(req_data.get("method")),
        url=url,
        headers=_key_values(req_data.get("header")),
        query_parameters=query,
        path_variables=path_variables,
        body=_parse_body(req_data.get("body")),
        authentication=_parse_auth(req_data.get("auth")),
    )


def _parse_items(items: list[dict], parent: CollectionNode) -> None:
    """Fill ``parent`` in place. Items that are neither folder nor request are dropped."""
    for item in items:
        if not isinstance(item, dict):
            continue
        children = item.get("item")
        if isinstance(children, list) and children:
            folder = CollectionNode(
                name=item.get("name", "") or "",
                description=_text(item.get("description")),
                parent_id=parent.id,
            )
            _parse_items(children, folder)
            parent.folders.append(folder)
        elif item.get("request") is not None:
            parent.requests.append(_parse_request(item))


def collection_from_postman(data: dict) -> Collection:
    """Convert a parsed Postman v2.x collection. Raises ``ValueError`` if ``data`` is not one."""
    if not isinstance(data, dict) or not isinstance(data.get("info"), dict):
        raise ValueError("Not a Postman collection: missing 'info'")
    items = data.get("item", [])
    if not isinstance(items, list):
        raise ValueError("Not a Postman collection: 'item' must be a list")

    info = data["info"]
    collection = Collection(
        name=info.get("name", "") or "Imported Collection",
        description=_text(info.get("description")),
        variables=[
            Variable(
                key=v.get("key", ""),
                value=str(v.get("value", "") or ""),
                enabled=not v.get("disabled", False),
                description=_text(v.get("description")),
            )
            for v in data.get("variable") or []
            if isinstance(v, dict) and v.get("key")
        ],
    )
    _parse_items(items, collection)
    return collection


# ────────────────────────────────────────────────────────────
# Export
# ────────────────────────────────────────────────────────────

def _build_auth(auth: Authentication) -> dict | None:
    if not auth.enabled:
        return None

    if isinstance(auth, BasicAuth):
        return {
            "type": "basic",
            "basic": [
                {"key": "username", "value": auth.username, "type": "string"},
                {"key": "password", "value": auth.password, "type": "string"},
            ],
        }

    if isinstance(auth, BearerAuth):
        return {
            "type": "bearer",
            "bearer": [{"key": "token", "value": auth.token, "type": "string"}],
        }

    if isinstance(auth, ApiKeyAuth):
        return {
            "type": "apikey",
            "apikey": [
                {"key": "key", "value": auth.api_key_name, "type": "string"},
                {"key": "value", "value": auth.api_key, "type": "string"},
                {"key": "in", "value": "header" if auth.add_to_header else "query", "type": "string"},
            ],
        }

    return None


def _build_body(body: RequestBody) -> dict | None:
    if isinstance(body, RawBody):
        language = _CONTENT_TYPE_LANGUAGES.get(body.content_type.split(";")[0].strip().lower(), "text")
        return {"mode": "raw", "raw": body.raw_content, "options": {"raw": {"language": language}}}

    if isinstance(body, FormDataBody):
        return {
            "mode": "formdata",
            "formdata": [
                {"key": f.key, "value": f.value, "type": "text", "disabled": not f.enabled}
                for f in body.form_data
            ],
        }

    if isinstance(body, UrlEncodedBody):
        return {
            "mode": "urlencoded",
            "urlencoded": [
                {"key": f.key, "value": f.value, "disabled": not f.enabled}
                for f in body.url_encoded_data
            ],
        }

    if isinstance(body, GraphQLBody):
        return {
            "mode": "graphql",
            "graphql": {"query": body.graphql_query, "variables": body.graphql_variables},
        }

    return None


def _build_request_item(request: ApiRequest) -> dict:
    postman_url: dict[str, Any] = {"raw": request.url}
    query = [{"key": q.key, "value": q.value} for q in request.query_parameters if q.enabled]
    if query:
        postman_url["query"] = query
    variables = [{"key": v.key, "value": v.value} for v in request.path_variables if v.enabled]
    if variables:
        postman_url["variable"] = variables

    postman_request: dict[str, Any] = {
        "method": request.method.value,
        "header": [{"key": h.key, "value": h.value} for h in request.headers if h.enabled],
        "url": postman_url,
    }
    if request.description:
        postman_request["description"] = request.description

    body = _build_body(request.body)
    if body:
        postman_request["body"] = body

    auth = _build_auth(request.authentication)
    if auth:
        postman_request["auth"] = auth

    return {"name": request.name, "request": postman_request}


def _build_folder_item(folder: CollectionNode) -> dict:
    item: dict[str, Any] = {"name": folder.name, "item": _build_items(folder)}
    if folder.description:
        item["description"] = folder.description
    return item


def _build_items(node: CollectionNode) -> list[dict]:
    return [_build_request_item(r) for r in node.requests] + [
        _build_folder_item(f) for f in node.folders
    ]


def collection_to_postman(collection: Collection) -> dict:
    """Export to Postman Collection v2.1, nested folders included."""
    postman: dict[str, Any] = {
        "info": {
            "_postman_id": collection.id,
            "name": collection.name,
            "description": collection.description or "",
            "schema": POSTMAN_SCHEMA,
        },
        "item": _build_items(collection),
    }
    if collection.variables:
        postman["variable"] = [
            {"key": v.key, "value": v.value, "type": "string"}
            for v in collection.variables
            if v.key
        ]
    return postman


# ────────────────────────────────────────────────────────────
# Environments
# ────────────────────────────────────────────────────────────

def environment_from_postman(data: dict) -> Environment:
    """Raises ``ValueError`` when ``data`` is not a Postman environment."""
    if not isinstance(data, dict) or "values" not in data:
        raise ValueError("Not a Postman environment: missing 'values'")
    values = data.get("values") or []
    if not isinstance(values, list):
        raise ValueError("Not a Postman environment: 'values' must be a list")

    return Environment(
        name=data.get("name", "") or "Imported Environment",
        variables=[
            Variable(
                key=v.get("key", ""),
                value=str(v.get("value", "") or ""),
                enabled=v.get("enabled", True),
                is_secret=v.get("type") == "secret",
            )
            for v in values
            if isinstance(v, dict) and v.get("key")
        ],
    )


def environment_to_postman(environment: Environment) -> dict:
    return {
        "id": environment.id,
        "name": environment.name,
        "values": [
            {
                "key": v.key,
                "value": v.value,
                "enabled": v.enabled,
                "type": "secret" if v.is_secret else "default",
            }
            for v in environment.variables
        ],
        "_postman_variable_scope": "environment",
        "_postman_exported_at": datetime.now(timezone.utc).isoformat(),
        "_postman_exported_using": EXPORTED_USING,
    }
