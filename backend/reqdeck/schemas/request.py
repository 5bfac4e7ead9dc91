from datetime import datetime
from enum import Enum as PyEnum
from typing import Annotated, Literal, Union

from pydantic import Field

from reqdeck.schemas.common import CamelModel, KeyValue, new_id


class HttpMethod(str, PyEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    CONNECT = "CONNECT"
    TRACE = "TRACE"

    @classmethod
    def parse(cls, value: str | None) -> "HttpMethod":
        """Case-insensitive lookup, unknown verbs fall back to GET."""
        try:
            return cls((value or "GET").upper())
        except ValueError:
            return cls.GET


# ── Body ──

class NoBody(CamelModel):
    type: Literal["none"] = "none"


class RawBody(CamelModel):
    type: Literal["raw"] = "raw"
    raw_content: str = ""
    content_type: str = "text/plain"


class FormDataBody(CamelModel):
    type: Literal["formData"] = "formData"
    form_data: list[KeyValue] = Field(default_factory=list)


class UrlEncodedBody(CamelModel):
    type: Literal["urlEncoded"] = "urlEncoded"
    url_encoded_data: list[KeyValue] = Field(default_factory=list)


class GraphQLBody(CamelModel):
    type: Literal["graphQL"] = "graphQL"
    graphql_query: str = Field("", alias="graphQLQuery")
    graphql_variables: str = Field("", alias="graphQLVariables")


class BinaryBody(CamelModel):
    type: Literal["binary"] = "binary"
    binary_data: bytes = b""
    file_name: str = ""


RequestBody = Annotated[
    Union[NoBody, RawBody, FormDataBody, UrlEncodedBody, GraphQLBody, BinaryBody],
    Field(discriminator="type"),
]


# ── Authentication ──

class NoAuth(CamelModel):
    type: Literal["none"] = "none"
    enabled: bool = False


class BasicAuth(CamelModel):
    type: Literal["basic"] = "basic"
    enabled: bool = True
    username: str = ""
    password: str = ""


class BearerAuth(CamelModel):
    type: Literal["bearer"] = "bearer"
    enabled: bool = True
    token: str = ""


class ApiKeyAuth(CamelModel):
    type: Literal["apiKey"] = "apiKey"
    enabled: bool = True
    api_key_name: str = ""
    api_key: str = ""
    add_to_header: bool = True


class OAuth1Auth(CamelModel):
    type: Literal["oauth1"] = "oauth1"
    enabled: bool = True
    consumer_key: str = ""
    consumer_secret: str = ""
    access_token: str = ""
    token_secret: str = ""
    signature_method: str = "HMAC-SHA1"


class OAuth2Auth(CamelModel):
    type: Literal["oauth2"] = "oauth2"
    enabled: bool = True
    client_id: str = ""
    client_secret: str = ""
    auth_url: str = ""
    access_token_url: str = ""
    redirect_url: str = ""
    scope: str = ""
    access_token: str = ""


class DigestAuth(CamelModel):
    type: Literal["digest"] = "digest"
    enabled: bool = True
    username: str = ""
    password: str = ""
    realm: str = ""
    nonce: str = ""
    algorithm: str = "MD5"


class NtlmAuth(CamelModel):
    type: Literal["ntlm"] = "ntlm"
    enabled: bool = True
    username: str = ""
    password: str = ""
    domain: str = ""
    workstation: str = ""


class AwsSignatureAuth(CamelModel):
    type: Literal["awsSignature"] = "awsSignature"
    enabled: bool = True
    access_key: str = ""
    secret_key: str = ""
    region: str = ""
    service: str = ""
    signature_version: str = "v4"


class CustomAuth(CamelModel):
    type: Literal["custom"] = "custom"
    enabled: bool = True
    custom_script: str = ""


Authentication = Annotated[
    Union[
        NoAuth, BasicAuth, BearerAuth, ApiKeyAuth, OAuth1Auth,
        OAuth2Auth, DigestAuth, NtlmAuth, AwsSignatureAuth, CustomAuth,
    ],
    Field(discriminator="type"),
]


# ── Proxy ──

class ProxyType(str, PyEnum):
    NONE = "none"
    HTTP = "http"
    SOCKS4 = "socks4"
    SOCKS5 = "socks5"


class ProxySettings(CamelModel):
    enabled: bool = False
    type: ProxyType = ProxyType.NONE
    host: str = ""
    port: int = 8080
    use_authentication: bool = False
    username: str = ""
    password: str = ""
    bypass_list: str = ""


# ── Request ──

class ApiRequest(CamelModel):
    id: str = Field(default_factory=new_id, frozen=True)
    name: str = ""
    description: str = ""
    method: HttpMethod = HttpMethod.GET
    url: str = ""
    headers: list[KeyValue] = Field(default_factory=list)
    query_parameters: list[KeyValue] = Field(default_factory=list)
    path_variables: list[KeyValue] = Field(default_factory=list)
    body: RequestBody = Field(default_factory=NoBody)
    authentication: Authentication = Field(default_factory=NoAuth)
    timeout: int = 30000
    follow_redirects: bool = True
    verify_ssl: bool = True
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    # stored verbatim, never executed
    pre_request_script: str = ""
    post_response_script: str = ""
    last_used: datetime | None = None

    def clone(self) -> "ApiRequest":
        """Fully independent copy with the same id."""
        return self.model_copy(deep=True)

    def with_id(self, request_id: str) -> "ApiRequest":
        return self.model_copy(update={"id": request_id}, deep=True)
