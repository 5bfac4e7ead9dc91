from reqdeck.schemas.common import KeyValue, Variable
from reqdeck.schemas.environment import Environment
from reqdeck.schemas.request import (
    ApiRequest,
    BasicAuth,
    BearerAuth,
    GraphQLBody,
    RawBody,
    UrlEncodedBody,
)
from reqdeck.services.variables import process_request, resolve


def _env(**values) -> Environment:
    return Environment(
        name="test",
        variables=[Variable(key=k, value=v) for k, v in values.items()],
    )


def test_resolve_replaces_known_variable():
    env = _env(HOST="api.test")
    assert resolve("https://{{HOST}}/v1", env) == "https://api.test/v1"


def test_resolve_trims_whitespace_and_ignores_case():
    env = _env(Token="abc")
    assert resolve("Bearer {{ token }}", env) == "Bearer abc"


def test_unknown_variable_is_left_in_place():
    env = _env(HOST="api.test")
    assert resolve("{{missing}}", env) == "{{missing}}"


def test_disabled_variable_is_left_in_place():
    env = Environment(variables=[Variable(key="missing", value="x", enabled=False)])
    assert resolve("{{missing}}", env) == "{{missing}}"


def test_first_enabled_match_wins():
    env = Environment(variables=[
        Variable(key="A", value="off", enabled=False),
        Variable(key="a", value="first"),
        Variable(key="A", value="second"),
    ])
    assert resolve("{{A}}", env) == "first"


def test_substituted_values_are_not_rescanned():
    env = _env(OUTER="{{INNER}}", INNER="deep")
    assert resolve("{{OUTER}}", env) == "{{INNER}}"


def test_resolution_is_idempotent():
    env = _env(HOST="api.test", PORT="8443")
    once = resolve("https://{{HOST}}:{{PORT}}/{{path}}", env)
    assert resolve(once, env) == once


def test_resolve_without_environment_is_identity():
    assert resolve("{{HOST}}", None) == "{{HOST}}"
    assert resolve("", _env(HOST="x")) == ""


def test_process_request_resolves_active_environment_scenario():
    env = _env(HOST="api.test")
    request = ApiRequest(url="https://{{HOST}}/v1")
    assert process_request(request, env).url == "https://api.test/v1"


def test_process_request_does_not_mutate_input():
    env = _env(HOST="api.test", TOKEN="secret", NAME="bob")
    request = ApiRequest(
        url="https://{{HOST}}/users",
        headers=[KeyValue(key="X-Host", value="{{HOST}}")],
        query_parameters=[KeyValue(key="name", value="{{NAME}}")],
        body=RawBody(raw_content='{"name": "{{NAME}}"}', content_type="application/json"),
        authentication=BearerAuth(token="{{TOKEN}}"),
    )
    before = request.model_dump()

    processed = process_request(request, env)

    assert request.model_dump() == before
    assert processed.headers[0].value == "api.test"
    assert processed.query_parameters[0].value == "bob"
    assert processed.body.raw_content == '{"name": "bob"}'
    assert processed.authentication.token == "secret"
    assert processed.id == request.id


def test_process_request_skips_disabled_entries():
    env = _env(HOST="api.test")
    request = ApiRequest(headers=[KeyValue(key="X", value="{{HOST}}", enabled=False)])
    assert process_request(request, env).headers[0].value == "{{HOST}}"


def test_process_request_resolves_body_variants():
    env = _env(ID="42", NAME="bob")
    graphql = process_request(
        ApiRequest(body=GraphQLBody(graphql_query="{ user(id: {{ID}}) }", graphql_variables='{"n": "{{NAME}}"}')),
        env,
    )
    assert graphql.body.graphql_query == "{ user(id: 42) }"
    assert graphql.body.graphql_variables == '{"n": "bob"}'

    form = process_request(
        ApiRequest(body=UrlEncodedBody(url_encoded_data=[KeyValue(key="id", value="{{ID}}")])),
        env,
    )
    assert form.body.url_encoded_data[0].value == "42"


def test_process_request_leaves_disabled_auth_alone():
    env = _env(USER="alice")
    request = ApiRequest(authentication=BasicAuth(enabled=False, username="{{USER}}"))
    assert process_request(request, env).authentication.username == "{{USER}}"


def test_clone_is_independent():
    request = ApiRequest(headers=[KeyValue(key="A", value="1")])
    copy = request.clone()
    copy.headers[0].value = "x"
    assert request.headers[0].value == "1"
    assert copy.id == request.id
