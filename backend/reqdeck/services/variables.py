"""
``{{variable}}`` substitution against an environment.

Unknown or disabled variables are left in place so the user can see which
placeholders did not bind. Substituted values are never re-scanned.
"""
import re

from reqdeck.schemas.common import KeyValue
from reqdeck.schemas.environment import Environment
from reqdeck.schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    BasicAuth,
    BearerAuth,
    FormDataBody,
    GraphQLBody,
    RawBody,
    UrlEncodedBody,
)

VAR_PATTERN = re.compile(r"\{\{(.*?)\}\}")


def resolve(template: str, environment: Environment | None) -> str:
    if not template or "{{" not in template or environment is None:
        return template

    def replacer(match: re.Match) -> str:
        variable = environment.find_variable(match.group(1).strip())
        if variable is None:
            return match.group(0)
        return variable.value

    return VAR_PATTERN.sub(replacer, template)


def _resolve_values(entries: list[KeyValue], environment: Environment | None) -> None:
    for entry in entries:
        if entry.enabled:
            entry.value = resolve(entry.value, environment)


def process_request(request: ApiRequest, environment: Environment | None) -> ApiRequest:
    """Return a resolved deep copy; ``request`` itself is left untouched."""
    processed = request.clone()

    processed.url = resolve(processed.url, environment)
    _resolve_values(processed.headers, environment)
    _resolve_values(processed.query_parameters, environment)
    _resolve_values(processed.path_variables, environment)

    body = processed.body
    if isinstance(body, RawBody):
        body.raw_content = resolve(body.raw_content, environment)
    elif isinstance(body, FormDataBody):
        _resolve_values(body.form_data, environment)
    elif isinstance(body, UrlEncodedBody):
        _resolve_values(body.url_encoded_data, environment)
    elif isinstance(body, GraphQLBody):
        body.graphql_query = resolve(body.graphql_query, environment)
        body.graphql_variables = resolve(body.graphql_variables, environment)

    auth = processed.authentication
    if auth.enabled:
        if isinstance(auth, BasicAuth):
            auth.username = resolve(auth.username, environment)
            auth.password = resolve(auth.password, environment)
        elif isinstance(auth, BearerAuth):
            auth.token = resolve(auth.token, environment)
        elif isinstance(auth, ApiKeyAuth):
            auth.api_key = resolve(auth.api_key, environment)

    return processed
