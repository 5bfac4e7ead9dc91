import uuid
from datetime import datetime, timezone

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return str(uuid.uuid4())


class CamelModel(BaseModel):
    """Base for every persisted entity: lower-camel-case JSON keys, snake_case attributes."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "ser_json_bytes": "base64",
        "val_json_bytes": "base64",
    }


class KeyValue(CamelModel):
    key: str = ""
    value: str = ""
    enabled: bool = True
    description: str = ""


class Variable(KeyValue):
    is_secret: bool = False
    type: str = "string"


def enabled_entries(entries: list[KeyValue]) -> list[KeyValue]:
    return [entry for entry in entries if entry.enabled]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
