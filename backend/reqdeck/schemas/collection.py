from datetime import datetime

from pydantic import Field

from reqdeck.schemas.common import CamelModel, Variable, new_id, utcnow
from reqdeck.schemas.request import ApiRequest


class CollectionNode(CamelModel):
    """A node of the request tree. Folders are plain nodes, the root is a Collection."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    description: str = ""
    requests: list[ApiRequest] = Field(default_factory=list)
    folders: list["CollectionNode"] = Field(default_factory=list)
    # non-owning back-reference, lookup only
    parent_id: str | None = None


class Collection(CollectionNode):
    variables: list[Variable] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


CollectionNode.model_rebuild()
