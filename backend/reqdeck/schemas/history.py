from datetime import datetime

from pydantic import Field

from reqdeck.schemas.common import CamelModel, new_id, utcnow
from reqdeck.schemas.request import ApiRequest
from reqdeck.schemas.response import ApiResponse


class HistoryItem(CamelModel):
    id: str = Field(default_factory=new_id)
    request: ApiRequest
    response: ApiResponse = Field(default_factory=ApiResponse.placeholder)
    timestamp: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}


class HistoryOut(CamelModel):
    """Compact listing row."""

    id: str
    name: str
    method: str
    url: str
    status_code: int | None
    timestamp: datetime

    @classmethod
    def from_item(cls, item: HistoryItem) -> "HistoryOut":
        return cls(
            id=item.id,
            name=item.request.name,
            method=item.request.method.value,
            url=item.request.url,
            status_code=item.response.status_code,
            timestamp=item.timestamp,
        )
