from datetime import datetime, timedelta

from pydantic import Field, computed_field

from reqdeck.schemas.common import CamelModel, KeyValue


class ResponseCookie(CamelModel):
    name: str = ""
    value: str = ""
    domain: str = ""
    path: str = "/"
    expires: datetime | None = None
    http_only: bool = False
    secure: bool = False


class ApiResponse(CamelModel):
    status_code: int | None = None
    status_description: str = ""
    headers: list[KeyValue] = Field(default_factory=list)
    content_type: str = ""
    content_length: int = 0
    body: str = ""
    raw_body: bytes = b""
    response_time: timedelta = timedelta(0)
    redirect_count: int = 0
    cookies: list[ResponseCookie] = Field(default_factory=list)
    error_message: str = ""

    @computed_field
    @property
    def is_success(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    @classmethod
    def failure(cls, message: str, elapsed: timedelta = timedelta(0)) -> "ApiResponse":
        return cls(error_message=message, response_time=elapsed)

    @classmethod
    def placeholder(cls) -> "ApiResponse":
        """Stored in history when a request was recorded before any response arrived."""
        return cls(status_description="No response")
