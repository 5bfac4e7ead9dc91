from typing import Any

from pydantic import BaseModel


class WireRequest(BaseModel):
    """Fully assembled HTTP call, ready to hand to the transport."""

    method: str
    url: str
    headers: list[tuple[str, str]] = []
    content: bytes | None = None
    # multipart fields (name, value); mutually exclusive with content
    multipart: list[tuple[str, str]] | None = None

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def to_httpx_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "method": self.method,
            "url": self.url,
            "headers": list(self.headers),
        }
        if self.multipart is not None:
            # (None, bytes) parts carry no filename and no per-part content type
            kwargs["files"] = [(name, (None, value.encode("utf-8"))) for name, value in self.multipart]
        elif self.content is not None:
            kwargs["content"] = self.content
        return kwargs
