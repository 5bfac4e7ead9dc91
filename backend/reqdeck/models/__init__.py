from reqdeck.models.document import Document

__all__ = [
    "Document",
]
