"""Document handling on top of a storage backend: schema convention,
validation, search and the request-facing service."""
from .service import DocumentService

__all__ = ["DocumentService"]
