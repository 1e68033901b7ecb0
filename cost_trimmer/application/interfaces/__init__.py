"""Application interfaces (ports)."""

from cost_trimmer.application.interfaces.services import (
    IAccessPolicy,
    ICacheStore,
    IDocumentFetcher,
)

__all__ = ["IAccessPolicy", "ICacheStore", "IDocumentFetcher"]
