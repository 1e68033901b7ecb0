"""Firestore integration (REST): the remote read collaborator."""

from cost_trimmer.infrastructure.firebase.client import create_firestore_client
from cost_trimmer.infrastructure.firebase.fetcher import (
    FirestoreFetcher,
    build_structured_query,
)

__all__ = [
    "FirestoreFetcher",
    "build_structured_query",
    "create_firestore_client",
]
