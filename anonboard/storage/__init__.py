"""Persistence collaborator: JSON-file document collections."""

from anonboard.storage.document_store import DocumentStore

__all__ = ["DocumentStore"]
