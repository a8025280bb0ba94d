"""Artifact storage and metadata collaborators"""

from .base import MetadataStore, StorageBackend
from .local import LocalFileStorage
from .metadata import JsonMetadataStore

__all__ = ["MetadataStore", "StorageBackend", "LocalFileStorage", "JsonMetadataStore"]
