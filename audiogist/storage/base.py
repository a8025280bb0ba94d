"""Interfaces for artifact storage and record metadata"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..models import EpisodeRecord, SummaryRecord


def blob_path(container: str, blob_name: str) -> str:
    """Location string stored in records, e.g. ``episodes/<key>.mp3``"""
    return f"{container}/{blob_name}"


class StorageBackend(ABC):
    """Keyed blob storage grouped into containers"""

    @abstractmethod
    async def upload_file(self, container: str, blob_name: str, local_path: Path) -> str:
        """Store a local file; returns a URI for the stored blob"""
        pass

    @abstractmethod
    async def upload_text(self, container: str, blob_name: str, text: str) -> str:
        """Store UTF-8 text; returns a URI for the stored blob"""
        pass

    @abstractmethod
    async def download_to_file(self, container: str, blob_name: str, local_path: Path) -> Path:
        """Copy a blob to ``local_path``; NotFoundError when it does not exist"""
        pass

    @abstractmethod
    async def read_text(self, container: str, blob_name: str) -> str:
        pass

    @abstractmethod
    async def exists(self, container: str, blob_name: str) -> bool:
        pass

    @abstractmethod
    async def delete(self, container: str, blob_name: str) -> None:
        pass

    @abstractmethod
    async def get_size(self, container: str, blob_name: str) -> int:
        pass


class MetadataStore(ABC):
    """Episode and summary records, addressed by cache key"""

    @abstractmethod
    async def get_episode(self, cache_key: str) -> Optional[EpisodeRecord]:
        pass

    @abstractmethod
    async def save_episode(self, record: EpisodeRecord) -> None:
        pass

    @abstractmethod
    async def episode_exists(self, cache_key: str) -> bool:
        pass

    @abstractmethod
    async def delete_episode(self, cache_key: str) -> None:
        pass

    @abstractmethod
    async def get_summary(self, cache_key: str) -> Optional[SummaryRecord]:
        pass

    @abstractmethod
    async def save_summary(self, record: SummaryRecord) -> None:
        pass

    @abstractmethod
    async def summary_exists(self, cache_key: str) -> bool:
        pass

    @abstractmethod
    async def delete_summary(self, cache_key: str) -> None:
        pass
