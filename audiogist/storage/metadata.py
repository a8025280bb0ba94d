"""Episode and summary records as JSON files"""

import json
import os
from pathlib import Path
from typing import Optional

import aiofiles

from .. import config
from ..errors import InvalidArgumentError, StorageError
from ..models import EpisodeRecord, SummaryRecord
from ..utils.logging import get_logger
from .base import MetadataStore

logger = get_logger(__name__)


class JsonMetadataStore(MetadataStore):
    """``metadata/episodes/<key>.json`` and ``metadata/summaries/<key>.json`` under ``base_path``"""

    def __init__(self, base_path: Path = config.STORAGE_DIR):
        self.metadata_path = Path(base_path) / "metadata"
        self.episodes_path = self.metadata_path / "episodes"
        self.summaries_path = self.metadata_path / "summaries"
        for path in (self.episodes_path, self.summaries_path):
            path.mkdir(parents=True, exist_ok=True)

    def _file(self, directory: Path, cache_key: str) -> Path:
        if not cache_key or "/" in cache_key or "\\" in cache_key or cache_key in (".", ".."):
            raise InvalidArgumentError(f"Invalid cache key: {cache_key!r}")
        return directory / f"{cache_key}.json"

    async def _read(self, path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                return json.loads(await f.read())
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading metadata {path.name}: {e}")
            raise StorageError(f"Failed to read metadata {path.name}: {e}") from e

    async def _write(self, path: Path, data: dict):
        # readers never see a half-written record
        tmp_path = path.with_suffix(".json.tmp")
        try:
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(data, indent=2))
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Error saving metadata {path.name}: {e}")
            raise StorageError(f"Failed to save metadata {path.name}: {e}") from e

    def _delete(self, path: Path):
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.debug(f"Metadata not found for deletion: {path.name}")
        except OSError as e:
            raise StorageError(f"Failed to delete metadata {path.name}: {e}") from e

    async def get_episode(self, cache_key):
        data = await self._read(self._file(self.episodes_path, cache_key))
        return EpisodeRecord.from_dict(data) if data is not None else None

    async def save_episode(self, record):
        await self._write(self._file(self.episodes_path, record.cache_key), record.to_dict())
        logger.info(f"Saved episode metadata: {record.cache_key}")

    async def episode_exists(self, cache_key):
        return self._file(self.episodes_path, cache_key).exists()

    async def delete_episode(self, cache_key):
        self._delete(self._file(self.episodes_path, cache_key))

    async def get_summary(self, cache_key):
        data = await self._read(self._file(self.summaries_path, cache_key))
        return SummaryRecord.from_dict(data) if data is not None else None

    async def save_summary(self, record):
        await self._write(self._file(self.summaries_path, record.cache_key), record.to_dict())
        logger.info(f"Saved summary metadata: {record.cache_key}")

    async def summary_exists(self, cache_key):
        return self._file(self.summaries_path, cache_key).exists()

    async def delete_summary(self, cache_key):
        self._delete(self._file(self.summaries_path, cache_key))
