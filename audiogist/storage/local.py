"""Blob storage on the local filesystem"""

import os
from pathlib import Path
from typing import Iterable

import aiofiles

from .. import config
from ..errors import InvalidArgumentError, NotFoundError, StorageError
from ..utils.logging import get_logger
from .base import StorageBackend

logger = get_logger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


class LocalFileStorage(StorageBackend):
    """Containers are sub-directories of ``base_path``; blobs are files inside them"""

    def __init__(
        self,
        base_path: Path = config.STORAGE_DIR,
        containers: Iterable[str] = (
            config.EPISODES_CONTAINER,
            config.TRANSCRIPTS_CONTAINER,
            config.SUMMARIES_CONTAINER,
        ),
    ):
        self.base_path = Path(base_path)
        for container in containers:
            container_path = self.base_path / container
            if not container_path.exists():
                container_path.mkdir(parents=True, exist_ok=True)
                logger.info(f"Initialized local storage container: {container}")

    def _path(self, container: str, blob_name: str) -> Path:
        for part in (container, blob_name):
            if not part or "/" in part or "\\" in part or part in (".", ".."):
                raise InvalidArgumentError(f"Invalid storage name: {part!r}")
        return self.base_path / container / blob_name

    async def _copy(self, source: Path, target: Path):
        async with aiofiles.open(source, 'rb') as src, aiofiles.open(target, 'wb') as dst:
            while True:
                chunk = await src.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                await dst.write(chunk)

    async def upload_file(self, container, blob_name, local_path) -> str:
        target = self._path(container, blob_name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await self._copy(Path(local_path), target)
        except OSError as e:
            logger.error(f"IO error uploading file: {local_path} -> {container}/{blob_name}: {e}")
            raise StorageError(f"Failed to upload {container}/{blob_name}: {e}") from e

        logger.info(f"Uploaded file: {container}/{blob_name}")
        return target.resolve().as_uri()

    async def upload_text(self, container, blob_name, text) -> str:
        target = self._path(container, blob_name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, 'w', encoding='utf-8') as f:
                await f.write(text)
        except OSError as e:
            logger.error(f"IO error uploading text: {container}/{blob_name}: {e}")
            raise StorageError(f"Failed to upload {container}/{blob_name}: {e}") from e

        logger.info(f"Uploaded file: {container}/{blob_name}")
        return target.resolve().as_uri()

    async def download_to_file(self, container, blob_name, local_path) -> Path:
        source = self._path(container, blob_name)
        if not source.exists():
            raise NotFoundError(f"File not found: {container}/{blob_name}")

        local_path = Path(local_path)
        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            await self._copy(source, local_path)
        except OSError as e:
            logger.error(f"IO error downloading file: {container}/{blob_name} -> {local_path}: {e}")
            raise StorageError(f"Failed to download {container}/{blob_name}: {e}") from e

        logger.info(f"Downloaded file: {container}/{blob_name} -> {local_path}")
        return local_path

    async def read_text(self, container, blob_name) -> str:
        source = self._path(container, blob_name)
        if not source.exists():
            raise NotFoundError(f"File not found: {container}/{blob_name}")
        try:
            async with aiofiles.open(source, 'r', encoding='utf-8') as f:
                return await f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {container}/{blob_name}: {e}") from e

    async def exists(self, container, blob_name) -> bool:
        return self._path(container, blob_name).exists()

    async def delete(self, container, blob_name) -> None:
        target = self._path(container, blob_name)
        try:
            os.remove(target)
            logger.info(f"Deleted file: {container}/{blob_name}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to delete {container}/{blob_name}: {e}") from e

    async def get_size(self, container, blob_name) -> int:
        target = self._path(container, blob_name)
        if not target.exists():
            raise NotFoundError(f"File not found: {container}/{blob_name}")
        return target.stat().st_size
