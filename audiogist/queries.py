"""Read-only lookups over previously processed episodes"""

from pathlib import Path
from typing import Optional

from . import config
from .errors import NotFoundError
from .models import ProcessResult
from .pipeline import AudioPipeline
from .storage.base import MetadataStore, StorageBackend
from .utils.helpers import count_words, derive_cache_key, trim_non_alphanumeric
from .utils.logging import get_logger

logger = get_logger(__name__)


class EpisodeQueryService:
    """Answers "what do we already have for this episode?" without running anything"""

    def __init__(
        self,
        storage: StorageBackend,
        metadata: MetadataStore,
        temp_dir: Optional[Path] = None,
        episodes_container: str = config.EPISODES_CONTAINER,
        transcripts_container: str = config.TRANSCRIPTS_CONTAINER,
        summaries_container: str = config.SUMMARIES_CONTAINER,
    ):
        self.storage = storage
        self.metadata = metadata
        self.temp_dir = Path(temp_dir or config.TEMP_DIR)
        self.episodes_container = episodes_container
        self.transcripts_container = transcripts_container
        self.summaries_container = summaries_container

    async def get_result(self, identifier: str) -> ProcessResult:
        """
        Describe the stored state of an episode.

        Raises:
            InvalidArgumentError: blank identifier
            NotFoundError: the episode was never downloaded
        """
        cache_key = derive_cache_key(identifier)
        if await self.metadata.get_episode(cache_key) is None:
            raise NotFoundError(f"Episode not found: {cache_key}", cache_key=cache_key)

        result = ProcessResult(
            episode_id=cache_key,
            message="Episode found",
            was_cached=True,
        )

        summary = await self.metadata.get_summary(cache_key)
        if summary is None:
            return result

        summary_text = await self.storage.read_text(
            self.transcripts_container, AudioPipeline.summary_text_blob(cache_key)
        )
        summary_text = trim_non_alphanumeric(summary_text)

        result.message = "Summary available"
        result.summary_was_cached = True
        result.summary_text = summary_text
        result.summary_audio_path = summary.summary_audio_path
        result.transcript_word_count = summary.transcript_word_count
        result.summary_word_count = summary.summary_word_count or count_words(summary_text)
        return result

    async def open_episode_audio(self, identifier: str) -> Path:
        """Copy the stored episode audio to a local file and return its path"""
        cache_key = derive_cache_key(identifier)
        target = self.temp_dir / f"audio_{cache_key}.mp3"
        return await self.storage.download_to_file(
            self.episodes_container, AudioPipeline.episode_blob(cache_key), target
        )

    async def open_summary_audio(self, identifier: str) -> Path:
        """Copy the stored summary narration to a local file and return its path"""
        cache_key = derive_cache_key(identifier)
        target = self.temp_dir / f"audio_{cache_key}_summary.mp3"
        return await self.storage.download_to_file(
            self.summaries_container, AudioPipeline.summary_audio_blob(cache_key), target
        )
