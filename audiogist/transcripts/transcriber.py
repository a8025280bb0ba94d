"""Audio transcription with size-based chunking and bounded concurrency"""

import asyncio
import shutil
import tempfile
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional

import aiofiles
import openai

from .. import config
from ..errors import AudioGistError, TranscriptionError
from ..models import AudioSegment, ProviderSettings
from ..utils.cancellation import CancellationToken, check_cancelled
from ..utils.clients import OpenAIClient, resolve_model, resolve_openai_client
from ..utils.helpers import file_size_mb
from ..utils.logging import get_logger, new_correlation_id
from .audio_segmenter import AudioSegmenter

logger = get_logger(__name__)


class TranscriptionBackend(ABC):
    """Speech-to-text capability: one call per whole file or per chunk"""

    @abstractmethod
    async def transcribe(
        self,
        audio_file: Path,
        settings: Optional[ProviderSettings] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Return the text spoken in ``audio_file``"""
        pass


class OpenAITranscriptionBackend(TranscriptionBackend):
    """Transcribe with the OpenAI / Azure OpenAI Whisper endpoint"""

    def __init__(
        self,
        model: str = config.TRANSCRIPTION_MODEL,
        client_resolver: Callable[[Optional[ProviderSettings]], OpenAIClient] = resolve_openai_client,
    ):
        self.model = model
        self.client_resolver = client_resolver

    async def transcribe(self, audio_file, settings=None, cancel_token=None) -> str:
        check_cancelled(cancel_token)
        audio_file = Path(audio_file)
        client = self.client_resolver(settings)
        model = resolve_model(settings.transcription_deployment if settings else None, self.model)

        try:
            async with aiofiles.open(audio_file, 'rb') as f:
                audio_bytes = await f.read()
        except OSError as e:
            raise TranscriptionError(f"Cannot read audio file {audio_file}: {e}") from e

        try:
            result = await client.audio.transcriptions.create(
                model=model,
                file=(audio_file.name, audio_bytes),
                response_format="text",
                temperature=0.0
            )
        except openai.OpenAIError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e

        text = result if isinstance(result, str) else getattr(result, "text", "")
        return text.strip()


class ChunkedTranscriber:
    """
    Transcribe a file whole, or split it first when it is over the size limit.

    Chunks are transcribed concurrently, at most ``max_concurrency`` calls at
    a time, and rejoined in chunk order no matter which call finishes first.
    One failed chunk fails the whole transcription; the scratch directory is
    removed on every exit path.
    """

    def __init__(
        self,
        backend: TranscriptionBackend,
        segmenter: Optional[AudioSegmenter] = None,
        size_threshold: int = config.MAX_AUDIO_FILE_SIZE_BYTES,
        max_concurrency: int = config.TRANSCRIPTION_CONCURRENCY,
        temp_dir: Optional[Path] = None,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.backend = backend
        self.segmenter = segmenter or AudioSegmenter(size_limit=size_threshold)
        self.size_threshold = size_threshold
        self.max_concurrency = max_concurrency
        self.temp_dir = temp_dir or config.TEMP_DIR

    async def transcribe(
        self,
        file_path: Path,
        settings: Optional[ProviderSettings] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Transcribe ``file_path``, chunking it when it exceeds the size threshold"""
        correlation_id = new_correlation_id()
        check_cancelled(cancel_token)

        file_path = Path(file_path)
        if not file_path.exists():
            raise TranscriptionError(f"Audio file not found: {file_path}")

        file_size = file_path.stat().st_size
        logger.info(f"[{correlation_id}] Transcribing {file_path.name} ({file_size_mb(file_path):.2f} MB)")

        if file_size <= self.size_threshold:
            return await self._transcribe_file(file_path, settings, cancel_token)

        logger.info(
            f"[{correlation_id}] File size ({file_size} bytes) exceeds limit "
            f"({self.size_threshold} bytes), using chunked transcription"
        )
        async with self.scratch_directory(correlation_id) as scratch_dir:
            segments = await self.segmenter.segment(file_path, scratch_dir, cancel_token, correlation_id)
            transcripts = await self.transcribe_segments(segments, settings, cancel_token, correlation_id)

        combined = " ".join(transcripts)
        logger.info(
            f"[{correlation_id}] Combined {len(transcripts)} chunks into {len(combined)} characters"
        )
        return combined

    @asynccontextmanager
    async def scratch_directory(self, correlation_id: str = "-") -> AsyncIterator[Path]:
        """A uniquely named chunk directory, removed when the block exits"""
        Path(self.temp_dir).mkdir(parents=True, exist_ok=True)
        scratch_dir = Path(tempfile.mkdtemp(prefix="audio_chunks_", dir=self.temp_dir))
        try:
            yield scratch_dir
        finally:
            try:
                await asyncio.to_thread(shutil.rmtree, scratch_dir)
                logger.info(f"[{correlation_id}] Cleaned up temporary chunk directory")
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"[{correlation_id}] Failed to clean up chunk directory {scratch_dir}: {e}")

    async def transcribe_segments(
        self,
        segments: List[AudioSegment],
        settings: Optional[ProviderSettings] = None,
        cancel_token: Optional[CancellationToken] = None,
        correlation_id: str = "-",
    ) -> List[str]:
        """Transcribe every segment under the concurrency bound, results in index order"""
        transcripts: List[Optional[str]] = [None] * len(segments)
        semaphore = asyncio.Semaphore(self.max_concurrency)
        total = len(segments)

        async def transcribe_one(segment: AudioSegment):
            async with semaphore:
                check_cancelled(cancel_token)
                logger.info(f"[{correlation_id}] Transcribing chunk {segment.index + 1}/{total}...")
                transcripts[segment.index] = await self._transcribe_file(segment.path, settings, cancel_token)

        tasks = [asyncio.create_task(transcribe_one(segment)) for segment in segments]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            # Stop the siblings before the caller deletes their files
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return transcripts

    async def _transcribe_file(self, audio_file: Path, settings, cancel_token) -> str:
        try:
            return await self.backend.transcribe(audio_file, settings, cancel_token)
        except AudioGistError:
            raise
        except Exception as e:
            raise TranscriptionError(f"Failed to transcribe {audio_file.name}: {e}") from e
