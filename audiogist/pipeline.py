"""Download → transcribe → summarize → synthesize → persist, with caching and progress"""

import asyncio
import shutil
import tempfile
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from . import config
from .download_manager import EpisodeDownloader
from .errors import NotFoundError, ProcessingCancelled
from .models import EpisodeRecord, ProcessingStage, ProcessingStatus, ProviderSettings, SummaryRecord
from .processing.speech import SpeechSynthesisBackend
from .processing.summarizer import TwoPassSummarizer
from .progress import ProgressSink, emit_status
from .storage.base import MetadataStore, StorageBackend, blob_path
from .transcripts.transcriber import ChunkedTranscriber
from .utils.cancellation import CancellationToken, check_cancelled
from .utils.helpers import count_words, derive_cache_key, is_url
from .utils.logging import get_logger, new_correlation_id

logger = get_logger(__name__)

# step names reported for failures outside the progress stages
KEY_DERIVATION = "key-derivation"
SUMMARY_CACHE_LOOKUP = "summary-cache-lookup"
QUEUED = "queued"
PROCESSING = "processing"


@dataclass
class StageOutcome:
    """Result of one pipeline step: a value, or the exception that ended it"""
    step: str
    value: Any = None
    error: Optional[BaseException] = None
    elapsed: float = 0.0

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class RunContext:
    """State carried from one stage to the next during a single run"""
    source: str
    cache_key: str
    correlation_id: str
    scratch_dir: Path
    started: float
    progress: Optional[ProgressSink] = None
    cancel_token: Optional[CancellationToken] = None
    settings: Optional[ProviderSettings] = None
    was_cached: bool = False
    episode_path: Optional[Path] = None
    transcript: Optional[str] = None
    transcript_location: Optional[str] = None
    transcript_word_count: Optional[int] = None
    summary: Optional[str] = None
    summary_text_location: Optional[str] = None
    summary_word_count: Optional[int] = None
    summary_audio_path: Optional[Path] = None

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    async def emit(self, stage: ProcessingStage, message: str, **kwargs):
        kwargs.setdefault("episode_id", self.cache_key)
        await emit_status(self.progress, ProcessingStatus.create(stage, message, **kwargs))


class AudioPipeline:
    """
    Turn a source URL (or cache key) into summary narration.

    Stages run strictly in order and each one persists its output before the
    next begins. A stored Summary Record short-circuits the whole run; a
    stored Episode Record skips the download. Any failure produces exactly
    one ``error`` status and is then re-raised to the caller.
    """

    def __init__(
        self,
        storage: StorageBackend,
        metadata: MetadataStore,
        downloader: EpisodeDownloader,
        transcriber: ChunkedTranscriber,
        summarizer: TwoPassSummarizer,
        synthesizer: SpeechSynthesisBackend,
        temp_dir: Optional[Path] = None,
        episodes_container: str = config.EPISODES_CONTAINER,
        transcripts_container: str = config.TRANSCRIPTS_CONTAINER,
        summaries_container: str = config.SUMMARIES_CONTAINER,
    ):
        self.storage = storage
        self.metadata = metadata
        self.downloader = downloader
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.synthesizer = synthesizer
        self.temp_dir = Path(temp_dir or config.TEMP_DIR)
        self.episodes_container = episodes_container
        self.transcripts_container = transcripts_container
        self.summaries_container = summaries_container
        self._key_locks: Dict[str, asyncio.Lock] = {}
        self._key_users: Dict[str, int] = {}

    # ----- naming -----

    @staticmethod
    def episode_blob(cache_key: str) -> str:
        return f"{cache_key}.mp3"

    @staticmethod
    def transcript_blob(cache_key: str) -> str:
        return f"{cache_key}_transcript.txt"

    @staticmethod
    def summary_text_blob(cache_key: str) -> str:
        return f"{cache_key}_summary.txt"

    @staticmethod
    def summary_audio_blob(cache_key: str) -> str:
        return f"{cache_key}_summary.mp3"

    def summary_audio_path(self, cache_key: str) -> Path:
        """Local path the summary narration is delivered to"""
        return self.temp_dir / f"audio_{cache_key}_summary.mp3"

    # ----- cache inspection -----

    async def is_episode_cached(self, source_identifier: str) -> bool:
        return await self.metadata.episode_exists(derive_cache_key(source_identifier))

    async def is_summary_cached(self, source_identifier: str) -> bool:
        return await self.metadata.summary_exists(derive_cache_key(source_identifier))

    # ----- run -----

    async def run(
        self,
        source_identifier: str,
        progress: Optional[ProgressSink] = None,
        cancel_token: Optional[CancellationToken] = None,
        settings: Optional[ProviderSettings] = None,
    ) -> Path:
        """
        Process ``source_identifier`` and return the local summary audio path.

        Args:
            source_identifier: the episode URL, or a cache key from an earlier run
            progress: optional sink receiving ProcessingStatus updates in order
            cancel_token: checked before every stage and every chunk
            settings: per-request capability overrides

        Raises:
            InvalidArgumentError, NotFoundError, DownloadError, SegmentationError,
            TranscriptionError, SummarizationError, SynthesisError, StorageError,
            ProcessingCancelled - always after an ``error`` status was emitted
        """
        correlation_id = new_correlation_id()
        started = time.monotonic()

        outcome = await self._run_stage(KEY_DERIVATION, lambda: self._derive_key(source_identifier))
        if outcome.failed:
            await self._report_failure(outcome, None, progress, correlation_id)
            raise outcome.error
        cache_key = outcome.value

        logger.info(f"[{correlation_id}] Starting processing pipeline for episode: {cache_key}")
        step = QUEUED
        try:
            async with self._exclusive(cache_key):
                step = PROCESSING
                async with self._run_scratch(cache_key, correlation_id) as scratch_dir:
                    ctx = RunContext(
                        source=source_identifier,
                        cache_key=cache_key,
                        correlation_id=correlation_id,
                        scratch_dir=scratch_dir,
                        started=started,
                        progress=progress,
                        cancel_token=cancel_token,
                        settings=settings,
                    )
                    return await self._process(ctx)
        except asyncio.CancelledError:
            await self._report_failure(
                StageOutcome(step, error=ProcessingCancelled()),
                cache_key, progress, correlation_id
            )
            raise

    async def _derive_key(self, source_identifier: str) -> str:
        return derive_cache_key(source_identifier)

    async def _process(self, ctx: RunContext) -> Path:
        outcome = await self._run_stage(SUMMARY_CACHE_LOOKUP, lambda: self._serve_cached_summary(ctx), ctx)
        if outcome.failed:
            await self._report_failure(outcome, ctx.cache_key, ctx.progress, ctx.correlation_id)
            raise outcome.error
        if outcome.value is not None:
            return outcome.value

        stages = (
            (ProcessingStage.DOWNLOADING, self._download_stage),
            (ProcessingStage.TRANSCRIBING, self._transcribe_stage),
            (ProcessingStage.SUMMARIZING, self._summarize_stage),
            (ProcessingStage.GENERATING_SPEECH, self._synthesize_stage),
        )
        for stage, operation in stages:
            outcome = await self._run_stage(stage.value, lambda: operation(ctx), ctx)
            if outcome.failed:
                await self._report_failure(outcome, ctx.cache_key, ctx.progress, ctx.correlation_id)
                raise outcome.error
            logger.info(f"[{ctx.correlation_id}] Stage {stage.value} finished in {outcome.elapsed:.1f}s")

        logger.info(
            f"[{ctx.correlation_id}] Processing pipeline completed in {ctx.elapsed:.1f}s. "
            f"Summary audio at: {ctx.summary_audio_path}"
        )
        return ctx.summary_audio_path

    async def _run_stage(
        self,
        step: str,
        operation: Callable[[], Awaitable[Any]],
        ctx: Optional[RunContext] = None,
    ) -> StageOutcome:
        started = time.monotonic()
        try:
            if ctx is not None:
                check_cancelled(ctx.cancel_token)
            value = await operation()
        except Exception as e:
            return StageOutcome(step, error=e, elapsed=time.monotonic() - started)
        return StageOutcome(step, value=value, elapsed=time.monotonic() - started)

    async def _report_failure(self, outcome: StageOutcome, cache_key, progress, correlation_id):
        error = outcome.error
        if isinstance(error, ProcessingCancelled):
            logger.info(f"[{correlation_id}] Processing was cancelled during {outcome.step}")
            status = ProcessingStatus.error("Processing was cancelled", str(error), episode_id=cache_key)
        else:
            logger.error(
                f"[{correlation_id}] Error in processing pipeline during {outcome.step} "
                f"for episode {cache_key}: {error}",
                exc_info=error
            )
            status = ProcessingStatus.error("Processing failed", str(error), episode_id=cache_key)

        try:
            await emit_status(progress, status)
        except Exception as e:
            logger.warning(f"[{correlation_id}] Could not deliver error status: {e}")

    # ----- stages -----

    async def _serve_cached_summary(self, ctx: RunContext) -> Optional[Path]:
        record = await self.metadata.get_summary(ctx.cache_key)
        if record is None:
            return None

        logger.info(f"[{ctx.correlation_id}] Summary found in cache: {ctx.cache_key}")
        target = self.summary_audio_path(ctx.cache_key)
        await self.storage.download_to_file(
            self.summaries_container, self.summary_audio_blob(ctx.cache_key), target
        )
        await ctx.emit(
            ProcessingStage.COMPLETE,
            "Summary retrieved from cache",
            summary_audio_path=str(target),
            transcript_word_count=record.transcript_word_count,
            summary_word_count=record.summary_word_count,
            processing_duration=ctx.elapsed,
        )
        return target

    async def _download_stage(self, ctx: RunContext):
        ctx.was_cached = await self.metadata.episode_exists(ctx.cache_key)
        await ctx.emit(
            ProcessingStage.DOWNLOADING,
            "Retrieving episode from cache..." if ctx.was_cached else "Downloading episode...",
            was_cached=ctx.was_cached,
        )

        episode_path = ctx.scratch_dir / f"audio_{ctx.cache_key}.mp3"
        if ctx.was_cached:
            logger.info(f"[{ctx.correlation_id}] Episode found in cache: {ctx.cache_key}")
            await self.storage.download_to_file(
                self.episodes_container, self.episode_blob(ctx.cache_key), episode_path
            )
        else:
            if not is_url(ctx.source):
                raise NotFoundError(f"Episode not found: {ctx.cache_key}", cache_key=ctx.cache_key)

            logger.info(f"[{ctx.correlation_id}] Episode not in cache, downloading from URL...")
            await self.downloader.download(ctx.source, episode_path, ctx.cancel_token, ctx.correlation_id)
            check_cancelled(ctx.cancel_token)

            blob_name = self.episode_blob(ctx.cache_key)
            await self.storage.upload_file(self.episodes_container, blob_name, episode_path)
            await self.metadata.save_episode(EpisodeRecord(
                cache_key=ctx.cache_key,
                source_url=ctx.source,
                storage_path=blob_path(self.episodes_container, blob_name),
                file_size=episode_path.stat().st_size,
            ))
            logger.info(f"[{ctx.correlation_id}] Successfully downloaded and cached episode: {ctx.cache_key}")

        ctx.episode_path = episode_path
        await ctx.emit(
            ProcessingStage.DOWNLOADED,
            "Episode retrieved from cache" if ctx.was_cached else "Episode downloaded",
            was_cached=ctx.was_cached,
        )

    async def _transcribe_stage(self, ctx: RunContext):
        logger.info(f"[{ctx.correlation_id}] Step 1/3: Transcribing audio to text...")
        await ctx.emit(ProcessingStage.TRANSCRIBING, "Transcribing audio to text...")

        transcript = await self.transcriber.transcribe(ctx.episode_path, ctx.settings, ctx.cancel_token)
        check_cancelled(ctx.cancel_token)

        blob_name = self.transcript_blob(ctx.cache_key)
        await self.storage.upload_text(self.transcripts_container, blob_name, transcript)

        ctx.transcript = transcript
        ctx.transcript_location = blob_path(self.transcripts_container, blob_name)
        ctx.transcript_word_count = count_words(transcript)
        await ctx.emit(
            ProcessingStage.TRANSCRIBED,
            f"Transcription complete ({ctx.transcript_word_count:,} words)",
            transcript_word_count=ctx.transcript_word_count,
        )

    async def _summarize_stage(self, ctx: RunContext):
        logger.info(f"[{ctx.correlation_id}] Step 2/3: Summarizing transcript...")
        await ctx.emit(
            ProcessingStage.SUMMARIZING,
            "Summarizing transcript...",
            transcript_word_count=ctx.transcript_word_count,
        )

        summary = await self.summarizer.summarize(ctx.transcript, ctx.settings, ctx.cancel_token)
        check_cancelled(ctx.cancel_token)

        blob_name = self.summary_text_blob(ctx.cache_key)
        await self.storage.upload_text(self.transcripts_container, blob_name, summary)

        ctx.summary = summary
        ctx.summary_text_location = blob_path(self.transcripts_container, blob_name)
        ctx.summary_word_count = count_words(summary)
        await ctx.emit(
            ProcessingStage.SUMMARIZED,
            f"Summary complete ({ctx.summary_word_count:,} words)",
            transcript_word_count=ctx.transcript_word_count,
            summary_word_count=ctx.summary_word_count,
            summary_text=summary,
        )

    async def _synthesize_stage(self, ctx: RunContext):
        logger.info(f"[{ctx.correlation_id}] Step 3/3: Generating speech from summary...")
        await ctx.emit(
            ProcessingStage.GENERATING_SPEECH,
            "Generating speech from summary...",
            transcript_word_count=ctx.transcript_word_count,
            summary_word_count=ctx.summary_word_count,
            summary_text=ctx.summary,
        )

        audio_path = self.summary_audio_path(ctx.cache_key)
        await self.synthesizer.synthesize(ctx.summary, audio_path, ctx.settings, ctx.cancel_token)
        check_cancelled(ctx.cancel_token)

        blob_name = self.summary_audio_blob(ctx.cache_key)
        await self.storage.upload_file(self.summaries_container, blob_name, audio_path)
        await self.metadata.save_summary(SummaryRecord(
            cache_key=ctx.cache_key,
            transcript_path=ctx.transcript_location,
            summary_text_path=ctx.summary_text_location,
            summary_audio_path=blob_path(self.summaries_container, blob_name),
            transcript_word_count=ctx.transcript_word_count,
            summary_word_count=ctx.summary_word_count,
        ))

        ctx.summary_audio_path = audio_path
        await ctx.emit(
            ProcessingStage.COMPLETE,
            "Processing complete!",
            transcript_word_count=ctx.transcript_word_count,
            summary_word_count=ctx.summary_word_count,
            summary_text=ctx.summary,
            summary_audio_path=str(audio_path),
            processing_duration=ctx.elapsed,
        )

    # ----- resources -----

    @asynccontextmanager
    async def _exclusive(self, cache_key: str):
        """Serialize runs for the same cache key within this process"""
        lock = self._key_locks.setdefault(cache_key, asyncio.Lock())
        self._key_users[cache_key] = self._key_users.get(cache_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._key_users[cache_key] -= 1
            if self._key_users[cache_key] == 0:
                del self._key_users[cache_key]
                del self._key_locks[cache_key]

    @asynccontextmanager
    async def _run_scratch(self, cache_key: str, correlation_id: str):
        """Per-run working directory for the episode copy"""
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        scratch_dir = Path(tempfile.mkdtemp(prefix=f"run_{cache_key[:12]}_", dir=self.temp_dir))
        try:
            yield scratch_dir
        finally:
            try:
                await asyncio.to_thread(shutil.rmtree, scratch_dir)
            except OSError as e:
                logger.warning(f"[{correlation_id}] Failed to clean up run directory {scratch_dir}: {e}")

    async def close(self):
        """Release network resources"""
        await self.downloader.close()
