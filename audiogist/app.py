"""Component wiring for audiogist"""

from pathlib import Path
from typing import Optional

from . import config
from .download_manager import EpisodeDownloader
from .pipeline import AudioPipeline
from .processing.mock_services import MockSpeechBackend, MockSummarizationBackend, MockTranscriptionBackend
from .processing.speech import OpenAISpeechBackend
from .processing.summarizer import OpenAISummarizationBackend, TwoPassSummarizer
from .queries import EpisodeQueryService
from .storage.local import LocalFileStorage
from .storage.metadata import JsonMetadataStore
from .transcripts.audio_segmenter import AudioSegmenter
from .transcripts.transcriber import ChunkedTranscriber, OpenAITranscriptionBackend
from .utils.logging import get_logger

logger = get_logger(__name__)


def create_pipeline(
    storage_dir: Optional[Path] = None,
    temp_dir: Optional[Path] = None,
    use_mock: Optional[bool] = None,
) -> AudioPipeline:
    """Build an AudioPipeline from configuration"""
    storage_dir = Path(storage_dir or config.STORAGE_DIR)
    temp_dir = Path(temp_dir or config.TEMP_DIR)
    if use_mock is None:
        use_mock = config.USE_MOCK_SERVICES

    if use_mock:
        logger.info("🧪 Using mock AI services (USE_MOCK_SERVICES=true)")
        transcription_backend = MockTranscriptionBackend()
        summarization_backend = MockSummarizationBackend()
        speech_backend = MockSpeechBackend()
    else:
        transcription_backend = OpenAITranscriptionBackend()
        summarization_backend = OpenAISummarizationBackend()
        speech_backend = OpenAISpeechBackend()

    return AudioPipeline(
        storage=LocalFileStorage(storage_dir),
        metadata=JsonMetadataStore(storage_dir),
        downloader=EpisodeDownloader(),
        transcriber=ChunkedTranscriber(
            transcription_backend,
            segmenter=AudioSegmenter(),
            temp_dir=temp_dir,
        ),
        summarizer=TwoPassSummarizer(summarization_backend),
        synthesizer=speech_backend,
        temp_dir=temp_dir,
    )


def create_query_service(pipeline: AudioPipeline) -> EpisodeQueryService:
    """Query service reading the same storage as ``pipeline``"""
    return EpisodeQueryService(
        pipeline.storage,
        pipeline.metadata,
        temp_dir=pipeline.temp_dir,
        episodes_container=pipeline.episodes_container,
        transcripts_container=pipeline.transcripts_container,
        summaries_container=pipeline.summaries_container,
    )
