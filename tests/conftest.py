"""Shared test configuration and fixtures for audiogist tests"""

import asyncio
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from faker import Faker

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from audiogist.pipeline import AudioPipeline
from audiogist.processing.speech import SpeechSynthesisBackend
from audiogist.processing.summarizer import SummarizationBackend, TwoPassSummarizer
from audiogist.storage.local import LocalFileStorage
from audiogist.storage.metadata import JsonMetadataStore
from audiogist.transcripts.transcriber import ChunkedTranscriber, TranscriptionBackend
from audiogist.utils.cancellation import check_cancelled

# Initialize faker for test data generation
fake = Faker()


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no I/O beyond tmp dirs")
    config.addinivalue_line("markers", "integration: tests touching the filesystem or mocked HTTP")
    config.addinivalue_line("markers", "e2e: full pipeline runs with stub capabilities")


# ===== Configuration Fixtures =====

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ===== Stub Capabilities =====

class StubTranscriptionBackend(TranscriptionBackend):
    """Returns a transcript per file name, tracking call order and concurrency"""

    def __init__(self, text: str = "hello world", delays: Optional[Dict[str, float]] = None,
                 fail_on: Optional[str] = None):
        self.text = text
        self.delays = delays or {}
        self.fail_on = fail_on
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def transcribe(self, audio_file, settings=None, cancel_token=None) -> str:
        check_cancelled(cancel_token)
        name = Path(audio_file).name
        self.calls.append(name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(name, 0.01))
            if self.fail_on and self.fail_on == name:
                raise RuntimeError(f"backend rejected {name}")
            if self.delays:
                return f"text-{Path(audio_file).stem}"
            return self.text
        finally:
            self.in_flight -= 1


class StubSummarizationBackend(SummarizationBackend):
    """Pops scripted responses; repeats the last one when exhausted"""

    def __init__(self, responses: Optional[List[str]] = None):
        self.responses = list(responses or ["short summary"])
        self.calls: List[dict] = []

    async def summarize(self, text, target_words, compress=False, settings=None, cancel_token=None) -> str:
        check_cancelled(cancel_token)
        self.calls.append({'text': text, 'target_words': target_words, 'compress': compress})
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


class StubSpeechBackend(SpeechSynthesisBackend):
    """Writes fixed bytes as the narration"""

    def __init__(self, payload: bytes = b"ID3 fake narration", error: Optional[Exception] = None):
        self.payload = payload
        self.error = error
        self.calls: List[str] = []

    async def synthesize(self, text, output_file, settings=None, cancel_token=None) -> Path:
        check_cancelled(cancel_token)
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_bytes(self.payload)
        return output_file


class StubDownloader:
    """Stands in for EpisodeDownloader without touching the network"""

    def __init__(self, payload: bytes = b"ID3 fake episode audio"):
        self.payload = payload
        self.calls: List[str] = []
        self.closed = False

    async def download(self, url, output_file, cancel_token=None, correlation_id="-") -> Path:
        check_cancelled(cancel_token)
        self.calls.append(url)
        await asyncio.sleep(0.01)
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_bytes(self.payload)
        return output_file

    async def close(self):
        self.closed = True


class StatusRecorder:
    """Progress sink collecting every status"""

    def __init__(self):
        self.statuses = []

    def __call__(self, status):
        self.statuses.append(status)

    @property
    def stages(self):
        return [status.stage.value for status in self.statuses]


@pytest.fixture
def transcription_backend():
    return StubTranscriptionBackend()


@pytest.fixture
def summarization_backend():
    return StubSummarizationBackend(["short summary"])


@pytest.fixture
def speech_backend():
    return StubSpeechBackend()


@pytest.fixture
def downloader():
    return StubDownloader()


@pytest.fixture
def recorder():
    return StatusRecorder()


# ===== Storage Fixtures =====

@pytest.fixture
def storage(temp_dir):
    return LocalFileStorage(temp_dir / "storage")


@pytest.fixture
def metadata(temp_dir):
    return JsonMetadataStore(temp_dir / "storage")


@pytest.fixture
def pipeline(temp_dir, storage, metadata, downloader, transcription_backend,
             summarization_backend, speech_backend):
    """Pipeline over local storage with stub capabilities"""
    scratch = temp_dir / "scratch"
    return AudioPipeline(
        storage=storage,
        metadata=metadata,
        downloader=downloader,
        transcriber=ChunkedTranscriber(transcription_backend, temp_dir=scratch),
        summarizer=TwoPassSummarizer(summarization_backend),
        synthesizer=speech_backend,
        temp_dir=scratch,
    )


# ===== Mock Fixtures =====

@pytest.fixture
def mock_openai():
    """Mock OpenAI client"""
    mock = MagicMock()

    mock.audio.transcriptions.create = AsyncMock(return_value="This is a test transcript.")

    mock.chat.completions.create = AsyncMock(
        return_value=MagicMock(
            choices=[MagicMock(message=MagicMock(content="A test summary with key insights."))]
        )
    )

    return mock


# ===== Test Data Fixtures =====

@pytest.fixture
def episode_url():
    return f"https://{fake.domain_name()}/episodes/{fake.uuid4()}.mp3"


@pytest.fixture
def sample_transcript():
    """Sample transcript text"""
    return """
    Host: Welcome to the show. Today we're discussing artificial intelligence.

    Guest: Thanks for having me. AI is transforming every industry.

    Host: What about the risks?

    Guest: We need to consider bias, privacy, and job displacement.
    """


def words(count: int) -> str:
    """A text with exactly ``count`` whitespace-separated words"""
    return " ".join(fake.word() for _ in range(count))
