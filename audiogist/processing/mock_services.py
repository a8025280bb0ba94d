"""Canned capability backends for development without cloud credentials"""

import asyncio
import shutil
from pathlib import Path

from pydub import AudioSegment as PydubSegment

from .. import config
from ..errors import SynthesisError
from ..transcripts.transcriber import TranscriptionBackend
from ..utils.cancellation import check_cancelled
from ..utils.logging import get_logger
from .speech import SpeechSynthesisBackend
from .summarizer import SummarizationBackend

logger = get_logger(__name__)

MOCK_TRANSCRIPT = (
    "Welcome to this episode of Tech Insights. Today we're diving deep into the world of "
    "artificial intelligence and machine learning. Machine learning is a subset of artificial "
    "intelligence that focuses on building systems that learn from data instead of being "
    "explicitly programmed. There are three main types: supervised learning, unsupervised "
    "learning, and reinforcement learning. Deep learning has revolutionized the field, and "
    "with that power comes responsibility around bias, privacy and transparency."
)

MOCK_SUMMARY = (
    "In this episode of Tech Insights, the hosts explore artificial intelligence and machine "
    "learning. They explain that machine learning systems learn from data rather than explicit "
    "rules, and walk through supervised, unsupervised and reinforcement learning. Moving on, "
    "they describe how deep learning transformed image recognition and language processing. "
    "Finally, they stress responsible development: watching for bias, protecting privacy and "
    "keeping systems transparent."
)


class MockTranscriptionBackend(TranscriptionBackend):
    """Returns a fixed transcript after a simulated delay"""

    def __init__(self, delay: float = config.MOCK_DELAY_SECONDS):
        self.delay = delay

    async def transcribe(self, audio_file, settings=None, cancel_token=None) -> str:
        check_cancelled(cancel_token)
        logger.info(f"[MOCK] Transcribing {Path(audio_file).name}")
        await asyncio.sleep(self.delay)
        return MOCK_TRANSCRIPT


class MockSummarizationBackend(SummarizationBackend):
    """Returns a fixed summary after a simulated delay"""

    def __init__(self, delay: float = config.MOCK_DELAY_SECONDS):
        self.delay = delay

    async def summarize(self, text, target_words, compress=False, settings=None, cancel_token=None) -> str:
        check_cancelled(cancel_token)
        logger.info(f"[MOCK] Summarizing {len(text)} characters (compress={compress})")
        await asyncio.sleep(self.delay)
        return MOCK_SUMMARY


class MockSpeechBackend(SpeechSynthesisBackend):
    """Writes a few seconds of silence as the 'narration'"""

    def __init__(self, delay: float = config.MOCK_DELAY_SECONDS, seconds: float = 3.0):
        self.delay = delay
        self.seconds = seconds

    async def synthesize(self, text, output_file, settings=None, cancel_token=None) -> Path:
        check_cancelled(cancel_token)
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        # mp3 export needs ffmpeg; fall back to wav content without it
        audio_format = "mp3" if shutil.which("ffmpeg") else "wav"
        if audio_format == "wav" and output_file.suffix.lower() != ".wav":
            logger.warning(f"[MOCK] ffmpeg not found, {output_file.name} will contain WAV data, not MP3")
        logger.info(f"[MOCK] Generating {self.seconds:.0f}s of silent {audio_format} for {len(text)} characters")
        await asyncio.sleep(self.delay)

        silence = PydubSegment.silent(duration=int(self.seconds * 1000))

        def export():
            silence.export(str(output_file), format=audio_format).close()

        try:
            await asyncio.to_thread(export)
        except Exception as e:
            raise SynthesisError(f"Mock speech export failed: {e}") from e
        return output_file
