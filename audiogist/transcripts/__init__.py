"""Audio segmentation and transcription package"""

from .audio_segmenter import AudioSegmenter
from .transcriber import ChunkedTranscriber, OpenAITranscriptionBackend, TranscriptionBackend

__all__ = ["AudioSegmenter", "ChunkedTranscriber", "OpenAITranscriptionBackend", "TranscriptionBackend"]
