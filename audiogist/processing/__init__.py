"""Summarization and speech synthesis package"""

from .summarizer import OpenAISummarizationBackend, SummarizationBackend, TwoPassSummarizer
from .speech import OpenAISpeechBackend, SpeechSynthesisBackend

__all__ = [
    "OpenAISummarizationBackend",
    "SummarizationBackend",
    "TwoPassSummarizer",
    "OpenAISpeechBackend",
    "SpeechSynthesisBackend",
]
