"""Condense transcripts into a fixed-length spoken summary"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional

import openai

from .. import config
from ..errors import AudioGistError, SummarizationError
from ..models import ProviderSettings
from ..utils.cancellation import CancellationToken, check_cancelled
from ..utils.clients import OpenAIClient, resolve_model, resolve_openai_client
from ..utils.helpers import count_words
from ..utils.logging import get_logger

logger = get_logger(__name__)


DEFAULT_SUMMARY_SYSTEM_PROMPT = """You are an expert audio summarizer specializing in creating concise, engaging audio summaries. Your summaries are designed to be read aloud and should sound natural when spoken.

Your task is to distill audio content into exactly {minutes} minutes worth of spoken content (approximately {target_words} words at {wpm} words per minute).

Guidelines:
1. CRITICAL: Stay within {target_words} words maximum. This is non-negotiable.
2. Capture ALL salient points, key insights, main arguments, and important takeaways
3. Maintain logical flow and narrative coherence
4. Use clear, conversational language appropriate for audio narration
5. Focus on substantive content; eliminate pleasantries, filler words, and tangential discussions
6. If the content is very long, prioritize the most impactful and actionable information
7. Structure your summary with a brief introduction, main content organized by themes, and a concise conclusion
8. Use transitions that work well in spoken form (e.g., 'Moving on to...', 'Another key point is...')

Your summary should be ready to be converted directly to speech without any further editing."""

SUMMARY_USER_PROMPT = """Please summarize the following audio transcript into exactly {minutes} minutes of spoken content (approximately {target_words} words). Ensure all important points are captured while staying within the word limit.

Transcript:
{text}

Provide your summary below:"""

DEFAULT_COMPRESSION_SYSTEM_PROMPT = """You are an expert editor specializing in compressing content while preserving meaning. Reduce the following text to {target_words} words maximum while keeping all critical information."""

COMPRESSION_USER_PROMPT = """The following summary is slightly too long for a {minutes}-minute audio narration. Please compress it to {target_words} words or fewer while preserving ALL key points and maintaining natural flow for speech.

Current summary:
{text}

Provide the compressed version:"""


class SummarizationBackend(ABC):
    """Text summarization capability"""

    @abstractmethod
    async def summarize(
        self,
        text: str,
        target_words: int,
        compress: bool = False,
        settings: Optional[ProviderSettings] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Summarize ``text`` to about ``target_words`` words.

        With ``compress=True`` the text is already a summary and only needs
        shortening without dropping key points.
        """
        pass


class OpenAISummarizationBackend(SummarizationBackend):
    """Summarize with an OpenAI / Azure OpenAI chat model using configurable prompts"""

    def __init__(
        self,
        model: str = config.SUMMARY_MODEL,
        temperature: float = config.SUMMARY_TEMPERATURE,
        prompts_dir: Path = config.PROMPTS_DIR,
        client_resolver: Callable[[Optional[ProviderSettings]], OpenAIClient] = resolve_openai_client,
    ):
        self.model = model
        self.temperature = temperature
        self.prompts_dir = Path(prompts_dir)
        self.client_resolver = client_resolver
        self.summary_system_prompt = self._load_prompt("summary_system_prompt.txt", DEFAULT_SUMMARY_SYSTEM_PROMPT)
        self.compression_system_prompt = self._load_prompt(
            "compression_system_prompt.txt", DEFAULT_COMPRESSION_SYSTEM_PROMPT
        )
        logger.info(f"📝 Summarizer initialized with model: {self.model}")

    def _load_prompt(self, filename: str, default: str) -> str:
        """Load prompt from file with fallback to the built-in default"""
        prompt_path = self.prompts_dir / filename
        if not prompt_path.exists():
            return default
        try:
            content = prompt_path.read_text(encoding='utf-8').strip()
        except OSError as e:
            logger.error(f"Error loading prompt {filename}: {e}")
            return default
        logger.debug(f"Loaded prompt from {filename}")
        return content or default

    def build_messages(self, text: str, target_words: int, compress: bool = False) -> List[dict]:
        """Chat messages for a summary or compression request"""
        values = {
            'text': text,
            'target_words': target_words,
            'minutes': max(1, round(target_words / config.WORDS_PER_MINUTE)),
            'wpm': config.WORDS_PER_MINUTE,
        }
        if compress:
            system_prompt, user_prompt = self.compression_system_prompt, COMPRESSION_USER_PROMPT
        else:
            system_prompt, user_prompt = self.summary_system_prompt, SUMMARY_USER_PROMPT
        return [
            {"role": "system", "content": system_prompt.format(**values)},
            {"role": "user", "content": user_prompt.format(**values)},
        ]

    async def summarize(self, text, target_words, compress=False, settings=None, cancel_token=None) -> str:
        check_cancelled(cancel_token)
        client = self.client_resolver(settings)
        model = resolve_model(settings.summary_deployment if settings else None, self.model)

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=self.build_messages(text, target_words, compress),
                temperature=self.temperature
            )
        except openai.OpenAIError as e:
            raise SummarizationError(f"Summary request failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise SummarizationError("Empty response from summarization model")
        return response.choices[0].message.content


class TwoPassSummarizer:
    """
    Summarize to ``target_words``; if the result runs over ``max_words``,
    ask for exactly one compression pass and accept whatever comes back.
    """

    def __init__(
        self,
        backend: SummarizationBackend,
        target_words: int = config.SUMMARY_TARGET_WORDS,
        max_words: int = config.SUMMARY_MAX_WORDS,
    ):
        self.backend = backend
        self.target_words = target_words
        self.max_words = max_words

    async def summarize(
        self,
        transcript: str,
        settings: Optional[ProviderSettings] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        if not transcript or not transcript.strip():
            raise SummarizationError("Transcript is empty")

        logger.info(f"Starting summarization. Transcript length: {len(transcript)} characters")
        summary = await self._call(transcript, False, settings, cancel_token)

        word_count = count_words(summary)
        logger.info(f"Summarization completed. Summary length: {len(summary)} characters, ~{word_count} words")

        if word_count > self.max_words:
            logger.warning(
                f"Summary exceeded target length ({word_count} words). Performing second pass compression."
            )
            check_cancelled(cancel_token)
            summary = await self._call(summary, True, settings, cancel_token)
            logger.info(f"Compression completed. New length: ~{count_words(summary)} words")

        return summary

    async def _call(self, text, compress, settings, cancel_token) -> str:
        try:
            return await self.backend.summarize(
                text, self.target_words, compress=compress, settings=settings, cancel_token=cancel_token
            )
        except AudioGistError:
            raise
        except Exception as e:
            raise SummarizationError(f"Summarization failed: {e}") from e
