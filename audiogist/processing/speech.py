"""Text-to-speech for finished summaries"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import openai

from .. import config
from ..errors import SynthesisError
from ..models import ProviderSettings
from ..utils.cancellation import CancellationToken, check_cancelled
from ..utils.clients import OpenAIClient, resolve_model, resolve_openai_client
from ..utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_FORMATS = ("mp3", "opus", "aac", "flac", "wav", "pcm")


class SpeechSynthesisBackend(ABC):
    """Speech synthesis capability"""

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        output_file: Path,
        settings: Optional[ProviderSettings] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Path:
        """Render ``text`` as audio into ``output_file`` and return its path"""
        pass


class OpenAISpeechBackend(SpeechSynthesisBackend):
    """Generate speech with the OpenAI / Azure OpenAI TTS endpoint"""

    def __init__(
        self,
        model: str = config.SPEECH_MODEL,
        voice: str = config.SPEECH_VOICE,
        speed: float = config.SPEECH_SPEED,
        response_format: str = config.SPEECH_FORMAT,
        client_resolver: Callable[[Optional[ProviderSettings]], OpenAIClient] = resolve_openai_client,
    ):
        self.model = model
        self.voice = voice
        self.speed = speed
        self.response_format = response_format
        self.client_resolver = client_resolver

    def resolve_options(self, settings: Optional[ProviderSettings]) -> dict:
        """Speed and format, preferring per-request overrides"""
        speed = self.speed
        response_format = self.response_format
        if settings is not None:
            if settings.speech_speed is not None:
                speed = settings.speech_speed
            if settings.speech_format:
                response_format = settings.speech_format
        response_format = response_format.lower()
        if response_format not in SUPPORTED_FORMATS:
            response_format = "mp3"
        return {'speed': speed, 'response_format': response_format}

    async def synthesize(self, text, output_file, settings=None, cancel_token=None) -> Path:
        check_cancelled(cancel_token)
        client = self.client_resolver(settings)
        model = resolve_model(settings.speech_deployment if settings else None, self.model)
        options = self.resolve_options(settings)
        logger.info(
            f"Starting text-to-speech generation. Text length: {len(text)} characters "
            f"(speed: {options['speed']}, format: {options['response_format']})"
        )

        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with client.audio.speech.with_streaming_response.create(
                model=model,
                voice=self.voice,
                input=text,
                **options
            ) as response:
                await response.stream_to_file(output_file)
        except openai.OpenAIError as e:
            raise SynthesisError(f"Speech generation failed: {e}") from e

        logger.info(f"Text-to-speech generation completed. File saved to: {output_file}")
        return output_file
