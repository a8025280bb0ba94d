"""Data models for audiogist"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProcessingStage(Enum):
    """Stages of the processing pipeline, in the order they run"""
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    TRANSCRIBING = "transcribing"
    TRANSCRIBED = "transcribed"
    SUMMARIZING = "summarizing"
    SUMMARIZED = "summarized"
    GENERATING_SPEECH = "generating-speech"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def progress(self) -> int:
        """Progress percentage reported when this stage is entered"""
        return STAGE_PROGRESS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProcessingStage":
        """Parse a stage tag; anything unrecognised maps to ERROR"""
        if not value:
            return cls.ERROR
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.ERROR


STAGE_PROGRESS = {
    ProcessingStage.DOWNLOADING: 10,
    ProcessingStage.DOWNLOADED: 20,
    ProcessingStage.TRANSCRIBING: 25,
    ProcessingStage.TRANSCRIBED: 40,
    ProcessingStage.SUMMARIZING: 50,
    ProcessingStage.SUMMARIZED: 70,
    ProcessingStage.GENERATING_SPEECH: 80,
    ProcessingStage.COMPLETE: 100,
    ProcessingStage.ERROR: 0,
}


@dataclass
class ProcessingStatus:
    """A single progress notification emitted by the pipeline"""
    stage: ProcessingStage
    message: str = ""
    progress: int = 0
    episode_id: Optional[str] = None
    was_cached: Optional[bool] = None
    transcript_word_count: Optional[int] = None
    summary_word_count: Optional[int] = None
    summary_text: Optional[str] = None
    summary_audio_path: Optional[str] = None
    processing_duration: Optional[float] = None
    is_complete: bool = False
    is_error: bool = False
    error_message: Optional[str] = None

    @classmethod
    def create(cls, stage: ProcessingStage, message: str, **kwargs) -> "ProcessingStatus":
        """Create a status for ``stage`` with its standard progress value"""
        kwargs.setdefault("progress", stage.progress)
        if stage is ProcessingStage.COMPLETE:
            kwargs.setdefault("is_complete", True)
        return cls(stage=stage, message=message, **kwargs)

    @classmethod
    def error(cls, message: str, error_message: Optional[str] = None,
              episode_id: Optional[str] = None) -> "ProcessingStatus":
        """Create the terminal error status"""
        return cls(
            stage=ProcessingStage.ERROR,
            message=message,
            progress=ProcessingStage.ERROR.progress,
            episode_id=episode_id,
            is_error=True,
            error_message=error_message or message,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape streamed to interactive callers"""
        data = {
            'stage': self.stage.value,
            'message': self.message,
            'progress': self.progress,
            'isComplete': self.is_complete,
            'isError': self.is_error,
        }
        optional = {
            'errorMessage': self.error_message,
            'episodeId': self.episode_id,
            'wasCached': self.was_cached,
            'transcriptWordCount': self.transcript_word_count,
            'summaryWordCount': self.summary_word_count,
            'summaryText': self.summary_text,
            'summaryAudioPath': self.summary_audio_path,
            'processingDuration': self.processing_duration,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data


@dataclass(frozen=True)
class EpisodeRecord:
    """Metadata for a downloaded source episode"""
    cache_key: str
    source_url: str
    storage_path: str
    file_size: int
    downloaded_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'cache_key': self.cache_key,
            'source_url': self.source_url,
            'storage_path': self.storage_path,
            'file_size': self.file_size,
            'downloaded_at': self.downloaded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EpisodeRecord':
        """Create from dictionary"""
        data = dict(data)
        if isinstance(data.get('downloaded_at'), str):
            data['downloaded_at'] = datetime.fromisoformat(data['downloaded_at'])
        return cls(**data)


@dataclass(frozen=True)
class SummaryRecord:
    """Metadata linking every artifact produced by a successful run"""
    cache_key: str
    transcript_path: str
    summary_text_path: str
    summary_audio_path: str
    transcript_word_count: int
    summary_word_count: int
    processed_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['processed_at'] = self.processed_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'SummaryRecord':
        """Create from dictionary"""
        data = dict(data)
        if isinstance(data.get('processed_at'), str):
            data['processed_at'] = datetime.fromisoformat(data['processed_at'])
        return cls(**data)


@dataclass(frozen=True)
class AudioSegment:
    """One time-bounded slice of a larger audio file"""
    index: int
    start: float
    duration: float
    path: Path

    @property
    def end(self) -> float:
        return self.start + self.duration


@dataclass(frozen=True)
class ProviderSettings:
    """Per-request overrides for the cloud capabilities.

    Every field is optional; unset fields fall back to the values in
    :mod:`audiogist.config`.
    """
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    transcription_deployment: Optional[str] = None
    summary_deployment: Optional[str] = None
    speech_deployment: Optional[str] = None
    speech_speed: Optional[float] = None
    speech_format: Optional[str] = None

    def has_any_override(self) -> bool:
        """True when at least one field overrides the configured default"""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, str):
                if value.strip():
                    return True
            elif value is not None:
                return True
        return False

    def has_client_override(self) -> bool:
        """True when the endpoint or key differs from the shared client"""
        return bool((self.endpoint or "").strip() or (self.api_key or "").strip())


@dataclass
class ProcessResult:
    """Summary of a finished (or previously finished) run"""
    episode_id: str
    success: bool = True
    message: str = ""
    was_cached: bool = False
    summary_was_cached: bool = False
    summary_audio_path: Optional[str] = None
    summary_text: Optional[str] = None
    transcript_word_count: Optional[int] = None
    summary_word_count: Optional[int] = None
    processing_duration: Optional[float] = None
