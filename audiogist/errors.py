"""Exception hierarchy for audiogist"""

from typing import Optional


class AudioGistError(Exception):
    """Base class for every failure raised by the pipeline and its collaborators"""

    def __init__(self, message: str, cache_key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.cache_key = cache_key


class InvalidArgumentError(AudioGistError, ValueError):
    """Bad or missing source identifier"""


class NotFoundError(AudioGistError, LookupError):
    """Requested cache key has no episode/summary artifact"""


class SegmentationError(AudioGistError):
    """Audio could not be split into chunks"""


class ProbeError(SegmentationError):
    """Duration probing failed"""


class ClipError(SegmentationError):
    """Segment extraction failed"""


class DownloadError(AudioGistError):
    """Source audio could not be fetched"""


class TranscriptionError(AudioGistError):
    """Transcription backend failure"""


class SummarizationError(AudioGistError):
    """Summarization backend failure"""


class SynthesisError(AudioGistError):
    """Speech synthesis backend failure"""


class StorageError(AudioGistError):
    """Storage or metadata collaborator I/O failure"""


class ProcessingCancelled(AudioGistError):
    """The run was cancelled before it finished"""

    def __init__(self, message: str = "Processing was cancelled", cache_key: Optional[str] = None):
        super().__init__(message, cache_key)
