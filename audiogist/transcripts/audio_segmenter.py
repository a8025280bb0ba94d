"""Split oversized audio into overlapping, time-bounded chunks with ffmpeg"""

import asyncio
import math
import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from .. import config
from ..errors import ClipError, ProbeError
from ..models import AudioSegment
from ..utils.cancellation import CancellationToken, check_cancelled
from ..utils.logging import get_logger

logger = get_logger(__name__)


def calculate_chunk_duration(
    file_size: int,
    total_duration: float,
    size_limit: int = config.MAX_AUDIO_FILE_SIZE_BYTES,
    safety_factor: float = config.CHUNK_SAFETY_FACTOR,
    min_seconds: int = config.MIN_CHUNK_SECONDS,
    max_seconds: int = config.MAX_CHUNK_SECONDS,
) -> int:
    """
    Seconds of audio per chunk so that each chunk stays under ``size_limit``.

    Assumes a roughly constant bitrate; the safety factor absorbs encoding
    variance. The result is clamped to [min_seconds, max_seconds] so a
    tiny limit cannot fan out into hundreds of calls and a huge one cannot
    produce a chunk that sits right at the backend limit.
    """
    if file_size <= 0:
        raise ValueError("file_size must be positive")

    seconds = int(size_limit / file_size * total_duration * safety_factor)
    return max(min_seconds, min(seconds, max_seconds))


def plan_segments(
    total_duration: float,
    chunk_duration: float,
    overlap: float = config.CHUNK_OVERLAP_SECONDS,
) -> List[Tuple[int, float, float]]:
    """
    (index, start, length) for every chunk covering ``total_duration``.

    Every chunk after the first starts ``overlap`` seconds early so a word
    spoken across a cut lands in at least one of the two chunks.
    """
    if chunk_duration <= 0:
        raise ValueError("chunk_duration must be positive")

    count = math.ceil(total_duration / chunk_duration)
    plan = []
    for i in range(count):
        lead = overlap if i > 0 else 0
        start = max(0.0, i * chunk_duration - lead)
        plan.append((i, start, chunk_duration + lead))
    return plan


async def _run_command(cmd: List[str]) -> Tuple[int, bytes, bytes]:
    """Run an external tool without blocking the event loop"""
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        process.kill()
        await process.wait()
        raise
    return process.returncode, stdout, stderr


def _probe_with_pydub(audio_file: Path) -> float:
    from pydub import AudioSegment as PydubSegment
    return PydubSegment.from_file(str(audio_file)).duration_seconds


class AudioSegmenter:
    """Probe and cut audio files into chunks the transcription backend accepts"""

    def __init__(
        self,
        size_limit: int = config.MAX_AUDIO_FILE_SIZE_BYTES,
        overlap_seconds: float = config.CHUNK_OVERLAP_SECONDS,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
    ):
        self.size_limit = size_limit
        self.overlap_seconds = overlap_seconds
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe

    async def probe_duration(self, audio_file: Path) -> float:
        """Total duration in seconds, via ffprobe (pydub when ffprobe is missing)"""
        if not shutil.which(self.ffprobe):
            logger.warning("ffprobe not found, probing duration with pydub")
            try:
                duration = await asyncio.to_thread(_probe_with_pydub, audio_file)
            except Exception as e:
                raise ProbeError(f"Failed to read audio duration: {e}") from e
        else:
            cmd = [self.ffprobe, '-v', 'error', '-show_entries', 'format=duration',
                   '-of', 'default=noprint_wrappers=1:nokey=1', str(audio_file)]
            try:
                returncode, stdout, stderr = await _run_command(cmd)
            except OSError as e:
                raise ProbeError(f"Failed to start ffprobe: {e}") from e

            if returncode != 0:
                raise ProbeError(f"ffprobe failed: {stderr.decode(errors='replace').strip()}")

            output = stdout.decode(errors='replace').strip()
            try:
                duration = float(output)
            except ValueError as e:
                raise ProbeError(f"Failed to parse audio duration: {output!r}") from e

        if not math.isfinite(duration) or duration <= 0:
            raise ProbeError(f"Invalid audio duration: {duration}")
        return duration

    async def clip(self, audio_file: Path, start: float, duration: float, output_file: Path) -> Path:
        """Copy ``duration`` seconds from ``start`` into ``output_file`` without re-encoding"""
        cmd = [
            self.ffmpeg, '-hide_banner', '-loglevel', 'error',
            '-i', str(audio_file),
            '-ss', f"{start:.3f}",
            '-t', f"{duration:.3f}",
            '-acodec', 'copy',
            '-y',
            str(output_file)
        ]
        try:
            returncode, _, stderr = await _run_command(cmd)
        except OSError as e:
            raise ClipError(f"Failed to start ffmpeg: {e}") from e

        if returncode != 0:
            raise ClipError(f"ffmpeg failed to create {output_file.name}: {stderr.decode(errors='replace').strip()}")
        if not output_file.exists() or output_file.stat().st_size == 0:
            raise ClipError(f"ffmpeg produced no output for {output_file.name}")
        return output_file

    async def segment(
        self,
        file_path: Path,
        scratch_dir: Path,
        cancel_token: Optional[CancellationToken] = None,
        correlation_id: str = "-",
    ) -> List[AudioSegment]:
        """
        Split ``file_path`` into ordered chunks inside ``scratch_dir``.

        The caller owns ``scratch_dir`` and must remove it whatever happens.

        Raises:
            ProbeError / ClipError: both are SegmentationError
        """
        file_size = file_path.stat().st_size
        total_duration = await self.probe_duration(file_path)
        chunk_duration = calculate_chunk_duration(file_size, total_duration, self.size_limit)

        plan = plan_segments(total_duration, chunk_duration, self.overlap_seconds)
        logger.info(
            f"[{correlation_id}] Splitting {total_duration / 60:.1f} min audio into "
            f"{len(plan)} chunks of {chunk_duration}s"
        )

        suffix = file_path.suffix or ".mp3"
        segments = []
        for index, start, length in plan:
            check_cancelled(cancel_token)
            chunk_file = scratch_dir / f"chunk_{index:03d}{suffix}"
            await self.clip(file_path, start, length, chunk_file)
            segments.append(AudioSegment(index=index, start=start, duration=length, path=chunk_file))
            logger.info(f"[{correlation_id}] Created chunk {index + 1}/{len(plan)} (start: {start:.0f}s)")

        return segments
