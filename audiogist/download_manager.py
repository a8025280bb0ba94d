"""Fetch source audio over HTTP"""

import asyncio
import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import aiofiles
import aiohttp

from . import config
from .errors import DownloadError, InvalidArgumentError
from .utils.cancellation import CancellationToken, check_cancelled
from .utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    'User-Agent': 'Podcasts/1580.1 CFNetwork/1408.0.4 Darwin/22.5.0',
    'Accept': 'audio/mpeg, audio/*;q=0.9, */*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
}


def validate_source_url(url: str) -> str:
    """Accept only absolute http(s) URLs"""
    if not url or not url.strip():
        raise InvalidArgumentError("MP3 URL is required.")
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        raise InvalidArgumentError("Invalid URL format. Please provide a valid HTTP or HTTPS URL.")
    return url


class EpisodeDownloader:
    """Stream remote audio to a local file with aiohttp"""

    def __init__(self, chunk_size: int = 8192, timeout: int = config.DOWNLOAD_TIMEOUT_SECONDS):
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session with proper configuration"""
        async with self._session_lock:
            if self.session is None or self.session.closed:
                timeout = aiohttp.ClientTimeout(
                    total=self.timeout,
                    connect=30,
                    sock_read=60
                )
                self.session = aiohttp.ClientSession(timeout=timeout, headers=DEFAULT_HEADERS)
            return self.session

    async def close(self):
        """Close the HTTP session"""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def download(
        self,
        url: str,
        output_file: Path,
        cancel_token: Optional[CancellationToken] = None,
        correlation_id: str = "-",
    ) -> Path:
        """
        Download ``url`` to ``output_file``.

        Raises:
            InvalidArgumentError: not an http(s) URL
            DownloadError: HTTP error status, network failure or timeout
        """
        validate_source_url(url)
        check_cancelled(cancel_token)

        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        temp_file = output_file.with_name(output_file.name + ".part")
        logger.info(f"[{correlation_id}] Downloading audio from: {url[:80]}")

        try:
            session = await self._get_session()
            async with session.get(url, allow_redirects=True) as response:
                if response.status not in (200, 206):
                    raise DownloadError(f"Download failed: HTTP {response.status}")

                content_type = response.headers.get('Content-Type', '').lower()
                if content_type and not content_type.startswith('audio/'):
                    logger.warning(f"[{correlation_id}] Content type is {content_type}, expected audio/*")

                total_size = int(response.headers.get('Content-Length', 0) or 0)
                if total_size > 0:
                    logger.info(f"[{correlation_id}] 📦 Download size: {total_size / 1024 / 1024:.1f} MB")

                downloaded = 0
                async with aiofiles.open(temp_file, 'wb') as f:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        check_cancelled(cancel_token)
                        await f.write(chunk)
                        downloaded += len(chunk)

            os.replace(temp_file, output_file)
        except asyncio.TimeoutError as e:
            raise DownloadError(f"Download timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise DownloadError(f"Download failed: {e}") from e
        except OSError as e:
            raise DownloadError(f"Could not write downloaded audio: {e}") from e
        finally:
            # Remove partial download if it exists
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as e:
                    logger.debug(f"[{correlation_id}] Failed to remove partial download: {e}")

        logger.info(f"[{correlation_id}] ✅ Download complete: {downloaded} bytes to {output_file.name}")
        return output_file
