"""Integration tests for stored-result queries"""

import pytest

from audiogist.errors import InvalidArgumentError, NotFoundError
from audiogist.models import EpisodeRecord, SummaryRecord
from audiogist.queries import EpisodeQueryService
from audiogist.utils.helpers import derive_cache_key


@pytest.fixture
def queries(storage, metadata, temp_dir):
    return EpisodeQueryService(storage, metadata, temp_dir=temp_dir / "out")


async def store_episode(metadata, storage, temp_dir, url):
    key = derive_cache_key(url)
    audio = temp_dir / "episode.mp3"
    audio.write_bytes(b"episode audio")
    await storage.upload_file("episodes", f"{key}.mp3", audio)
    await metadata.save_episode(EpisodeRecord(key, url, f"episodes/{key}.mp3", 13))
    return key


class TestEpisodeQueryService:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_blank_identifier(self, queries):
        with pytest.raises(InvalidArgumentError):
            await queries.get_result("  ")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_episode(self, queries, episode_url):
        with pytest.raises(NotFoundError):
            await queries.get_result(episode_url)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_episode_without_summary(self, queries, metadata, storage, temp_dir, episode_url):
        key = await store_episode(metadata, storage, temp_dir, episode_url)

        result = await queries.get_result(episode_url)

        assert result.episode_id == key
        assert result.success
        assert result.summary_text is None
        assert not result.summary_was_cached

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_episode_with_summary(self, queries, metadata, storage, temp_dir, episode_url):
        key = await store_episode(metadata, storage, temp_dir, episode_url)
        await storage.upload_text("transcripts", f"{key}_summary.txt", '\n"Four words of summary."\n')
        await metadata.save_summary(SummaryRecord(
            key, f"transcripts/{key}_transcript.txt", f"transcripts/{key}_summary.txt",
            f"summaries/{key}_summary.mp3", 120, 4,
        ))

        result = await queries.get_result(key)

        assert result.summary_was_cached
        assert result.summary_text == "Four words of summary"
        assert result.transcript_word_count == 120
        assert result.summary_word_count == 4

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_open_audio(self, queries, metadata, storage, temp_dir, episode_url):
        key = await store_episode(metadata, storage, temp_dir, episode_url)

        path = await queries.open_episode_audio(episode_url)

        assert path.name == f"audio_{key}.mp3"
        assert path.read_bytes() == b"episode audio"
        with pytest.raises(NotFoundError):
            await queries.open_summary_audio(episode_url)
