"""Integration tests for local blob storage and JSON metadata"""

import pytest

from audiogist.errors import InvalidArgumentError, NotFoundError
from audiogist.models import EpisodeRecord, SummaryRecord


class TestLocalFileStorage:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_upload_and_download_file(self, storage, temp_dir):
        source = temp_dir / "in.mp3"
        source.write_bytes(b"audio" * 20000)

        uri = await storage.upload_file("episodes", "k.mp3", source)
        copy = await storage.download_to_file("episodes", "k.mp3", temp_dir / "out" / "copy.mp3")

        assert uri.startswith("file://")
        assert copy.read_bytes() == source.read_bytes()
        assert await storage.get_size("episodes", "k.mp3") == 100000

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_text_blobs(self, storage):
        await storage.upload_text("transcripts", "k_transcript.txt", "héllo wörld")

        assert await storage.exists("transcripts", "k_transcript.txt")
        assert await storage.read_text("transcripts", "k_transcript.txt") == "héllo wörld"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_missing_blob(self, storage, temp_dir):
        assert not await storage.exists("summaries", "nope.mp3")
        with pytest.raises(NotFoundError):
            await storage.download_to_file("summaries", "nope.mp3", temp_dir / "x.mp3")
        with pytest.raises(NotFoundError):
            await storage.read_text("summaries", "nope.txt")
        with pytest.raises(NotFoundError):
            await storage.get_size("summaries", "nope.mp3")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, storage):
        await storage.upload_text("transcripts", "t.txt", "x")
        await storage.delete("transcripts", "t.txt")
        await storage.delete("transcripts", "t.txt")
        assert not await storage.exists("transcripts", "t.txt")

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("blob_name", ["../escape.txt", "a/b.txt", "..", ""])
    async def test_rejects_path_like_names(self, storage, blob_name):
        with pytest.raises(InvalidArgumentError):
            await storage.upload_text("transcripts", blob_name, "x")


class TestJsonMetadataStore:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_episode_records(self, metadata):
        record = EpisodeRecord("abc", "https://example.com/a.mp3", "episodes/abc.mp3", 1234)

        assert await metadata.get_episode("abc") is None
        assert not await metadata.episode_exists("abc")

        await metadata.save_episode(record)

        assert await metadata.episode_exists("abc")
        assert await metadata.get_episode("abc") == record

        await metadata.delete_episode("abc")
        await metadata.delete_episode("abc")
        assert await metadata.get_episode("abc") is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_summary_records(self, metadata):
        record = SummaryRecord("abc", "transcripts/abc_transcript.txt", "transcripts/abc_summary.txt",
                               "summaries/abc_summary.mp3", 9000, 742)

        await metadata.save_summary(record)

        assert await metadata.summary_exists("abc")
        assert not await metadata.episode_exists("abc")
        assert await metadata.get_summary("abc") == record

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, metadata):
        await metadata.save_episode(EpisodeRecord("k", "https://x/a.mp3", "episodes/k.mp3", 1))
        assert [p.name for p in metadata.episodes_path.iterdir()] == ["k.json"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_rejects_path_like_keys(self, metadata):
        with pytest.raises(InvalidArgumentError):
            await metadata.get_episode("../../etc/passwd")
