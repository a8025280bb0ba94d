"""Unit tests for two-pass summarization"""

from unittest.mock import MagicMock

import openai
import pytest

from audiogist.errors import ProcessingCancelled, SummarizationError
from audiogist.models import ProviderSettings
from audiogist.processing.summarizer import OpenAISummarizationBackend, TwoPassSummarizer
from audiogist.utils.cancellation import CancellationToken

from tests.conftest import StubSummarizationBackend, words


class TestTwoPassSummarizer:
    """Summarize once; compress exactly once when the first pass runs long"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_within_limit_single_call(self, sample_transcript):
        backend = StubSummarizationBackend([words(700)])
        summary = await TwoPassSummarizer(backend).summarize(sample_transcript)

        assert len(summary.split()) == 700
        assert len(backend.calls) == 1
        assert backend.calls[0]['compress'] is False
        assert backend.calls[0]['target_words'] == 750

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exactly_at_max_is_accepted(self, sample_transcript):
        backend = StubSummarizationBackend([words(800)])
        await TwoPassSummarizer(backend).summarize(sample_transcript)
        assert len(backend.calls) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_over_limit_compressed_once(self, sample_transcript):
        first, second = words(900), words(700)
        backend = StubSummarizationBackend([first, second])

        summary = await TwoPassSummarizer(backend).summarize(sample_transcript)

        assert summary == second
        assert [call['compress'] for call in backend.calls] == [False, True]
        assert backend.calls[1]['text'] == first

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_compression_result_accepted_even_if_still_long(self, sample_transcript):
        backend = StubSummarizationBackend([words(1200), words(850)])

        summary = await TwoPassSummarizer(backend).summarize(sample_transcript)

        assert len(summary.split()) == 850
        assert len(backend.calls) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("transcript", ["", "   \n"])
    async def test_empty_transcript_rejected(self, transcript):
        backend = StubSummarizationBackend()
        with pytest.raises(SummarizationError):
            await TwoPassSummarizer(backend).summarize(transcript)
        assert backend.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_backend_failure_wrapped(self, sample_transcript):
        class BrokenBackend(StubSummarizationBackend):
            async def summarize(self, *args, **kwargs):
                raise RuntimeError("model overloaded")

        with pytest.raises(SummarizationError, match="model overloaded"):
            await TwoPassSummarizer(BrokenBackend()).summarize(sample_transcript)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancelled(self, sample_transcript):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ProcessingCancelled):
            await TwoPassSummarizer(StubSummarizationBackend()).summarize(sample_transcript, cancel_token=token)


class TestOpenAISummarizationBackend:

    @pytest.fixture
    def backend(self, mock_openai, temp_dir):
        return OpenAISummarizationBackend(
            model="gpt-4o",
            temperature=1.0,
            prompts_dir=temp_dir,
            client_resolver=lambda settings: mock_openai,
        )

    @pytest.mark.unit
    def test_messages_carry_length_targets(self, backend):
        messages = backend.build_messages("the transcript", 750)

        assert messages[0]['role'] == "system"
        assert "750 words" in messages[0]['content']
        assert "5 minutes" in messages[0]['content']
        assert "the transcript" in messages[1]['content']

    @pytest.mark.unit
    def test_compression_messages(self, backend):
        messages = backend.build_messages("long summary", 750, compress=True)
        assert "compress" in messages[1]['content'].lower()
        assert "long summary" in messages[1]['content']

    @pytest.mark.unit
    def test_prompt_file_overrides_default(self, mock_openai, temp_dir):
        (temp_dir / "summary_system_prompt.txt").write_text("Custom prompt for {target_words} words")
        backend = OpenAISummarizationBackend(prompts_dir=temp_dir, client_resolver=lambda s: mock_openai)

        assert backend.build_messages("t", 750)[0]['content'] == "Custom prompt for 750 words"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_chat_completion_call(self, backend, mock_openai):
        summary = await backend.summarize("transcript text", 750)

        assert summary == "A test summary with key insights."
        kwargs = mock_openai.chat.completions.create.call_args.kwargs
        assert kwargs['model'] == "gpt-4o"
        assert kwargs['temperature'] == 1.0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_deployment_override(self, backend, mock_openai):
        await backend.summarize("text", 750, settings=ProviderSettings(summary_deployment="my-gpt"))
        assert mock_openai.chat.completions.create.call_args.kwargs['model'] == "my-gpt"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_completion(self, backend, mock_openai):
        mock_openai.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content=""))]
        )
        with pytest.raises(SummarizationError, match="Empty response"):
            await backend.summarize("text", 750)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_error_wrapped(self, backend, mock_openai):
        mock_openai.chat.completions.create.side_effect = openai.OpenAIError("rate limited")
        with pytest.raises(SummarizationError, match="rate limited"):
            await backend.summarize("text", 750)
