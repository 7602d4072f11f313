"""
Tests for the transcript summarizer module.
"""

from unittest.mock import MagicMock, patch

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from readtube.core.summarizer import TranscriptSummarizer
from readtube.models.schemas import Language, SummaryOptions, SummaryStyle
from readtube.utils.error_handling import SummarizationFailed


@pytest.fixture
def mock_langchain_model():
    """Fixture to mock the langchain chat model."""
    with patch('readtube.core.summarizer.init_chat_model') as mock_init_model:
        mock_model = MagicMock()

        mock_response = MagicMock()
        mock_response.content = "This is a summarized transcript of the video."
        mock_model.invoke.return_value = mock_response

        mock_init_model.return_value = mock_model

        yield mock_init_model


def test_init_requires_api_key():
    with pytest.raises(ValueError):
        TranscriptSummarizer(api_key=None)


def test_init_builds_model_once(mock_langchain_model):
    summarizer = TranscriptSummarizer(api_key="test_api_key", model="llama-3.3-70b-versatile")

    mock_langchain_model.assert_called_once()
    kwargs = mock_langchain_model.call_args.kwargs
    assert kwargs["model"] == "llama-3.3-70b-versatile"
    assert kwargs["model_provider"] == "groq"
    assert kwargs["api_key"] == "test_api_key"

    summarizer.summarize("This is a short test transcript about testing.")
    summarizer.summarize("Another short transcript about something else.")
    mock_langchain_model.assert_called_once()


def test_summarize_returns_model_text(mock_langchain_model):
    summarizer = TranscriptSummarizer(api_key="test_api_key")
    summary = summarizer.summarize("This is a short test transcript about testing.")

    assert summary == "This is a summarized transcript of the video."


def test_prompt_selects_style_and_language():
    summarizer = TranscriptSummarizer(llm=FakeListChatModel(responses=["ok"]))
    options = SummaryOptions(style=SummaryStyle.BULLET_POINTS, max_length=800, language=Language.PL)

    system, human = summarizer.build_prompt("Dzisiaj mówimy o testowaniu aplikacji.", options)

    assert "punktów" in system.content
    assert "po polsku" in system.content
    assert "Maximum length: 800 words." in human.content
    assert "Style: bullet-points" in human.content


def test_transcript_is_truncated_with_ellipsis():
    summarizer = TranscriptSummarizer(llm=FakeListChatModel(responses=["ok"]), prompt_chars=10000)
    transcript = " ".join(f"Sentence number {i} talks about topic {i}." for i in range(600))

    _, human = summarizer.build_prompt(transcript, SummaryOptions())

    body = human.content.split("Transcript:")[1].strip()
    assert body.endswith("...")
    assert len(body) == 10003


def test_max_length_is_advisory():
    long_summary = " ".join(["word"] * 700)
    summarizer = TranscriptSummarizer(llm=FakeListChatModel(responses=[long_summary]))

    summary = summarizer.summarize("A transcript that is long enough.", SummaryOptions(max_length=500))

    assert len(summary.split()) == 700


def test_model_failure_raises_summarization_failed():
    llm = MagicMock()
    llm.invoke.side_effect = RuntimeError("rate limited")
    summarizer = TranscriptSummarizer(llm=llm)

    with pytest.raises(SummarizationFailed) as excinfo:
        summarizer.summarize("A transcript that is long enough.")
    assert excinfo.value.status_code == 502
    assert "rate limited" not in excinfo.value.message
    llm.invoke.assert_called_once()


def test_empty_model_output_raises():
    summarizer = TranscriptSummarizer(llm=FakeListChatModel(responses=["   "]))
    with pytest.raises(SummarizationFailed):
        summarizer.summarize("A transcript that is long enough.")
