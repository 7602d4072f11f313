"""
Tests for the command-line summarizer.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from readtube.main import main
from readtube.models.schemas import SummaryStyle
from readtube.utils.error_handling import ServiceNotConfigured

from conftest import TEST_VIDEO_ID


@pytest.mark.parametrize("argv", [
    ["not a video"],
    [TEST_VIDEO_ID, "--max-length", "100"],
    [TEST_VIDEO_ID, "--max-length", "9000"],
])
def test_bad_arguments_exit_with_usage(argv, capsys):
    with patch("readtube.main.summarize_youtube_video", new_callable=AsyncMock) as summarize:
        with pytest.raises(SystemExit) as excinfo:
            main(argv)

    assert excinfo.value.code == 2
    assert "usage:" in capsys.readouterr().err
    summarize.assert_not_called()


@patch("readtube.main.config.initialize")
def test_service_error_exits_with_message(mock_initialize, capsys):
    failing = AsyncMock(side_effect=ServiceNotConfigured("GROQ_API_KEY is required to summarize."))
    with patch("readtube.main.summarize_youtube_video", failing):
        with pytest.raises(SystemExit) as excinfo:
            main([TEST_VIDEO_ID])

    assert excinfo.value.code == 1
    assert "GROQ_API_KEY" in capsys.readouterr().err


@patch("readtube.main.config.initialize")
def test_summary_is_written_to_output(mock_initialize, tmp_path):
    output = tmp_path / "summary.json"
    result = {
        "videoId": TEST_VIDEO_ID,
        "title": "Rick Astley - Never Gonna Give You Up",
        "channelName": "Rick Astley",
        "method": "caption_scrape",
        "summary": "Rick promises never to give you up.",
    }
    with patch("readtube.main.summarize_youtube_video", AsyncMock(return_value=result)) as summarize:
        main([f"https://youtu.be/{TEST_VIDEO_ID}", "--style", "bullet-points", "--output", str(output)])

    options = summarize.call_args.args[1]
    assert options.style == SummaryStyle.BULLET_POINTS
    assert json.loads(output.read_text(encoding="utf-8"))["summary"] == "Rick promises never to give you up."
