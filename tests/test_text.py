"""
Tests for the transcript text helpers.
"""

import pytest

from readtube.core.text import (
    clean_for_model,
    detect_language,
    format_clock,
    format_minutes,
    minutes_for,
    normalize_whitespace,
    parse_iso_duration,
    parse_srt,
    remove_repetitions,
    similarity,
    truncate,
)
from readtube.utils.helpers import extract_video_id, is_valid_video_id


def test_normalize_whitespace():
    assert normalize_whitespace("  a \n\t b  ") == "a b"
    assert normalize_whitespace(None) == ""


def test_similarity_bounds():
    assert similarity("a b c", "a b c") == 1.0
    assert similarity("a b", "c d") == 0.0
    assert similarity("a b c d", "a b c e") == pytest.approx(3 / 5)


def test_remove_repeated_words_and_phrases():
    text = "we are going going to the the store. you know you know what I mean right"
    cleaned = remove_repetitions(text)
    assert "going going" not in cleaned
    assert "the the" not in cleaned
    assert "you know you know" not in cleaned
    assert "you know what I mean right" in cleaned


def test_remove_near_duplicate_sentences():
    text = (
        "The quick brown fox jumps over the lazy dog. "
        "The quick brown fox jumps over the lazy dog again. "
        "Something entirely different happens next."
    )
    cleaned = remove_repetitions(text)
    assert cleaned.count("quick brown fox") == 1
    assert "Something entirely different happens next" in cleaned


def test_remove_repetitions_drops_short_sentences():
    cleaned = remove_repetitions("Okay. Yes. This sentence is long enough to keep.")
    assert "Okay" not in cleaned
    assert "This sentence is long enough to keep" in cleaned


def test_clean_for_model_strips_timestamps_and_speakers():
    raw = "00:00:01 Speaker 1: Welcome to the channel everyone... 00:00:05 Mówca 2: Dzisiaj mówimy o Pythonie!!!"
    cleaned = clean_for_model(raw)
    assert "00:00:01" not in cleaned
    assert "Speaker 1:" not in cleaned
    assert "Mówca 2:" not in cleaned
    assert "Welcome to the channel everyone" in cleaned
    assert "!!!" not in cleaned


def test_clean_for_model_keeps_short_transcripts():
    assert clean_for_model("Hi there") == "Hi there"
    assert clean_for_model("   ") == ""


def test_truncate():
    assert truncate("abc", 5) == "abc"
    assert truncate("abcdef", 3) == "abc..."
    assert len(truncate("x" * 20000, 10000)) == 10003


def test_parse_srt():
    content = (
        "1\n00:00:00,000 --> 00:00:02,500\nNever gonna give you up\n\n"
        "2\n00:00:02,500 --> 00:00:05,000\nNever gonna let you down\n"
    )
    entries = parse_srt(content)
    assert [e["text"] for e in entries] == ["Never gonna give you up", "Never gonna let you down"]
    assert entries[0]["start"] == 0.0
    assert entries[1]["duration"] == 2.5


def test_detect_language():
    assert detect_language("This is the video and you will see that it works") == "en"
    assert detect_language("To jest film, który nie jest długi, ale można się uczyć") == "pl"
    assert detect_language("12345") == "unknown"


@pytest.mark.parametrize("value,expected", [
    ("PT3M33S", 213),
    ("PT1H2M3S", 3723),
    ("PT45S", 45),
    ("P1DT1S", 86401),
    ("", None),
    ("garbage", None),
])
def test_parse_iso_duration(value, expected):
    assert parse_iso_duration(value) == expected


def test_minutes_for_rounds_up():
    assert minutes_for(213) == 4
    assert minutes_for(60) == 1
    assert minutes_for(61) == 2
    assert minutes_for(None) == 0


def test_format_clock_and_minutes():
    assert format_clock(213) == "3:33"
    assert format_clock(3723) == "1:02:03"
    assert format_clock(None) == ""
    assert format_minutes(45) == "45 min"
    assert format_minutes(120) == "2h"
    assert format_minutes(65) == "1h 5min"


@pytest.mark.parametrize("url", [
    "dQw4w9WgXcQ",
    "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://youtu.be/dQw4w9WgXcQ?si=abc",
    "https://www.youtube.com/embed/dQw4w9WgXcQ",
    "https://www.youtube.com/shorts/dQw4w9WgXcQ",
])
def test_extract_video_id(url):
    assert extract_video_id(url) == "dQw4w9WgXcQ"


def test_extract_video_id_rejects_garbage():
    assert extract_video_id("not a link") is None
    assert not is_valid_video_id("short")
