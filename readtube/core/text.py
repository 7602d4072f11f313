"""
Text helpers for transcripts: cleanup, deduplication and caption parsing.
"""

import math
import re
from typing import Any, Dict, List, Optional

_TIMESTAMP = re.compile(r"\d{1,2}:\d{2}:\d{2}")
_SPEAKER = re.compile(r"Speaker \d+:|Mówca \d+:", re.IGNORECASE)
_SRT_TIMING = re.compile(
    r"(\d{2}):(\d{2}):(\d{2})[,.](\d{3})\s*-->\s*(\d{2}):(\d{2}):(\d{2})[,.](\d{3})"
)
_ISO_DURATION = re.compile(
    r"P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$"
)

POLISH_MARKERS = ["jest", "że", "nie", "się", "jako", "już", "tylko", "jego", "oraz", "można"]
ENGLISH_MARKERS = ["the", "and", "you", "that", "this", "with", "for", "are", "have", "not"]

SIMILARITY_THRESHOLD = 0.85


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _collapse_punctuation(text: str) -> str:
    text = re.sub(r"\.{2,}", ".", text)
    text = re.sub(r",{2,}", ",", text)
    text = re.sub(r"!{2,}", "!", text)
    return re.sub(r"\?{2,}", "?", text)


def _normalize_sentence(sentence: str) -> str:
    sentence = re.sub(r"[^\w\s]", "", sentence.lower())
    return normalize_whitespace(sentence)


def similarity(first: str, second: str) -> float:
    """Jaccard similarity of the word sets of two sentences, 0..1."""
    words_a = set(first.split())
    words_b = set(second.split())
    union = words_a | words_b
    if not union:
        return 1.0
    return len(words_a & words_b) / len(union)


def remove_repetitions(text: str) -> str:
    """
    Remove the stutter typical of automatic captions and speech-to-text.

    Drops immediately repeated words and 2-8 word phrases, then drops
    sentences that are near duplicates of an earlier one. Sentences of ten
    characters or fewer are discarded as noise.
    """
    if not text or not text.strip():
        return text

    cleaned = re.sub(r"\b(\w+)\s+\1\b", r"\1", text, flags=re.IGNORECASE)
    for phrase_length in range(2, 9):
        pattern = r"\b((?:\w+\s+){%d}\w+)\s+\1\b" % (phrase_length - 1)
        cleaned = re.sub(pattern, r"\1", cleaned, flags=re.IGNORECASE)

    sentences = [s.strip() for s in re.split(r"[.!?]+", cleaned)]
    unique: List[str] = []
    seen: List[str] = []
    for sentence in sentences:
        if len(sentence) <= 10:
            continue
        normalized = _normalize_sentence(sentence)
        if any(similarity(normalized, earlier) > SIMILARITY_THRESHOLD for earlier in seen):
            continue
        unique.append(sentence)
        seen.append(normalized)

    cleaned = ". ".join(unique)
    cleaned = re.sub(r"\s*[.!?]\s*", ". ", cleaned)
    cleaned = re.sub(r"\.\s*\.", ".", cleaned)
    return normalize_whitespace(cleaned)


def clean_for_model(raw: str) -> str:
    """
    Prepare a raw transcript as LLM context.

    Strips timestamps and speaker labels, collapses punctuation runs and
    removes repetitions. Falls back to the whitespace-normalized input when
    cleaning leaves nothing, so short transcripts survive intact.
    """
    if not raw or not raw.strip():
        return ""

    text = normalize_whitespace(raw)
    text = _TIMESTAMP.sub("", text)
    text = _SPEAKER.sub("", text)
    text = _collapse_punctuation(text).strip()
    text = remove_repetitions(text)

    sentences = [s.strip() for s in re.split(r"[.!?]+", text) if len(s.strip()) > 5]
    cleaned = ". ".join(sentences).strip()
    return cleaned or normalize_whitespace(raw)


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


def parse_srt(content: str) -> List[Dict[str, Any]]:
    """Parse SRT captions into ``{"text", "start", "duration"}`` entries."""
    entries = []
    for block in re.split(r"\n\s*\n", content.strip()):
        lines = [line.strip() for line in block.strip().splitlines()]
        timing_index = next((i for i, line in enumerate(lines) if "-->" in line), None)
        if timing_index is None:
            continue
        match = _SRT_TIMING.search(lines[timing_index])
        if not match:
            continue
        parts = [int(p) for p in match.groups()]
        start = parts[0] * 3600 + parts[1] * 60 + parts[2] + parts[3] / 1000
        end = parts[4] * 3600 + parts[5] * 60 + parts[6] + parts[7] / 1000
        text = " ".join(line for line in lines[timing_index + 1:] if line)
        if text:
            entries.append({"text": text, "start": start, "duration": round(end - start, 3)})
    return entries


def detect_language(text: str) -> str:
    """Rough en/pl detection by counting common function words."""
    lowered = text.lower()
    polish = sum(len(re.findall(r"\b%s\b" % w, lowered)) for w in POLISH_MARKERS)
    english = sum(len(re.findall(r"\b%s\b" % w, lowered)) for w in ENGLISH_MARKERS)
    if polish > english:
        return "pl"
    if english > polish:
        return "en"
    return "unknown"


def parse_iso_duration(value: Optional[str]) -> Optional[int]:
    """Convert an ISO-8601 duration such as ``PT3M33S`` into seconds."""
    if not value:
        return None
    match = _ISO_DURATION.match(value)
    if not match:
        return None
    days, hours, minutes, seconds = match.groups()
    total = (
        int(days or 0) * 86400
        + int(hours or 0) * 3600
        + int(minutes or 0) * 60
        + float(seconds or 0)
    )
    return int(total)


def minutes_for(duration_seconds: Optional[int]) -> int:
    """Billable minutes for a video: whole minutes, rounded up."""
    if not duration_seconds:
        return 0
    return math.ceil(duration_seconds / 60)


def format_clock(duration_seconds: Optional[int]) -> str:
    """Render seconds as ``M:SS`` or ``H:MM:SS``."""
    if duration_seconds is None:
        return ""
    hours, rest = divmod(int(duration_seconds), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_minutes(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours}h"
    return f"{hours}h {rest}min"
