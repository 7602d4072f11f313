"""
Helper utility functions for the ReadTube service.
"""

import json
import re
from typing import Any, Dict, Optional

VIDEO_ID_PATTERN = r"^[a-zA-Z0-9_-]{11}$"


def is_valid_video_id(value: str) -> bool:
    return bool(value) and re.match(VIDEO_ID_PATTERN, value) is not None


def extract_video_id(url: str) -> Optional[str]:
    """
    Extract the video ID from a YouTube URL.

    Args:
        url: A watch, short, embed or youtu.be link, or a bare video ID

    Returns:
        The 11-character video ID, or None when nothing matches
    """
    url = (url or "").strip()
    if is_valid_video_id(url):
        return url

    patterns = [
        r"(?:v=|\/)([0-9A-Za-z_-]{11}).*",
        r"(?:embed\/)([0-9A-Za-z_-]{11})",
        r"(?:shorts\/)([0-9A-Za-z_-]{11})",
        r"(?:youtu\.be\/)([0-9A-Za-z_-]{11})",
    ]

    for pattern in patterns:
        match = re.search(pattern, url)
        if match:
            return match.group(1)

    return None


def save_json(data: Dict[str, Any], filepath: str, pretty: bool = True) -> None:
    """
    Save data to a JSON file.

    Args:
        data: Data to save
        filepath: Path to save the file
        pretty: Whether to format the JSON for readability
    """
    with open(filepath, 'w', encoding='utf-8') as f:
        if pretty:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
        else:
            json.dump(data, f, ensure_ascii=False, default=str)
