"""
Command-line summarizer for a single YouTube video.

Runs the same transcript chain and summarizer as the API without touching
the database, and writes the result to a JSON file.
"""

import argparse
import asyncio
import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from readtube.api.dependencies import build_services
from readtube.config import config
from readtube.core.text import format_clock
from readtube.models.schemas import Language, SummaryOptions, SummaryStyle, TranscriptRequest
from readtube.utils.error_handling import ReadTubeError, ServiceNotConfigured
from readtube.utils.helpers import extract_video_id, save_json
from readtube.utils.logger import logging


def save_summary(result: Dict[str, Any], output_file: Optional[str] = None) -> Path:
    """Save the summary to a JSON file."""
    if output_file is None:
        output_dir = Path(config.SUMMARIES_DIR)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{result['videoId']}_summary.json"
    else:
        output_path = Path(output_file)

    save_json(result, str(output_path))
    logging.info(f"Summary saved to: {output_path}")
    return output_path


async def summarize_youtube_video(
    url: str,
    options: SummaryOptions,
    user_token: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Fetch a transcript for a video and summarize it.

    Args:
        url: YouTube video URL or ID
        options: Style, length and language of the summary
        user_token: Optional YouTube OAuth token for the first caption tier

    Returns:
        Dict with video details, transcript source, transcript and summary
    """
    video_id = extract_video_id(url)
    if not video_id:
        raise ValueError(f"Not a YouTube video URL: {url}")

    services = build_services(config)
    pipeline = services.pipeline
    if pipeline.summarizer is None:
        raise ServiceNotConfigured("GROQ_API_KEY is required to summarize.")

    info = await pipeline.describe(video_id)
    logging.info(f"Summarizing '{info.title}' ({format_clock(info.duration_seconds)})")

    transcript = await pipeline.transcripts.fetch(
        TranscriptRequest(video_id=video_id, language=options.language.value, user_token=user_token),
        duration_seconds=info.duration_seconds,
    )
    summary = await asyncio.to_thread(pipeline.summarizer.summarize, transcript.text, options)

    return {
        "videoId": video_id,
        "title": info.title,
        "channelName": info.channel_name,
        "duration": format_clock(info.duration_seconds),
        "method": transcript.source,
        "style": options.style.value,
        "language": options.language.value,
        "generatedAt": datetime.datetime.now(datetime.timezone.utc),
        "summary": summary,
        "transcript": transcript.text,
    }


def main(argv=None):
    """Main function to run the summarizer from the command line."""
    parser = argparse.ArgumentParser(description="ReadTube video summarizer")
    parser.add_argument("url", help="YouTube video URL or ID")
    parser.add_argument("--style", choices=[s.value for s in SummaryStyle],
                        default=SummaryStyle.PARAGRAPH.value, help="Summary layout")
    parser.add_argument("--max-length", type=int, default=2500,
                        help="Target summary length in words (500-5000)")
    parser.add_argument("--language", choices=[lang.value for lang in Language],
                        default=Language.EN.value, help="Summary language")
    parser.add_argument("--youtube-token", help="YouTube OAuth access token")
    parser.add_argument("--output", help="Output file path for the summary")

    args = parser.parse_args(argv)
    if not extract_video_id(args.url):
        parser.error(f"not a YouTube video URL or ID: {args.url!r}")
    try:
        options = SummaryOptions(
            style=SummaryStyle(args.style),
            max_length=args.max_length,
            language=Language(args.language),
        )
    except ValidationError as e:
        parser.error(f"argument --max-length: {e.errors()[0]['msg']}")

    config.initialize()
    try:
        result = asyncio.run(summarize_youtube_video(args.url, options, args.youtube_token))
    except ReadTubeError as e:
        parser.exit(1, f"Error: {e}\n")

    save_summary(result, args.output)

    print("\n" + "=" * 80)
    print(f"Summary of '{result['title']}' by {result['channelName']} (via {result['method']})")
    print("=" * 80)
    print(result["summary"])
    print("=" * 80)


if __name__ == "__main__":
    main()
