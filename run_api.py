"""
Serve the ReadTube API with uvicorn.
"""

import argparse
import os
import sys

import uvicorn
from dotenv import load_dotenv

from readtube.config import config
from readtube.utils.logger import logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="ReadTube summarization API")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Interface to bind")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")), help="Port to bind")
    parser.add_argument("--workers", type=int, default=1, help="Number of worker processes")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    parser.add_argument("--check", action="store_true",
                        help="Report which optional features are disabled and exit")
    return parser.parse_args(argv)


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)
    config.initialize()

    missing = config.missing_keys()
    for key in missing:
        logging.warning(f"{key} is not set; the features that need it are disabled")
    if args.check:
        sys.exit(1 if missing else 0)

    logging.info(
        f"Starting {config.APP_NAME} {config.APP_VERSION} on {args.host}:{args.port} "
        f"({os.getenv('ENVIRONMENT', 'development')})"
    )
    # create_app builds every client, once per worker process
    uvicorn.run(
        "readtube.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        workers=1 if args.reload else args.workers,
        reload=args.reload,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
