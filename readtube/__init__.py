"""
ReadTube: YouTube video summarization service.

Fetches a transcript for a YouTube video through a chain of caption and
audio sources, summarizes it with an LLM and keeps the results in a
relational store for later retrieval.
"""

from readtube.config import config

__version__ = config.APP_VERSION
