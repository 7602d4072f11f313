"""
Core functionality for the ReadTube service.

This package contains the transcript sources and their fallback chain,
the summarization and chat clients, payments, identity checks and the
pipeline that ties them together.
"""
