"""Adapters for the external systems a pipeline run depends on.

Each adapter wraps one outside tool or service (HTTP download, FFmpeg,
speech-to-text, text classification) behind a narrow call so the pipeline can
be exercised with fakes in tests.
"""
