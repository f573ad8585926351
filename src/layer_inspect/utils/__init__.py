"""Utility functions for layer-inspect."""

from .digest import calculate_stream_digest, parse_hash, validate_digest

__all__ = ["calculate_stream_digest", "parse_hash", "validate_digest"]
