"""Streamed multi-turn analysis of uploaded media."""

from media_client.analysis.streaming import StreamingAnalysisClient, parse_event_stream

__all__ = ["StreamingAnalysisClient", "parse_event_stream"]
