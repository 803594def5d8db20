"""Resilient client for uploading media and streaming remote analysis."""

from media_client.service import MediaAnalysisService

__all__ = ["MediaAnalysisService"]
