"""Resumable upload and processing-completion polling."""

from media_client.upload.coordinator import UploadCoordinator
from media_client.upload.poller import PROCESSING_POLL_POLICY, ProcessingPoller

__all__ = ["UploadCoordinator", "ProcessingPoller", "PROCESSING_POLL_POLICY"]
