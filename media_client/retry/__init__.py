"""Backoff policies, failure classification, and the retry executor."""
