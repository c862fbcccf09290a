"""Fetcher subsystem: default HTTP collaborator with safety checks."""

from fetcher.http import fetch_url
from fetcher.http import HttpFetcher
from fetcher.logging import emit_fetch_log, fetch_log_to_dict

__all__ = [
    "fetch_url",
    "HttpFetcher",
    "emit_fetch_log",
    "fetch_log_to_dict",
]
