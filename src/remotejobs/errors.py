# src/remotejobs/errors.py
"""
Exception types, ordered from "absorbed locally" to "shown to the client".

- SourceUnavailable: one source exhausted its retries; the adapter absorbs it.
- CacheReadFailure: no consistent cache generation could be read; the read
  path falls back to a live fetch.
- CacheWriteFailure: a cache generation could not be committed.
- FatalPipelineError: the live-fetch fallback itself failed; the only error
  that reaches an HTTP client.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class RemoteJobsError(Exception):
    """Base class for every error raised by this package."""


class SourceUnavailable(RemoteJobsError):
    def __init__(self, source: str, last_error: Optional[BaseException] = None):
        self.source = source
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"{source} unavailable{detail}")


class CacheReadFailure(RemoteJobsError):
    pass


class CacheWriteFailure(RemoteJobsError):
    pass


class FatalPipelineError(RemoteJobsError):
    def __init__(self, message: str, timestamp: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.timestamp = timestamp or datetime.now(timezone.utc).isoformat(timespec="seconds")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "Failed to fetch jobs",
            "message": self.message,
            "timestamp": self.timestamp,
        }
