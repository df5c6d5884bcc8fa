from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    FEED_FETCH_FAILED = "FEED_FETCH_FAILED"
    FEED_MALFORMED = "FEED_MALFORMED"
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"


class FeedError(Exception):
    """Raised for all expected failure conditions.

    Inside a feed, upstream failures are raised as FeedError and caught at
    the feed boundary, where they are masked by the last good cached value.
    Input validation errors propagate to server.py and are serialised into
    the JSON error response.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
