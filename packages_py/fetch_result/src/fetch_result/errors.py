"""
Exception types for fetch_result.
"""
from typing import Optional


class FetchResultError(Exception):
    """Base class for fetch_result errors."""


class RequestBuildError(FetchResultError):
    """The request (usually its payload) could not be built."""

    def __init__(self, message: str, payload_type: Optional[str] = None):
        self.payload_type = payload_type
        super().__init__(message)


class CloneFailure(FetchResultError):
    """The request body could not be re-read for another attempt."""


class CodecError(FetchResultError):
    """Serialization or deserialization failed."""

    def __init__(self, message: str, content: Optional[str] = None):
        self.content = content
        super().__init__(message)


class ResultUnwrapError(FetchResultError):
    """Value access on a failed OperationResult."""
