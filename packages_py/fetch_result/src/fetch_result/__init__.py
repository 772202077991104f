"""
Resilient HTTP request execution with typed result projection.

Sends a request through an httpx.AsyncClient, retries it under a bounded
exponential-backoff policy, and returns the response as a raw response, a
string, a typed object, a success/error pair or an Ok/Fail result.
"""
from .types import HttpMethod, Target
from .errors import (
    FetchResultError,
    RequestBuildError,
    CloneFailure,
    CodecError,
    ResultUnwrapError,
)
from .codec import Serializer, JsonCodec, default_codec
from .outcomes import (
    OutcomeKind,
    TransportFailure,
    NonSuccessStatus,
    DeserializationFailure,
    Success,
    AttemptOutcome,
)
from .results import (
    ProblemDetails,
    Ok,
    Fail,
    OperationResult,
    SendWithErrorResult,
    TrySendResult,
    TrySendStringResult,
)
from .settings import FetchResultSettings, get_settings
from .duplicator import RequestDuplicator, build_request
from .invoker import send_once
from .classifier import ResponseClassifier
from .pipeline import ExecutionPipeline
from .client import ResultClient
from .factory import create_result_client


__all__ = [
    # Types
    "HttpMethod",
    "Target",
    # Errors
    "FetchResultError",
    "RequestBuildError",
    "CloneFailure",
    "CodecError",
    "ResultUnwrapError",
    # Codec
    "Serializer",
    "JsonCodec",
    "default_codec",
    # Outcomes
    "OutcomeKind",
    "TransportFailure",
    "NonSuccessStatus",
    "DeserializationFailure",
    "Success",
    "AttemptOutcome",
    # Results
    "ProblemDetails",
    "Ok",
    "Fail",
    "OperationResult",
    "SendWithErrorResult",
    "TrySendResult",
    "TrySendStringResult",
    # Settings
    "FetchResultSettings",
    "get_settings",
    # Pipeline
    "RequestDuplicator",
    "build_request",
    "send_once",
    "ResponseClassifier",
    "ExecutionPipeline",
    # Client
    "ResultClient",
    "create_result_client",
]


__version__ = "1.0.0"
