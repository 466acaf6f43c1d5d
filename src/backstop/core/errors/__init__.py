"""Error classification.

Re-exports the taxonomy, data models, classifier and transport parsers.
"""

from backstop.core.errors.codes import (
    TRANSIENT_KINDS,
    ErrorKind,
    RecoveryActionKind,
    Severity,
    TransportCode,
)
from backstop.core.errors.models import (
    ErrorDetails,
    FieldError,
    RecoveryAction,
    TransportError,
)
from backstop.core.errors.parsers import (
    coerce_transport_error,
    from_httpx_error,
    from_httpx_response,
    parse_error_response,
    parse_field_errors,
    parse_retry_after,
)
from backstop.core.errors.classifier import (
    ConnectivitySource,
    ErrorClassifier,
    classify,
    is_client_error,
    is_network_error,
    is_retryable,
    is_server_error,
    normalize_validation_message,
)

__all__ = [
    "TRANSIENT_KINDS",
    "ErrorKind",
    "RecoveryActionKind",
    "Severity",
    "TransportCode",
    "ErrorDetails",
    "FieldError",
    "RecoveryAction",
    "TransportError",
    "coerce_transport_error",
    "from_httpx_error",
    "from_httpx_response",
    "parse_error_response",
    "parse_field_errors",
    "parse_retry_after",
    "ConnectivitySource",
    "ErrorClassifier",
    "classify",
    "is_client_error",
    "is_network_error",
    "is_retryable",
    "is_server_error",
    "normalize_validation_message",
]
