"""Error taxonomy for model calls and session preconditions."""

from enum import StrEnum


class GatewayErrorCode(StrEnum):
    """Coarse cause of a failed model call."""

    CREDENTIAL_MISSING = "credential_missing"
    CREDENTIAL_INVALID = "credential_invalid"
    MODEL_UNAVAILABLE = "model_unavailable"
    EMPTY_RESPONSE = "empty_response"
    SCHEMA_VIOLATION = "schema_violation"
    TRANSPORT = "transport"


class GatewayError(Exception):
    """A classified failure of a model call."""

    code = GatewayErrorCode.TRANSPORT

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CredentialMissingError(GatewayError):
    """No usable credential at call time."""

    code = GatewayErrorCode.CREDENTIAL_MISSING


class CredentialInvalidError(GatewayError):
    """The service rejected the credential."""

    code = GatewayErrorCode.CREDENTIAL_INVALID


class ModelUnavailableError(GatewayError):
    """The service rejected the requested model identifier."""

    code = GatewayErrorCode.MODEL_UNAVAILABLE


class EmptyResponseError(GatewayError):
    """The service answered without a usable payload."""

    code = GatewayErrorCode.EMPTY_RESPONSE


class SchemaViolationError(GatewayError):
    """The payload does not match the expected structure."""

    code = GatewayErrorCode.SCHEMA_VIOLATION


class TransportError(GatewayError):
    """Any other transport or server failure."""


class SessionError(Exception):
    """A session action was rejected because of the current state."""


class SlotBusyError(SessionError):
    """A photo is already being analyzed for this slot."""


class ReportInProgressError(SessionError):
    """A daily report is already being generated."""


class NoMealsError(SessionError):
    """A daily report needs at least one meal."""


class ChatBusyError(SessionError):
    """A chat reply is still pending."""
