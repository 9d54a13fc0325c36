"""
Error types shared by the API layer and the services.

APIError subclasses carry an HTTP status and a machine-readable code; the
exception handlers in core.responses turn them into the response envelope.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    BAD_REQUEST = "BAD_REQUEST"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"
    MCP_SERVER_ERROR = "MCP_SERVER_ERROR"


class APIError(Exception):
    status_code = 500
    code: str = ErrorCode.INTERNAL_SERVER_ERROR.value

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class AuthenticationError(APIError):
    status_code = 401
    code = ErrorCode.AUTHENTICATION_ERROR.value


class AuthorizationError(APIError):
    status_code = 403
    code = ErrorCode.AUTHORIZATION_ERROR.value


class NotFoundError(APIError):
    status_code = 404
    code = ErrorCode.NOT_FOUND.value


class ServiceUnavailableError(APIError):
    status_code = 503
    code = ErrorCode.SERVICE_UNAVAILABLE.value


# Service-layer errors


class AIProviderError(Exception):
    """A single AI provider (or the proxy) failed to answer"""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class AIServiceError(Exception):
    """Every route to an AI provider failed"""


class AnalysisError(Exception):
    """An analysis pipeline (start/sit, trade, waiver, lineup) failed"""


class SleeperAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
