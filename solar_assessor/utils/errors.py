"""Error handling utilities for the solar assessment pipeline."""

from dataclasses import dataclass
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorType(Enum):
    """Enumeration of error types in the solar assessment pipeline."""

    # Bedrock API Errors
    BEDROCK_RATE_LIMIT = "BEDROCK_RATE_LIMIT"
    BEDROCK_TIMEOUT = "BEDROCK_TIMEOUT"
    BEDROCK_AUTH_ERROR = "BEDROCK_AUTH_ERROR"
    BEDROCK_MODEL_ERROR = "BEDROCK_MODEL_ERROR"
    BEDROCK_INVALID_REQUEST = "BEDROCK_INVALID_REQUEST"
    BEDROCK_SERVICE_ERROR = "BEDROCK_SERVICE_ERROR"

    # Provider Resolution Errors
    PROVIDERS_EXHAUSTED = "PROVIDERS_EXHAUSTED"
    RESPONSE_PARSE_FAILED = "RESPONSE_PARSE_FAILED"

    # Request Errors
    INVALID_REQUEST = "INVALID_REQUEST"
    ASSESSMENT_NOT_FOUND = "ASSESSMENT_NOT_FOUND"

    # Configuration Errors
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # System Errors
    INITIALIZATION_FAILED = "INITIALIZATION_FAILED"

    # General Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class ErrorContext:
    """
    Context information for errors in the assessment pipeline.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        recoverable: Whether the error can be recovered from
        fallback_action: Optional description of fallback action taken
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    recoverable: bool
    fallback_action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error context to dictionary for logging/serialization.

        Returns:
            Dictionary representation of error context
        """
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "fallback_action": self.fallback_action,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class AssessmentError(Exception):
    """
    Base exception for all solar assessment errors.

    Wraps errors with additional context so callers can decide between
    degrading and surfacing.

    Attributes:
        context: ErrorContext with detailed error information
    """

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    def __str__(self) -> str:
        base = f"{self.context.error_type.value}: {self.context.message}"
        if self.context.fallback_action:
            base += f" (Fallback: {self.context.fallback_action})"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return self.context.to_dict()


class BedrockAPIError(AssessmentError):
    """Exception for AWS Bedrock API errors."""

    @classmethod
    def from_client_error(
        cls,
        error: Exception,
        operation: str,
        recoverable: bool = False,
        fallback_action: Optional[str] = None
    ) -> "BedrockAPIError":
        """
        Create BedrockAPIError from boto3 ClientError.

        Args:
            error: Original boto3 ClientError
            operation: Description of operation that failed
            recoverable: Whether error is recoverable
            fallback_action: Optional fallback action description

        Returns:
            BedrockAPIError instance
        """
        error_code = "Unknown"
        error_message = str(error)

        if hasattr(error, 'response'):
            error_info = error.response.get("Error", {})
            error_code = error_info.get("Code", "Unknown")
            error_message = error_info.get("Message", str(error))

        error_type_map = {
            "ThrottlingException": ErrorType.BEDROCK_RATE_LIMIT,
            "TooManyRequestsException": ErrorType.BEDROCK_RATE_LIMIT,
            "RequestTimeout": ErrorType.BEDROCK_TIMEOUT,
            "RequestTimeoutException": ErrorType.BEDROCK_TIMEOUT,
            "UnauthorizedException": ErrorType.BEDROCK_AUTH_ERROR,
            "AccessDeniedException": ErrorType.BEDROCK_AUTH_ERROR,
            "ValidationException": ErrorType.BEDROCK_INVALID_REQUEST,
            "ModelNotReadyException": ErrorType.BEDROCK_MODEL_ERROR,
            "ModelTimeoutException": ErrorType.BEDROCK_TIMEOUT,
            "ServiceUnavailableException": ErrorType.BEDROCK_SERVICE_ERROR,
            "InternalServerException": ErrorType.BEDROCK_SERVICE_ERROR,
        }

        error_type = error_type_map.get(error_code, ErrorType.BEDROCK_SERVICE_ERROR)

        context = ErrorContext(
            error_type=error_type,
            message=f"Bedrock API error during {operation}: {error_message}",
            recoverable=recoverable,
            fallback_action=fallback_action,
            details={
                "error_code": error_code,
                "operation": operation
            },
            original_exception=error
        )

        return cls(context)

    @property
    def is_timeout(self) -> bool:
        return self.context.error_type == ErrorType.BEDROCK_TIMEOUT


class ParseError(AssessmentError):
    """Raised when a provider's free-text answer holds no usable JSON object."""

    @classmethod
    def no_json_object(cls, text: str) -> "ParseError":
        """
        Create error for text without an extractable JSON object.

        Args:
            text: The text that could not be parsed

        Returns:
            ParseError instance
        """
        context = ErrorContext(
            error_type=ErrorType.RESPONSE_PARSE_FAILED,
            message=f"No JSON object found in response: {text[:80]!r}",
            recoverable=True,
            fallback_action="Try next provider",
            details={"length": len(text or "")}
        )
        return cls(context)


class AllProvidersExhausted(AssessmentError):
    """
    Every provider in a fallback chain reported unavailable.

    The resolver builds and logs this error, then substitutes a synthetic
    estimate. It never reaches callers.
    """

    @classmethod
    def for_capability(
        cls,
        capability: str,
        attempts: List[Dict[str, Any]],
        fallback_action: Optional[str] = None
    ) -> "AllProvidersExhausted":
        """
        Create error for an exhausted fallback chain.

        Args:
            capability: Capability being resolved (geocoding, solar, ...)
            attempts: One entry per provider tried, with its reason code
            fallback_action: Optional fallback action

        Returns:
            AllProvidersExhausted instance
        """
        context = ErrorContext(
            error_type=ErrorType.PROVIDERS_EXHAUSTED,
            message=f"All {len(attempts)} provider(s) for '{capability}' were unavailable",
            recoverable=True,
            fallback_action=fallback_action or "Use synthetic estimate",
            details={"capability": capability, "attempts": attempts}
        )
        return cls(context)


class InvalidRequest(AssessmentError):
    """Caller-facing validation failure, raised before any provider is called."""

    @classmethod
    def for_field(cls, field: str, reason: str) -> "InvalidRequest":
        context = ErrorContext(
            error_type=ErrorType.INVALID_REQUEST,
            message=f"Invalid assessment request: {field} {reason}",
            recoverable=False,
            details={"field": field}
        )
        return cls(context)


class AssessmentNotFound(AssessmentError):
    """No cached assessment exists for the given id (missing or expired)."""

    @classmethod
    def for_id(cls, assessment_id: str) -> "AssessmentNotFound":
        context = ErrorContext(
            error_type=ErrorType.ASSESSMENT_NOT_FOUND,
            message=f"Assessment '{assessment_id}' not found or expired",
            recoverable=False,
            fallback_action="Run a new assessment",
            details={"assessment_id": assessment_id}
        )
        return cls(context)


class ConfigurationError(AssessmentError):
    """Exception for invalid or missing configuration."""

    @classmethod
    def invalid(cls, message: str, **details: Any) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_INVALID,
            message=message,
            recoverable=False,
            details=details or None
        )
        return cls(context)

    @classmethod
    def missing(cls, key: str) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_MISSING,
            message=f"Missing configuration value '{key}'",
            recoverable=False,
            details={"key": key}
        )
        return cls(context)
