"""
Structured Exception Hierarchy

Provides the exception hierarchy raised while loading, resolving and binding
configuration. Every error carries an error code, context data and a
correlation ID so a failed startup can be diagnosed from a single log line.
"""

from typing import Dict, List, Any, Optional
import uuid
from datetime import datetime, timezone


class PropbindException(Exception):
    """
    Base exception class for all propbind-specific exceptions.

    Provides structured error information including error codes,
    context data, and correlation IDs for tracing.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        correlation_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ConfigurationError(PropbindException):
    """Raised when configuration-related errors occur."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        error_code: str = "CONFIG_ERROR",
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if key:
            context['key'] = key

        super().__init__(
            message=message,
            error_code=error_code,
            context=context,
            **kwargs
        )
        self.key = key


class SourceLoadError(ConfigurationError):
    """Raised when a configuration source is missing, unreadable or malformed."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if source_name:
            context['source'] = source_name

        super().__init__(
            message,
            error_code="SOURCE_LOAD_ERROR",
            context=context,
            **kwargs
        )
        self.source_name = source_name


class CircularReferenceError(ConfigurationError):
    """Raised when placeholder resolution runs into a cycle."""

    def __init__(self, message: str, chain: Optional[List[str]] = None, **kwargs):
        context = kwargs.pop('context', {})
        self.chain = list(chain or [])
        if self.chain:
            context['chain'] = self.chain

        super().__init__(
            message,
            error_code="CIRCULAR_REFERENCE",
            context=context,
            **kwargs
        )


class UnresolvedPlaceholderError(ConfigurationError):
    """Raised when a placeholder names a missing key and supplies no default."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code="UNRESOLVED_PLACEHOLDER", **kwargs)


class TypeCoercionError(ConfigurationError):
    """Raised when a raw value cannot be converted to its declared type."""

    def __init__(
        self,
        message: str,
        raw_value: Any = None,
        target_type: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if raw_value is not None:
            context['raw_value'] = raw_value
        if target_type:
            context['target_type'] = target_type

        super().__init__(
            message,
            error_code="TYPE_COERCION_ERROR",
            context=context,
            **kwargs
        )
        self.raw_value = raw_value
        self.target_type = target_type


class MissingRequiredPropertyError(ConfigurationError):
    """Raised when a required record attribute has no value after resolution."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code="MISSING_REQUIRED_PROPERTY", **kwargs)


class ExpressionSyntaxError(ConfigurationError):
    """Raised when a #{...} expression falls outside the supported grammar."""

    def __init__(self, message: str, expression: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if expression is not None:
            context['expression'] = expression

        super().__init__(
            message,
            error_code="EXPRESSION_SYNTAX",
            context=context,
            **kwargs
        )
        self.expression = expression
