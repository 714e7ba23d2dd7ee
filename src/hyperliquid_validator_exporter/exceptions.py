"""Custom exception hierarchy for the validator exporter."""

from __future__ import annotations


class ExporterError(Exception):
    """Base exception for all validator exporter errors.

    All custom exceptions in this module inherit from this base class.
    This allows catching all exporter-specific errors while preserving
    the exception hierarchy for more specific error handling.
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, object] | None = None,
    ) -> None:
        """Initialize the exception with a message and optional context.

        Args:
            message: The error message.
            context: Optional context dictionary with additional error information.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return a string representation of the exception."""
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class CycleError(ExporterError):
    """Base exception for failures inside one poll-decode-publish cycle.

    Subclasses set ``stage`` to the step that failed. The underlying cause is
    chained with ``raise ... from exc`` and stays available on ``__cause__``.
    """

    stage = "cycle"

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        cycle_context: dict[str, object] = {"stage": self.stage}
        if url:
            cycle_context["url"] = url
        if context:
            cycle_context.update(context)

        super().__init__(message, context=cycle_context)
        self.url = url


class RequestConstructionError(CycleError):
    """Raised when the outbound request object cannot be built."""

    stage = "request"


class TransportError(CycleError):
    """Raised when the HTTP exchange fails before a usable response arrives.

    Covers connection failures, timeouts, cancellation of the lifecycle
    signal and non-2xx responses.
    """

    stage = "transport"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cancelled: bool = False,
        timed_out: bool = False,
        **kwargs: object,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if status_code is not None:
            context["status_code"] = status_code
        if cancelled:
            context["cancelled"] = True
        if timed_out:
            context["timed_out"] = True
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.cancelled = cancelled
        self.timed_out = timed_out


class BodyReadError(CycleError):
    """Raised when the response body stream fails, stalls past the deadline or is stopped."""

    stage = "body"

    def __init__(
        self,
        message: str,
        *,
        cancelled: bool = False,
        timed_out: bool = False,
        **kwargs: object,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if cancelled:
            context["cancelled"] = True
        if timed_out:
            context["timed_out"] = True
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.cancelled = cancelled
        self.timed_out = timed_out


class DecodeError(CycleError):
    """Raised when the response body is not a JSON array of validator summaries."""

    stage = "decode"

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        **kwargs: object,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if index is not None:
            context["index"] = index
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.index = index


class ConfigError(ExporterError):
    """Base exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        config_context: dict[str, object] = {}
        if config_key:
            config_context["config_key"] = config_key
        if context:
            config_context.update(context)

        super().__init__(message, context=config_context)
        self.config_key = config_key


class ValidationError(ConfigError):
    """Raised when a configuration value is not one of the accepted values.

    This is a subclass of ConfigError to maintain the exception hierarchy
    while providing a more specific error type for validation failures.
    """

    def __init__(
        self,
        message: str,
        *,
        value: object | None = None,
        expected: str | None = None,
        **kwargs: object,
    ) -> None:
        """Initialize the validation error.

        Args:
            message: The error message.
            value: The invalid value.
            expected: Description of the accepted values.
            **kwargs: Additional arguments passed to ConfigError.
        """
        context = kwargs.pop("context", {}) or {}
        if value is not None:
            context["value"] = value
        if expected:
            context["expected"] = expected
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.value = value
        self.expected = expected


__all__ = [
    "BodyReadError",
    "ConfigError",
    "CycleError",
    "DecodeError",
    "ExporterError",
    "RequestConstructionError",
    "TransportError",
    "ValidationError",
]
