import logging
from abc import ABC
from typing import Any, Optional

logger = logging.getLogger(__name__)


class AmeritradeStreamerError(Exception, ABC):
    """Base exception for the Ameritrade streamer."""

    def __init__(self, message: str):
        super().__init__(message)


class InvalidArgumentError(AmeritradeStreamerError):
    """Raised when an invalid argument is provided."""

    def __init__(self, context: str):
        super().__init__(f"Invalid argument: {context}")


class UnknownServiceError(AmeritradeStreamerError):
    """Raised when no field schema is registered for a service."""

    def __init__(self, service: str):
        super().__init__(f"No field schema registered for service '{service}'")
        self.service = service


class SchemaError(AmeritradeStreamerError):
    """Raised when a field name is not part of a service's schema."""

    def __init__(self, service: str, field: str):
        super().__init__(f"Unknown field '{field}' for service '{service}'")
        self.service = service
        self.field = field


class AuthenticationFailure(AmeritradeStreamerError):
    """Describes a failed LOGIN handshake.

    Emitted on the ``authentication_failed`` signal rather than raised, since the
    handshake completes asynchronously relative to ``connect``.
    """

    def __init__(self, message: str, code: Optional[Any] = None):
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        base_message = super().__str__()
        if self.code is not None:
            return f"{base_message} (Code: {self.code})"
        return base_message


class MalformedFrameError(AmeritradeStreamerError):
    """Raised when an inbound message or frame does not have the expected shape."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception


__all__ = [
    "AmeritradeStreamerError",
    "AuthenticationFailure",
    "InvalidArgumentError",
    "MalformedFrameError",
    "SchemaError",
    "UnknownServiceError",
]
