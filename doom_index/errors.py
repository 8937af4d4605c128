"""Application error kinds and the Result value returned by fallible services."""
from dataclasses import dataclass
from typing import Any, Optional


class AppError(Exception):
    kind = 'AppError'

    def __init__(self, message):
        self.message = message
        super().__init__(message)

    def to_dict(self):
        return {'kind': self.kind, 'message': self.message}


class ExternalApiError(AppError):
    kind = 'ExternalApiError'

    def __init__(self, provider, message, status=None):
        self.provider = provider
        self.status = status
        super().__init__(message)

    def to_dict(self):
        return {**super().to_dict(), 'provider': self.provider, 'status': self.status}


class ProviderTimeoutError(AppError):
    kind = 'TimeoutError'

    def __init__(self, timeout_ms, message=None):
        self.timeout_ms = timeout_ms
        super().__init__(message or f"Request timed out after {timeout_ms}ms")

    def to_dict(self):
        return {**super().to_dict(), 'timeout_ms': self.timeout_ms}


class StorageError(AppError):
    kind = 'StorageError'

    def __init__(self, op, key, message):
        self.op = op
        self.key = key
        super().__init__(message)

    def to_dict(self):
        return {**super().to_dict(), 'op': self.op, 'key': self.key}


class ConfigurationError(AppError):
    kind = 'ConfigurationError'

    def __init__(self, message, missing_var=None):
        self.missing_var = missing_var
        super().__init__(message)

    def to_dict(self):
        return {**super().to_dict(), 'missing_var': self.missing_var}


class ParsingError(AppError):
    kind = 'ParsingError'

    def __init__(self, raw_value, message):
        self.raw_value = raw_value
        super().__init__(message)

    def to_dict(self):
        return {**super().to_dict(), 'raw_value': self.raw_value}


class InternalError(AppError):
    kind = 'InternalError'


@dataclass(frozen=True)
class Result:
    """Outcome of a fallible operation: either a value or an AppError."""

    value: Any = None
    error: Optional[AppError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value=None):
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError):
        return cls(error=error)


def as_app_error(exc, fallback_message='Unknown error'):
    """Pass AppErrors through; wrap anything else in an InternalError."""
    if isinstance(exc, AppError):
        return exc
    return InternalError(str(exc) or fallback_message)
