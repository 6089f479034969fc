"""
mpibridge exception hierarchy and Result types.

All mpibridge exceptions inherit from BridgeException for easy catching.
Inside the binding layer native outcomes travel as Ok/Err values and are
unwrapped into exceptions at the public boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

T = TypeVar('T')
E = TypeVar('E', bound=Exception)


class BridgeException(Exception):
    """Base exception for all mpibridge errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self):
        base = f"{self.__class__.__name__}: {self.message}"
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} (context: {ctx_str})"
        return base


class SymbolNotFound(BridgeException):
    """A required native library, function or data symbol is missing."""
    pass


class MPIFailure(BridgeException):
    """A native call returned a non-zero status, or the layer was misused."""
    pass


class ArenaClosedError(BridgeException):
    """A marshaling buffer was touched after its arena was released."""
    pass


class ConfigurationError(BridgeException):
    """Invalid configuration."""
    pass


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass(frozen=True)
class Ok(Generic[T]):
    """Success result containing a value."""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Extract value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, fn: Callable[[T], Any]) -> 'ResultType':
        """Transform success value."""
        return Ok(fn(self.value))

    def and_then(self, fn: Callable[[T], 'ResultType']) -> 'ResultType':
        """Chain operations that return a result."""
        return fn(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Err(Generic[E]):
    """Error result carrying the failure that would have been raised."""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self):
        """Raise the carried error."""
        raise self.error

    def unwrap_or(self, default):
        return default

    def map(self, fn: Callable[[Any], Any]) -> 'ResultType':
        return self

    def and_then(self, fn: Callable[[Any], 'ResultType']) -> 'ResultType':
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


ResultType = Union[Ok[T], Err[E]]
