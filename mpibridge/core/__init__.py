"""Core types shared by the mpibridge runtime."""

from .exceptions import (
    ArenaClosedError,
    BridgeException,
    ConfigurationError,
    Err,
    MPIFailure,
    Ok,
    ResultType,
    SymbolNotFound,
)

__all__ = [
    "ArenaClosedError",
    "BridgeException",
    "ConfigurationError",
    "Err",
    "MPIFailure",
    "Ok",
    "ResultType",
    "SymbolNotFound",
]
