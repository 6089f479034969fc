"""Translation of native status codes into MPIFailure."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import MPI_MAX_ERROR_STRING
from ..core.exceptions import Err, MPIFailure, Ok, ResultType
from .arena import Arena, read_int32, read_string
from .bindings import NativeBindings

logger = logging.getLogger(__name__)

MPI_SUCCESS = 0


def fallback_message(status: int) -> str:
    return f"native error {status}"


class ErrorTranslator:
    """
    Converts status codes into structured failures.

    The message comes from the native error-string entry point; when that
    lookup itself fails the message falls back to the numeric code.
    """

    def __init__(self, bindings: NativeBindings, capacity: int = MPI_MAX_ERROR_STRING):
        self._bindings = bindings
        self.capacity = capacity

    def describe(self, status: int) -> str:
        """Human-readable text for ``status`` (never empty)."""
        with Arena("error_string") as arena:
            length = arena.int32()
            message = arena.char_buffer(self.capacity)
            rc = self._bindings.error_string(status, message.address, length.address)
            if rc != MPI_SUCCESS:
                logger.debug(f"Error string lookup for {status} failed with {rc}")
                return fallback_message(status)
            text = read_string(message, read_int32(length)).strip()
        return text or fallback_message(status)

    def check(self, status: int, operation: Optional[str] = None) -> ResultType[None, MPIFailure]:
        if status == MPI_SUCCESS:
            return Ok(None)
        text = self.describe(status)
        context = {'operation': operation} if operation else None
        logger.warning(f"{operation or 'native call'} failed: {text}")
        return Err(MPIFailure(text, context=context))

    def translate(self, status: int, operation: Optional[str] = None) -> None:
        """No-op for success; raises MPIFailure otherwise."""
        self.check(status, operation).unwrap()
