"""
Scoped marshaling arena.

An Arena owns every native-accessible buffer staged for one logical
operation. Buffers stay at a fixed address while the arena is open and
become unusable once it closes, whether the operation returned or raised.

Example:
    >>> with Arena() as arena:
    ...     cell = arena.int32()
    ...     rc = bindings.comm_size(comm_address, cell.address)
    ...     size = read_int32(cell)
"""

from __future__ import annotations

import ctypes
import logging
from typing import Any, Callable, List, Optional, Sequence, TypeVar, Union

from ..core.exceptions import ArenaClosedError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class NativeBuffer:
    """A region of arena memory, or the null pointer."""

    __slots__ = ("_arena", "_storage", "length", "kind")

    def __init__(self, arena: 'Arena', storage: Optional[Any], length: int, kind: str):
        self._arena = arena
        self._storage = storage
        self.length = length
        self.kind = kind

    @property
    def is_null(self) -> bool:
        return self.kind == "null"

    @property
    def address(self) -> Optional[int]:
        """Address to hand to a native call; None marshals as NULL."""
        storage = self.storage
        if storage is None:
            return None
        return ctypes.addressof(storage)

    @property
    def storage(self) -> Optional[Any]:
        if self._arena.closed:
            raise ArenaClosedError(
                "buffer used after its arena was released",
                context={'kind': self.kind},
            )
        return self._storage

    @property
    def nbytes(self) -> int:
        return 0 if self._storage is None else ctypes.sizeof(self._storage)

    def __repr__(self) -> str:
        state = "null" if self.is_null else f"{self.length} x {self.kind}"
        return f"NativeBuffer({state})"


class Arena:
    """Allocation region for exactly one logical operation."""

    def __init__(self, label: str = "operation"):
        self.label = label
        self._buffers: List[NativeBuffer] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> 'Arena':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        nbytes = sum(b.nbytes for b in self._buffers)
        self._closed = True
        for buffer in self._buffers:
            buffer._storage = None
        self._buffers.clear()
        logger.debug(f"Released arena for {self.label} ({nbytes} bytes)")

    def _track(self, storage: Optional[Any], length: int, kind: str) -> NativeBuffer:
        if self._closed:
            raise ArenaClosedError("allocation from a released arena", context={'label': self.label})
        buffer = NativeBuffer(self, storage, length, kind)
        self._buffers.append(buffer)
        return buffer

    # Allocation

    def null(self) -> NativeBuffer:
        return self._track(None, 0, "null")

    def int32(self, value: int = 0) -> NativeBuffer:
        return self._track(ctypes.c_int32(value), 1, "int32")

    def double_array(self, count: int) -> NativeBuffer:
        """Zero-filled doubles; a zero count yields the null pointer."""
        if count < 0:
            raise ValueError(f"negative element count: {count}")
        if count == 0:
            return self.null()
        return self._track((ctypes.c_double * count)(), count, "double")

    def doubles(self, values: Sequence[float]) -> NativeBuffer:
        buffer = self.double_array(len(values))
        if not buffer.is_null:
            write_double_array(buffer, values)
        return buffer

    def char_buffer(self, capacity: int) -> NativeBuffer:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive: {capacity}")
        return self._track(ctypes.create_string_buffer(capacity), capacity, "char")

    def string(self, text: Union[str, bytes], encoding: str = "utf-8") -> NativeBuffer:
        """NUL-terminated copy of ``text``."""
        data = text.encode(encoding) if isinstance(text, str) else bytes(text)
        return self._track(ctypes.create_string_buffer(data), len(data) + 1, "char")

    def addresses(self, values: Sequence[Optional[int]]) -> NativeBuffer:
        """Array of machine-word addresses (None entries are NULL)."""
        if not values:
            return self.null()
        storage = (ctypes.c_void_p * len(values))(*values)
        return self._track(storage, len(values), "address")

    def pointer_to(self, buffer: NativeBuffer) -> NativeBuffer:
        """A single address cell holding ``buffer``'s address."""
        return self.addresses([buffer.address])


def with_arena(fn: Callable[[Arena], T], label: str = "operation") -> T:
    """Run ``fn`` with a fresh arena that is released when it returns or fails."""
    with Arena(label) as arena:
        return fn(arena)


# Typed access

def _require(buffer: NativeBuffer, kind: str) -> Any:
    storage = buffer.storage
    if buffer.kind != kind:
        raise TypeError(f"expected a {kind} buffer, got {buffer.kind}")
    return storage


def write_int32(buffer: NativeBuffer, value: int) -> None:
    _require(buffer, "int32").value = value


def read_int32(buffer: NativeBuffer) -> int:
    """Value of a 4-byte cell in native byte order."""
    return int(_require(buffer, "int32").value)


def write_double_array(buffer: NativeBuffer, values: Sequence[float]) -> None:
    if buffer.is_null:
        if len(values):
            raise ValueError("cannot write values into a null buffer")
        return
    storage = _require(buffer, "double")
    if len(values) != buffer.length:
        raise ValueError(f"expected {buffer.length} values, got {len(values)}")
    for i, value in enumerate(values):
        storage[i] = float(value)


def read_double_array(buffer: NativeBuffer) -> List[float]:
    storage = buffer.storage
    if buffer.is_null:
        return []
    if buffer.kind != "double":
        raise TypeError(f"expected a double buffer, got {buffer.kind}")
    return list(storage)


def read_string(buffer: NativeBuffer, length: Optional[int] = None, encoding: str = "utf-8") -> str:
    """Decode a char buffer, up to ``length`` bytes or the first NUL."""
    raw = _require(buffer, "char").raw
    if length is not None:
        raw = raw[:max(0, min(length, buffer.length))]
    raw = raw.split(b"\0", 1)[0]
    return raw.decode(encoding, errors="replace")
