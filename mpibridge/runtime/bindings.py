"""
Fixed ctypes signatures for the native entry points.

Each native function gets exactly one prototype, built once from the
registry and shared by every caller. Addresses (communicators, datatypes,
buffers) are passed as machine words.
"""

from __future__ import annotations

import ctypes
import logging
from dataclasses import dataclass
from typing import Any, Callable, List

from .library import NativeSymbol, SymbolRegistry

logger = logging.getLogger(__name__)

# Type Definitions
mpi_status_t = ctypes.c_int
mpi_comm_t = ctypes.c_void_p
mpi_datatype_t = ctypes.c_void_p
address_t = ctypes.c_void_p


@dataclass(frozen=True)
class NativeFunction:
    name: str
    restype: Any
    argtypes: List[Any]


MPI_INIT = NativeFunction("MPI_Init", mpi_status_t, [
    address_t,          # int *argc
    address_t,          # char ***argv
])
MPI_FINALIZE = NativeFunction("MPI_Finalize", mpi_status_t, [])
MPI_COMM_RANK = NativeFunction("MPI_Comm_rank", mpi_status_t, [mpi_comm_t, address_t])
MPI_COMM_SIZE = NativeFunction("MPI_Comm_size", mpi_status_t, [mpi_comm_t, address_t])
MPI_ERROR_STRING = NativeFunction("MPI_Error_string", mpi_status_t, [
    ctypes.c_int,       # errorcode
    address_t,          # char *string
    address_t,          # int *resultlen
])
MPI_GATHER = NativeFunction("MPI_Gather", mpi_status_t, [
    address_t,          # sendbuf
    ctypes.c_int,       # sendcount
    mpi_datatype_t,     # sendtype
    address_t,          # recvbuf
    ctypes.c_int,       # recvcount
    mpi_datatype_t,     # recvtype
    ctypes.c_int,       # root
    mpi_comm_t,         # comm
])
MPI_BARRIER = NativeFunction("MPI_Barrier", mpi_status_t, [mpi_comm_t])

MPI_FUNCTIONS = [
    MPI_INIT,
    MPI_FINALIZE,
    MPI_COMM_RANK,
    MPI_COMM_SIZE,
    MPI_ERROR_STRING,
    MPI_GATHER,
    MPI_BARRIER,
]


def bind(symbol: NativeSymbol, function: NativeFunction) -> Callable[..., int]:
    """Build a C-calling-convention prototype for ``function`` at ``symbol``."""
    prototype = ctypes.CFUNCTYPE(function.restype, *function.argtypes)
    return prototype(symbol.address)


@dataclass(frozen=True)
class NativeBindings:
    """One bound callable per native entry point."""
    init: Callable[..., int]
    finalize: Callable[..., int]
    comm_rank: Callable[..., int]
    comm_size: Callable[..., int]
    error_string: Callable[..., int]
    gather: Callable[..., int]
    barrier: Callable[..., int]

    @classmethod
    def from_registry(cls, registry: SymbolRegistry) -> 'NativeBindings':
        def _bind(function: NativeFunction):
            return bind(registry.resolve(function.name), function)

        bindings = cls(
            init=_bind(MPI_INIT),
            finalize=_bind(MPI_FINALIZE),
            comm_rank=_bind(MPI_COMM_RANK),
            comm_size=_bind(MPI_COMM_SIZE),
            error_string=_bind(MPI_ERROR_STRING),
            gather=_bind(MPI_GATHER),
            barrier=_bind(MPI_BARRIER),
        )
        logger.debug(f"Bound {len(MPI_FUNCTIONS)} native functions")
        return bindings


def function_names() -> List[str]:
    return [f.name for f in MPI_FUNCTIONS]
