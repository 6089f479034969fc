"""mpibridge runtime: native library access, marshaling and communicators.

The pieces stack bottom-up: the symbol registry resolves the native library
once, bindings attach fixed ctypes signatures, arenas stage memory for each
call, the error translator turns status codes into MPIFailure, and sessions
and communicators expose the blocking operations.
"""

from .arena import (
    Arena,
    NativeBuffer,
    read_double_array,
    read_int32,
    read_string,
    with_arena,
    write_double_array,
    write_int32,
)
from .bindings import MPI_FUNCTIONS, NativeBindings, NativeFunction, bind
from .communicator import ROOT, Communicator
from .errors import ErrorTranslator
from .library import NativeSymbol, SharedLibrary, SymbolRegistry
from .session import (
    MPISession,
    SessionState,
    finalize,
    get_session,
    init,
    self_comm,
    set_session,
    world,
)

__all__ = [
    "Arena",
    "NativeBuffer",
    "read_double_array",
    "read_int32",
    "read_string",
    "with_arena",
    "write_double_array",
    "write_int32",
    "MPI_FUNCTIONS",
    "NativeBindings",
    "NativeFunction",
    "bind",
    "ROOT",
    "Communicator",
    "ErrorTranslator",
    "NativeSymbol",
    "SharedLibrary",
    "SymbolRegistry",
    "MPISession",
    "SessionState",
    "finalize",
    "get_session",
    "init",
    "self_comm",
    "set_session",
    "world",
]
