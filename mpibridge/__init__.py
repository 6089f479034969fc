"""
mpibridge: a ctypes veneer over the native MPI library.

    import mpibridge

    mpibridge.init()
    comm = mpibridge.world()
    rank, size = comm.rank(), comm.size()
    out = [0.0] * size if rank == 0 else []
    comm.gather(float(rank), out)
    comm.barrier()
    mpibridge.finalize()

Importing the package does not touch the native library; the library is
loaded and every symbol resolved when the default session is first needed.
Failures surface as MPIFailure, or SymbolNotFound when the library or one of
its symbols is missing.
"""

from .config import BridgeConfig, get_config, set_config
from .core.exceptions import (
    ArenaClosedError,
    BridgeException,
    ConfigurationError,
    MPIFailure,
    SymbolNotFound,
)
from .runtime import (
    ROOT,
    Communicator,
    MPISession,
    SessionState,
    finalize,
    get_session,
    init,
    self_comm,
    set_session,
    world,
)

__version__ = "0.1.0"

__all__ = [
    "BridgeConfig",
    "get_config",
    "set_config",
    "ArenaClosedError",
    "BridgeException",
    "ConfigurationError",
    "MPIFailure",
    "SymbolNotFound",
    "ROOT",
    "Communicator",
    "MPISession",
    "SessionState",
    "finalize",
    "get_session",
    "init",
    "self_comm",
    "set_session",
    "world",
]
