"""
Process lifecycle of the native message-passing library.

An MPISession owns the symbol registry, the bound functions and the error
translator. Foreign calls are serialized by a lock shared among all sessions
built on the same library. Normal programs use the process-wide default
session through the module functions below; the registry is resolved once
when that session is created.

Lifecycle:
    UNINITIALIZED --init()--> INITIALIZED --finalize()--> FINALIZED

Communicator operations are only valid while INITIALIZED; misuse is
reported as MPIFailure instead of reaching the native library.
"""

from __future__ import annotations

import logging
import sys
import threading
from contextlib import contextmanager, nullcontext
from enum import Enum
from typing import Iterator, Optional, Sequence

from ..config import BridgeConfig, get_config
from ..core.exceptions import MPIFailure
from .arena import Arena
from .bindings import NativeBindings, function_names
from .communicator import Communicator
from .errors import ErrorTranslator
from .library import SharedLibrary, SymbolRegistry, SymbolSource, call_lock

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    FINALIZED = "finalized"


class MPISession:
    """Native library state for one process."""

    def __init__(self, source: Optional[SymbolSource] = None, config: Optional[BridgeConfig] = None):
        """
        Args:
            source: Symbol source; defaults to loading the configured library
            config: Configuration (defaults to the process-wide config)

        Raises:
            SymbolNotFound: if the library or any required symbol is missing
        """
        self.config = config or get_config()
        if source is None:
            source = SharedLibrary.load(self.config.library.candidates, self.config.library.rtld_global)

        symbols = self.config.symbols
        self.registry = SymbolRegistry(source, function_names(), symbols.data_symbols())
        self.bindings = NativeBindings.from_registry(self.registry)
        self.translator = ErrorTranslator(self.bindings, self.config.marshaling.error_string_capacity)
        self.double_type = self.registry.resolve(symbols.double_type)

        self._world = Communicator(self, "world", self.registry.resolve(symbols.comm_world))
        self._self = Communicator(self, "self", self.registry.resolve(symbols.comm_self))

        # Shared with every other session calling into the same source
        self._lock = call_lock(source) if self.config.runtime.serialize_calls else nullcontext()
        self._state = SessionState.UNINITIALIZED

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state is SessionState.INITIALIZED

    def world(self) -> Communicator:
        return self._world

    def self_comm(self) -> Communicator:
        return self._self

    @contextmanager
    def operation(self, name: str) -> Iterator[None]:
        """Serialize a communicator operation and check the lifecycle."""
        with self._lock:
            if self._state is SessionState.UNINITIALIZED:
                raise MPIFailure("message-passing library is not initialized", context={'operation': name})
            if self._state is SessionState.FINALIZED:
                raise MPIFailure("message-passing library has been finalized", context={'operation': name})
            yield

    def init(self, args: Optional[Sequence[str]] = None) -> None:
        """
        Initialize the native library.

        Args:
            args: Process argument list, forwarded verbatim (default sys.argv)
        """
        argv = list(sys.argv if args is None else args)
        operation = "MPI_Init"
        with self._lock:
            if self._state is not SessionState.UNINITIALIZED:
                raise MPIFailure(
                    f"init called while {self._state.value}",
                    context={'operation': operation},
                )
            with Arena(operation) as arena:
                strings = [arena.string(arg) for arg in argv]
                vector = arena.addresses([s.address for s in strings] + [None])
                argc = arena.int32(len(argv))
                argv_ref = arena.pointer_to(vector)
                rc = self.bindings.init(argc.address, argv_ref.address)
            self.translator.translate(rc, operation)
            self._state = SessionState.INITIALIZED
        logger.info(f"Message-passing library initialized with {len(argv)} arguments")

    def finalize(self) -> None:
        """Shut the native library down; no native call may follow."""
        operation = "MPI_Finalize"
        with self._lock:
            if self._state is not SessionState.INITIALIZED:
                raise MPIFailure(
                    f"finalize called while {self._state.value}",
                    context={'operation': operation},
                )
            rc = self.bindings.finalize()
            # Even a failed finalize ends the session
            self._state = SessionState.FINALIZED
            self.translator.translate(rc, operation)
        logger.info("Message-passing library finalized")


# Process-wide default session
_session: Optional[MPISession] = None
_session_lock = threading.Lock()


def get_session() -> MPISession:
    """Get the process-wide session, resolving native symbols on first use."""
    global _session
    if _session is None:
        with _session_lock:
            if _session is None:
                _session = MPISession()
    return _session


def set_session(session: Optional[MPISession]) -> None:
    """Install a session as the process-wide default (e.g. a custom symbol source)."""
    global _session
    with _session_lock:
        _session = session


def init(args: Optional[Sequence[str]] = None) -> None:
    """Initialize the native library for this process."""
    get_session().init(args)


def finalize() -> None:
    """Finalize the native library for this process."""
    get_session().finalize()


def world() -> Communicator:
    return get_session().world()


def self_comm() -> Communicator:
    return get_session().self_comm()
