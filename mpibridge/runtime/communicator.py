"""
Communicator handles and their blocking operations.

A Communicator wraps one of the two predefined native communicators
("world" and "self") together with the session whose bindings it calls.
The native address never leaves this module.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, MutableSequence, Optional

from ..core.exceptions import MPIFailure
from .arena import Arena, read_double_array, read_int32
from .library import NativeSymbol

if TYPE_CHECKING:
    from .session import MPISession

logger = logging.getLogger(__name__)

# Gather always collects on rank 0
ROOT = 0


class Communicator:
    """Opaque reference to a predefined native communicator."""

    def __init__(self, session: 'MPISession', name: str, handle: NativeSymbol):
        self._session = session
        self._handle = handle
        self.name = name

    @classmethod
    def world(cls, session: Optional['MPISession'] = None) -> 'Communicator':
        """All processes of the job."""
        if session is None:
            from .session import get_session
            session = get_session()
        return session.world()

    @classmethod
    def self(cls, session: Optional['MPISession'] = None) -> 'Communicator':
        """Only the calling process."""
        if session is None:
            from .session import get_session
            session = get_session()
        return session.self_comm()

    def __repr__(self) -> str:
        return f"Communicator({self.name!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Communicator):
            return NotImplemented
        return self._session is other._session and self.name == other.name

    def __hash__(self) -> int:
        return hash((id(self._session), self.name))

    def _read_int(self, arena: Arena, fn: Callable[..., int], operation: str) -> int:
        cell = arena.int32()
        rc = fn(self._handle.address, cell.address)
        return self._session.translator.check(rc, operation).map(lambda _: read_int32(cell)).unwrap()

    def rank(self) -> int:
        """Rank of the calling process in this communicator."""
        operation = "MPI_Comm_rank"
        with self._session.operation(operation):
            with Arena(operation) as arena:
                return self._read_int(arena, self._session.bindings.comm_rank, operation)

    def size(self) -> int:
        """Number of processes in this communicator."""
        operation = "MPI_Comm_size"
        with self._session.operation(operation):
            with Arena(operation) as arena:
                return self._read_int(arena, self._session.bindings.comm_size, operation)

    def gather(self, send_value: float, receive_buffer: MutableSequence[float]) -> None:
        """
        Gather one double from every process onto rank 0.

        Every process passes its ``send_value``. On the root,
        ``receive_buffer`` must hold exactly ``size()`` elements and is
        overwritten in rank order once the collective has succeeded. Other
        processes may pass any buffer; its contents are never read or
        modified.

        Raises:
            MPIFailure: on a non-zero native status, or when the root's
                buffer length does not match the communicator size (the
                collective still completes so peers are not left waiting)
        """
        operation = "MPI_Gather"
        session = self._session
        bindings = session.bindings

        with session.operation(operation):
            with Arena(operation) as arena:
                my_rank = self._read_int(arena, bindings.comm_rank, "MPI_Comm_rank")
                is_root = my_rank == ROOT

                if is_root:
                    # Stage exactly one slot per process so the native write
                    # can never run past the buffer
                    staging = arena.double_array(
                        self._read_int(arena, bindings.comm_size, "MPI_Comm_size"))
                else:
                    # The receive buffer is only significant at the root
                    staging = arena.null()

                send = arena.doubles([float(send_value)])
                double_type = session.double_type.address
                rc = bindings.gather(
                    send.address, 1, double_type,
                    staging.address, 1, double_type,
                    ROOT, self._handle.address,
                )
                session.translator.translate(rc, operation)

                if not is_root:
                    return
                values = read_double_array(staging)

            if len(receive_buffer) != len(values):
                raise MPIFailure(
                    f"receive buffer holds {len(receive_buffer)} elements, "
                    f"communicator '{self.name}' has {len(values)} processes",
                    context={'operation': operation},
                )
            receive_buffer[:] = values
            logger.debug(f"Gathered {len(values)} values on {self.name}")

    def barrier(self) -> None:
        """Block until every process of the communicator has entered."""
        operation = "MPI_Barrier"
        with self._session.operation(operation):
            rc = self._session.bindings.barrier(self._handle.address)
            self._session.translator.translate(rc, operation)
