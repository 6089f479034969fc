"""
Native library loading and symbol resolution.

The registry resolves every entry point and data symbol the layer needs in a
single eager pass, so a missing symbol surfaces at startup instead of on
first use.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..core.exceptions import SymbolNotFound

logger = logging.getLogger(__name__)


class SymbolSource(Protocol):
    """Anything that maps a symbol name to its address."""

    def lookup(self, name: str) -> Optional[int]:
        ...


@dataclass(frozen=True)
class NativeSymbol:
    """Resolved foreign entry point or global datum."""
    name: str
    address: int

    def __repr__(self) -> str:
        return f"NativeSymbol({self.name!r})"


def _load_first(names: List[str], mode: int) -> Optional[ctypes.CDLL]:
    """Load the first available library from a list of names."""
    for name in names:
        try:
            lib = ctypes.CDLL(name, mode=mode)
            logger.debug(f"Successfully loaded native library: {name}")
            return lib
        except OSError as e:
            logger.debug(f"Failed to load {name}: {e}")
            continue
    return None


# Loaded libraries by dlopen handle
_libraries: Dict[int, 'SharedLibrary'] = {}
_libraries_lock = threading.Lock()

# One call lock per symbol source, shared by every session using it
_call_locks: 'weakref.WeakKeyDictionary[Any, threading.RLock]' = weakref.WeakKeyDictionary()
_call_locks_lock = threading.Lock()


def call_lock(source: SymbolSource) -> threading.RLock:
    """
    Lock serializing foreign calls into ``source``.

    Sessions built on the same source (in particular the same loaded
    library) get the same lock; distinct sources get distinct locks.
    """
    with _call_locks_lock:
        lock = _call_locks.get(source)
        if lock is None:
            lock = _call_locks[source] = threading.RLock()
        return lock


class SharedLibrary:
    """A loaded shared object answering dlsym-style lookups."""

    def __init__(self, lib: ctypes.CDLL):
        self._lib = lib
        self.name = lib._name

    @classmethod
    def load(cls, candidates: Iterable[str], rtld_global: bool = True) -> 'SharedLibrary':
        """
        Load the first loadable candidate.

        Args:
            candidates: Library names or paths, tried in order
            rtld_global: Make the library's symbols globally visible

        Raises:
            SymbolNotFound: if no candidate can be loaded
        """
        names = list(candidates)
        found = ctypes.util.find_library("mpi")
        if found and found not in names:
            names.append(found)

        mode = ctypes.RTLD_GLOBAL if rtld_global else ctypes.RTLD_LOCAL
        lib = _load_first(names, mode)
        if lib is None:
            raise SymbolNotFound(
                "native message-passing library could not be loaded",
                context={'candidates': ", ".join(names)},
            )

        # dlopen hands back the same handle for an already loaded object
        with _libraries_lock:
            library = _libraries.get(lib._handle)
            if library is None:
                library = _libraries[lib._handle] = cls(lib)
                logger.info(f"Loaded native library {lib._name}")
        return library

    def lookup(self, name: str) -> Optional[int]:
        # in_dll performs dlsym, which serves functions and data alike
        try:
            return ctypes.addressof(ctypes.c_char.in_dll(self._lib, name))
        except ValueError:
            return None


class SymbolRegistry:
    """
    Process-lifetime cache of resolved native symbols.

    All names are resolved at construction; afterwards the registry is
    read-only and ``resolve`` never touches the native library again.
    """

    def __init__(self, source: SymbolSource, function_names: Iterable[str],
                 data_names: Iterable[str]):
        self.source = source
        self._symbols: Dict[str, NativeSymbol] = {}

        for name in list(function_names) + list(data_names):
            if name in self._symbols:
                continue
            address = source.lookup(name)
            if not address:
                logger.error(f"Required native symbol missing: {name}")
                raise SymbolNotFound(f"native symbol '{name}' not found", context={'symbol': name})
            self._symbols[name] = NativeSymbol(name=name, address=address)

        logger.debug(f"Resolved {len(self._symbols)} native symbols")

    def resolve(self, name: str) -> NativeSymbol:
        """Return the cached handle for ``name``."""
        try:
            return self._symbols[name]
        except KeyError:
            raise SymbolNotFound(
                f"native symbol '{name}' was not resolved at startup",
                context={'symbol': name},
            ) from None

    def __contains__(self, name: str) -> bool:
        return name in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)
