"""
Pytest configuration and shared fixtures.

Provides:
- Simulated native library (single process) and sessions bound to it
- Isolation of the process-wide config and default session
"""

import logging
import os
import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
TESTS = Path(__file__).resolve().parent
if str(TESTS) not in sys.path:
    sys.path.insert(0, str(TESTS))

from fake_mpi import FakeMPIProcess, FakeWorld, make_session  # noqa: E402
from mpibridge.config import set_config  # noqa: E402
from mpibridge.runtime.session import set_session  # noqa: E402


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def pytest_configure(config):
    """Register markers."""
    config.addinivalue_line(
        "markers", "collective: runs several simulated ranks on threads"
    )
    config.addinivalue_line(
        "markers", "native: requires a real MPI library (set MPIBRIDGE_NATIVE_TEST=1)"
    )


@pytest.fixture(autouse=True)
def reset_bridge_state(monkeypatch):
    """Keep the process-wide config and session out of the environment."""
    for key in list(os.environ):
        if key.startswith('MPIBRIDGE_'):
            monkeypatch.delenv(key, raising=False)
    set_config(None)
    set_session(None)
    yield
    set_config(None)
    set_session(None)
    # setup_logging may have bound handlers to captured streams
    bridge_logger = logging.getLogger("mpibridge")
    for handler in list(bridge_logger.handlers):
        bridge_logger.removeHandler(handler)
        handler.close()
    bridge_logger.setLevel(logging.NOTSET)


@pytest.fixture
def process():
    """A single simulated process in a world of one."""
    return FakeMPIProcess(FakeWorld(1), rank=0)


@pytest.fixture
def session(process):
    """Uninitialized session bound to the simulated process."""
    return make_session(process)


@pytest.fixture
def live_session(session):
    """Initialized session; finalized afterwards if the test did not."""
    session.init(["prog"])
    yield session
    if session.initialized:
        session.finalize()


@pytest.fixture
def rng():
    return np.random.default_rng(42)
