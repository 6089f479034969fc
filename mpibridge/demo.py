#!/usr/bin/env python3
"""
Gather one random double per process onto rank 0.

Run under the MPI launcher, e.g. ``mpirun -n 4 mpibridge-demo``. Options not
recognised here are forwarded to the native library's own argument parsing.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

import numpy as np

from .config import BridgeConfig, LogLevel
from .log_utils import setup_logging
from .runtime.communicator import ROOT
from .runtime.session import MPISession, set_session


def parse_args(argv: List[str]) -> tuple[argparse.Namespace, List[str]]:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--log-level", choices=[level.value for level in LogLevel],
                        help="Override the configured log level")
    parser.add_argument("--seed", type=int, help="Base seed (offset by rank)")
    return parser.parse_known_args(argv)


def main(argv: Optional[List[str]] = None, session: Optional[MPISession] = None) -> int:
    argv = list(sys.argv if argv is None else argv)
    args, passthrough = parse_args(argv[1:])

    config = BridgeConfig.load(args.config)
    if args.log_level:
        config.logging.level = LogLevel(args.log_level)

    if session is None:
        session = MPISession(config=config)
        set_session(session)

    print("=== mpibridge ===")
    session.init(argv[:1] + passthrough)

    comm = session.world()
    my_rank = comm.rank()
    size = comm.size()
    setup_logging(config.logging, rank=my_rank)

    out = np.zeros(0)
    if my_rank == ROOT:
        print(f"size: {size}")
        out = np.zeros(size)

    seed = None if args.seed is None else args.seed + my_rank
    rng = np.random.default_rng(seed)
    comm.gather(float(rng.random()), out)
    comm.barrier()

    if my_rank == ROOT:
        for i, value in enumerate(out):
            print(f"out[{i}] = {value}")

    session.finalize()
    return 0


if __name__ == "__main__":
    sys.exit(main())
