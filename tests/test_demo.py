"""Tests for the demonstration entry point."""

import re

from fake_mpi import FakeMPIProcess, FakeWorld, make_session
from mpibridge import SessionState
from mpibridge.demo import main, parse_args


def test_parse_args_keeps_unknown_options():
    args, passthrough = parse_args(["--seed", "7", "--mca", "btl", "self"])

    assert args.seed == 7
    assert passthrough == ["--mca", "btl", "self"]


def test_demo_single_process(session, process, capsys):
    rc = main(["mpibridge-demo", "--seed", "1", "--log-level", "warning", "--mca", "btl", "self"],
              session=session)

    assert rc == 0
    assert process.init_args == ["mpibridge-demo", "--mca", "btl", "self"]
    assert session.state is SessionState.FINALIZED

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "=== mpibridge ==="
    assert lines[1] == "size: 1"
    match = re.fullmatch(r"out\[0\] = (\S+)", lines[2])
    assert match is not None
    assert 0.0 <= float(match.group(1)) < 1.0


def test_demo_is_reproducible_with_seed(capsys):
    outputs = []
    for _ in range(2):
        session = make_session(FakeMPIProcess(FakeWorld(1), rank=0))
        main(["mpibridge-demo", "--seed", "5"], session=session)
        outputs.append(capsys.readouterr().out)

    assert outputs[0] == outputs[1]
