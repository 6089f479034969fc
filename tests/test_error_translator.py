"""Tests for status code translation."""

import logging

import pytest

from fake_mpi import MPI_ERR_COMM, MPI_ERR_OTHER, FakeMPIProcess, FakeWorld, make_session
from mpibridge.core.exceptions import MPIFailure
from mpibridge.runtime.errors import ErrorTranslator, fallback_message


def test_success_is_a_no_op(session, process):
    session.translator.translate(0)

    assert session.translator.check(0).is_ok()
    # No message lookup for a successful status
    assert "MPI_Error_string" not in process.calls


def test_native_message_is_used(session):
    with pytest.raises(MPIFailure) as exc_info:
        session.translator.translate(MPI_ERR_COMM, "MPI_Barrier")

    assert exc_info.value.message == "MPI_ERR_COMM: invalid communicator"
    assert exc_info.value.context == {'operation': 'MPI_Barrier'}


def test_unknown_code_falls_back_to_number(session, process):
    with pytest.raises(MPIFailure) as exc_info:
        session.translator.translate(4242)

    assert exc_info.value.message == "native error 4242"
    assert process.calls == ["MPI_Error_string"]


def test_failing_error_string_keeps_original_code():
    process = FakeMPIProcess(FakeWorld(1), rank=0, broken_error_string=True)
    session = make_session(process)

    result = session.translator.check(MPI_ERR_OTHER, "MPI_Gather")

    assert result.is_err()
    assert result.error.message == fallback_message(MPI_ERR_OTHER)
    assert str(MPI_ERR_OTHER) in result.error.message


@pytest.mark.parametrize("status", [1, 3, 5, 13, 16, 17, 99, -1])
def test_nonzero_status_always_has_message(session, status):
    result = session.translator.check(status)

    assert result.is_err()
    assert result.error.message


def test_code_is_not_exposed_in_context(session):
    result = session.translator.check(MPI_ERR_COMM, "MPI_Comm_rank")

    assert result.error.context == {'operation': 'MPI_Comm_rank'}


def test_failures_are_logged(session, caplog):
    with caplog.at_level(logging.WARNING, logger="mpibridge.runtime.errors"):
        session.translator.check(MPI_ERR_COMM, "MPI_Barrier")

    assert "MPI_Barrier failed: MPI_ERR_COMM" in caplog.text


def test_translator_uses_configured_capacity(session):
    translator = ErrorTranslator(session.bindings, capacity=512)

    assert translator.describe(MPI_ERR_COMM) == "MPI_ERR_COMM: invalid communicator"
