"""Tests for configuration loading and logging setup."""

import logging

import pytest
import yaml

from mpibridge.config import (
    DEFAULT_LIBRARY_CANDIDATES,
    MPI_MAX_ERROR_STRING,
    BridgeConfig,
    LogLevel,
    get_config,
    set_config,
)
from mpibridge.core.exceptions import ConfigurationError
from mpibridge.log_utils import ROOT_LOGGER_NAME, setup_logging


def test_defaults():
    config = BridgeConfig.load()

    assert config.library.candidates == DEFAULT_LIBRARY_CANDIDATES
    assert config.library.rtld_global is True
    assert config.symbols.data_symbols() == [
        "ompi_mpi_comm_world", "ompi_mpi_comm_self", "ompi_mpi_double",
    ]
    assert config.marshaling.error_string_capacity == MPI_MAX_ERROR_STRING
    assert config.runtime.serialize_calls is True
    assert config.logging.level is LogLevel.INFO


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MPIBRIDGE_LIBRARY", "/opt/ompi/lib/libmpi.so, libmpi.so.40")
    monkeypatch.setenv("MPIBRIDGE_ERROR_STRING_CAPACITY", "512")
    monkeypatch.setenv("MPIBRIDGE_SERIALIZE_CALLS", "false")
    monkeypatch.setenv("MPIBRIDGE_LOG_LEVEL", "DEBUG")

    config = BridgeConfig.load()

    assert config.library.candidates == ["/opt/ompi/lib/libmpi.so", "libmpi.so.40"]
    assert config.marshaling.error_string_capacity == 512
    assert config.runtime.serialize_calls is False
    assert config.logging.level is LogLevel.DEBUG


def test_yaml_file(tmp_path):
    path = tmp_path / "mpibridge.yaml"
    path.write_text(yaml.safe_dump({
        'library': {'candidates': ['libmpi.so.12'], 'rtld_global': False},
        'symbols': {'comm_world': 'custom_world'},
        'logging': {'level': 'WARNING'},
    }))

    config = BridgeConfig.load(str(path))

    assert config.config_file == str(path)
    assert config.library.candidates == ['libmpi.so.12']
    assert config.library.rtld_global is False
    assert config.symbols.comm_world == 'custom_world'
    assert config.symbols.comm_self == 'ompi_mpi_comm_self'
    assert config.logging.level is LogLevel.WARNING


def test_environment_wins_over_yaml(tmp_path, monkeypatch):
    path = tmp_path / "mpibridge.yaml"
    path.write_text(yaml.safe_dump({'marshaling': {'error_string_capacity': 128}}))
    monkeypatch.setenv("MPIBRIDGE_ERROR_STRING_CAPACITY", "1024")

    assert BridgeConfig.load(str(path)).marshaling.error_string_capacity == 1024


def test_roundtrip_through_dict():
    config = BridgeConfig()
    config.library.candidates = ["libmpi.so.40"]

    restored = BridgeConfig._from_dict(config.to_dict())

    assert restored.to_dict() == config.to_dict()


@pytest.mark.parametrize("content", [
    "library: [unclosed",
    "- just\n- a list\n",
    "library:\n  unknown_key: 1\n",
    "marshaling:\n  error_string_capacity: 0\n",
    "logging:\n  level: loud\n",
])
def test_invalid_files_raise(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ConfigurationError):
        BridgeConfig.load(str(path))


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError):
        BridgeConfig.load(str(tmp_path / "absent.yaml"))


def test_process_wide_config(monkeypatch):
    monkeypatch.setenv("MPIBRIDGE_SYM_DOUBLE", "custom_double")

    assert get_config().symbols.double_type == "custom_double"
    assert get_config() is get_config()

    replacement = BridgeConfig()
    set_config(replacement)
    assert get_config() is replacement


def test_setup_logging_prefixes_rank(tmp_path):
    config = BridgeConfig().logging
    config.level = LogLevel.DEBUG
    config.file_path = str(tmp_path / "bridge.log")

    logger = setup_logging(config, rank=3)
    logging.getLogger("mpibridge.runtime.session").debug("hello from rank three")
    for handler in logger.handlers:
        handler.flush()

    assert logger.name == ROOT_LOGGER_NAME
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert "[Rank 3]" in (tmp_path / "bridge.log").read_text()

    # Reconfiguring replaces handlers instead of stacking them
    setup_logging(BridgeConfig().logging)
    assert len(logger.handlers) == 1


@pytest.mark.parametrize("name,value", [
    ("MPIBRIDGE_ERROR_STRING_CAPACITY", "abc"),
    ("MPIBRIDGE_LOG_MAX_SIZE_MB", "big"),
    ("MPIBRIDGE_LOG_LEVEL", "loud"),
])
def test_invalid_environment_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        BridgeConfig.load()


def test_invalid_environment_reaches_process_wide_config(monkeypatch):
    monkeypatch.setenv("MPIBRIDGE_ERROR_STRING_CAPACITY", "abc")

    with pytest.raises(ConfigurationError, match="marshaling"):
        get_config()


@pytest.mark.parametrize("level", list(LogLevel))
def test_setup_logging_maps_every_level(level):
    config = BridgeConfig().logging
    config.level = level

    logger = setup_logging(config)

    assert logger.level == logging.getLevelName(level.value.upper())
    assert logger.handlers[0].level == logger.level
