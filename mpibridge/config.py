"""
Centralized configuration for mpibridge.

Values come from defaults, an optional YAML file, and environment variables
(environment wins).
"""

from dataclasses import dataclass, field
from enum import Enum
import os
import threading
from typing import Any, Dict, List, Optional

import yaml

from .core.exceptions import ConfigurationError

# Open MPI's MPI_MAX_ERROR_STRING
MPI_MAX_ERROR_STRING = 256

DEFAULT_LIBRARY_CANDIDATES = [
    "libmpi.so",
    "libmpi.so.40",
    "libmpi.so.12",
]


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, 'true' if default else 'false').lower() == 'true'


class LogLevel(Enum):
    """Log levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class LibraryConfig:
    """Where to find the native message-passing library."""
    candidates: List[str] = field(default_factory=lambda: list(DEFAULT_LIBRARY_CANDIDATES))
    # Open MPI loads its components with dlopen and needs libmpi's symbols global
    rtld_global: bool = True

    @classmethod
    def from_env(cls) -> 'LibraryConfig':
        """Load library config from environment variables."""
        raw = os.getenv('MPIBRIDGE_LIBRARY')
        candidates = [c.strip() for c in raw.split(',') if c.strip()] if raw else None
        return cls(
            candidates=candidates or list(DEFAULT_LIBRARY_CANDIDATES),
            rtld_global=_env_bool('MPIBRIDGE_RTLD_GLOBAL', True),
        )


@dataclass
class SymbolConfig:
    """Names of the predefined data symbols exported by the native library."""
    comm_world: str = "ompi_mpi_comm_world"
    comm_self: str = "ompi_mpi_comm_self"
    double_type: str = "ompi_mpi_double"

    @classmethod
    def from_env(cls) -> 'SymbolConfig':
        return cls(
            comm_world=os.getenv('MPIBRIDGE_SYM_COMM_WORLD', 'ompi_mpi_comm_world'),
            comm_self=os.getenv('MPIBRIDGE_SYM_COMM_SELF', 'ompi_mpi_comm_self'),
            double_type=os.getenv('MPIBRIDGE_SYM_DOUBLE', 'ompi_mpi_double'),
        )

    def data_symbols(self) -> List[str]:
        return [self.comm_world, self.comm_self, self.double_type]


@dataclass
class MarshalingConfig:
    """Sizes used when staging native buffers."""
    error_string_capacity: int = MPI_MAX_ERROR_STRING

    @classmethod
    def from_env(cls) -> 'MarshalingConfig':
        return cls(
            error_string_capacity=int(os.getenv('MPIBRIDGE_ERROR_STRING_CAPACITY', MPI_MAX_ERROR_STRING)),
        )


@dataclass
class RuntimeConfig:
    """Runtime behaviour of sessions."""
    # Serialize every foreign call through the session lock
    serialize_calls: bool = True

    @classmethod
    def from_env(cls) -> 'RuntimeConfig':
        return cls(
            serialize_calls=_env_bool('MPIBRIDGE_SERIALIZE_CALLS', True),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size_mb: int = 100
    backup_count: int = 5

    @classmethod
    def from_env(cls) -> 'LoggingConfig':
        """Load logging config from environment variables."""
        return cls(
            level=LogLevel(os.getenv('MPIBRIDGE_LOG_LEVEL', 'info').lower()),
            format=os.getenv('MPIBRIDGE_LOG_FORMAT', "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            file_path=os.getenv('MPIBRIDGE_LOG_FILE'),
            max_file_size_mb=int(os.getenv('MPIBRIDGE_LOG_MAX_SIZE_MB', 100)),
            backup_count=int(os.getenv('MPIBRIDGE_LOG_BACKUP_COUNT', 5)),
        )


# Environment variables that override each section when present
_SECTION_ENV_PREFIXES = {
    'library': ('MPIBRIDGE_LIBRARY', 'MPIBRIDGE_RTLD_GLOBAL'),
    'symbols': ('MPIBRIDGE_SYM_',),
    'marshaling': ('MPIBRIDGE_ERROR_STRING_CAPACITY',),
    'runtime': ('MPIBRIDGE_SERIALIZE_CALLS',),
    'logging': ('MPIBRIDGE_LOG_',),
}


_SECTION_CLASSES = {
    'library': LibraryConfig,
    'symbols': SymbolConfig,
    'marshaling': MarshalingConfig,
    'runtime': RuntimeConfig,
    'logging': LoggingConfig,
}


def _section_in_env(section: str) -> bool:
    prefixes = _SECTION_ENV_PREFIXES[section]
    return any(key.startswith(prefixes) for key in os.environ)


@dataclass
class BridgeConfig:
    """Main configuration class for mpibridge."""
    library: LibraryConfig = field(default_factory=LibraryConfig)
    symbols: SymbolConfig = field(default_factory=SymbolConfig)
    marshaling: MarshalingConfig = field(default_factory=MarshalingConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file: Optional[str] = None

    def validate(self) -> 'BridgeConfig':
        if not self.library.candidates:
            raise ConfigurationError("at least one library candidate is required")
        if self.marshaling.error_string_capacity <= 0:
            raise ConfigurationError(
                "error string capacity must be positive",
                context={'error_string_capacity': self.marshaling.error_string_capacity},
            )
        return self

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'BridgeConfig':
        """
        Load configuration from a YAML file and/or environment variables.

        Args:
            path: Path to YAML config file (optional)

        Returns:
            BridgeConfig instance with loaded settings
        """
        config = cls()

        if path:
            if not os.path.exists(path):
                raise ConfigurationError("config file not found", context={'path': path})
            try:
                with open(path, 'r') as f:
                    yaml_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"invalid YAML: {e}", context={'path': path}) from e

            if yaml_data:
                if not isinstance(yaml_data, dict):
                    raise ConfigurationError("config root must be a mapping", context={'path': path})
                config = cls._from_dict(yaml_data)
            config.config_file = path

        # Environment overrides only the sections it mentions
        for section, section_cls in _SECTION_CLASSES.items():
            if not _section_in_env(section):
                continue
            try:
                setattr(config, section, section_cls.from_env())
            except ValueError as e:
                raise ConfigurationError(f"invalid {section} settings: {e}") from e

        return config.validate()

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> 'BridgeConfig':
        """Create config from dictionary (YAML data)."""
        try:
            logging_data = dict(data.get('logging', {}))
            if 'level' in logging_data:
                logging_data['level'] = LogLevel(str(logging_data['level']).lower())
            return cls(
                library=LibraryConfig(**data.get('library', {})),
                symbols=SymbolConfig(**data.get('symbols', {})),
                marshaling=MarshalingConfig(**data.get('marshaling', {})),
                runtime=RuntimeConfig(**data.get('runtime', {})),
                logging=LoggingConfig(**logging_data),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            'library': {
                'candidates': list(self.library.candidates),
                'rtld_global': self.library.rtld_global,
            },
            'symbols': {
                'comm_world': self.symbols.comm_world,
                'comm_self': self.symbols.comm_self,
                'double_type': self.symbols.double_type,
            },
            'marshaling': {
                'error_string_capacity': self.marshaling.error_string_capacity,
            },
            'runtime': {
                'serialize_calls': self.runtime.serialize_calls,
            },
            'logging': {
                'level': self.logging.level.value,
                'format': self.logging.format,
                'file_path': self.logging.file_path,
                'max_file_size_mb': self.logging.max_file_size_mb,
                'backup_count': self.logging.backup_count,
            },
        }


_config: Optional[BridgeConfig] = None
_config_lock = threading.Lock()


def get_config() -> BridgeConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = BridgeConfig.load(os.getenv('MPIBRIDGE_CONFIG'))
    return _config


def set_config(config: Optional[BridgeConfig]) -> None:
    """Replace the process-wide configuration (None resets to lazy loading)."""
    global _config
    with _config_lock:
        _config = config.validate() if config is not None else None
