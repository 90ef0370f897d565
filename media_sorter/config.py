"""Configuration management for media sorting."""

import re
import yaml
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Any, Optional, Pattern
import logging

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_FORMAT = "%Y/%Y-%m-%d"
DEFAULT_DECODER_WORKERS = 4
DEFAULT_EXECUTOR_WORKERS = 2
DEFAULT_CANDIDATE_BUFFER = 32
DEFAULT_REQUEST_BUFFER = 16
MAX_WORKERS = 32

CONFIG_FILE_NAMES = ("media_sorter.local.yml", "media_sorter.yml")


class TransferMode(Enum):
    """Filesystem operation applied to each transfer request."""
    COPY = "copy"
    MOVE = "move"
    DELETE = "delete"


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings for a single sorting run.

    Built once at startup and handed to every pipeline stage.
    """
    source_root: Path
    dest_root: Path
    mode: TransferMode = TransferMode.MOVE
    dry_run: bool = False
    allow_larger: bool = False
    exclude: Optional[Pattern] = None
    default_format: str = DEFAULT_FOLDER_FORMAT
    raw_format: str = DEFAULT_FOLDER_FORMAT
    movie_format: str = DEFAULT_FOLDER_FORMAT
    decoder_workers: int = DEFAULT_DECODER_WORKERS
    executor_workers: Optional[int] = None
    candidate_buffer: int = DEFAULT_CANDIDATE_BUFFER
    request_buffer: int = DEFAULT_REQUEST_BUFFER
    strict_metadata: bool = False
    min_free_space_gb: int = 0

    def __post_init__(self):
        if not 1 <= self.decoder_workers <= MAX_WORKERS:
            raise ValueError(f"Invalid decoder_workers: {self.decoder_workers} (must be 1-{MAX_WORKERS})")
        if self.executor_workers is not None and not 1 <= self.executor_workers <= MAX_WORKERS:
            raise ValueError(f"Invalid executor_workers: {self.executor_workers} (must be 1-{MAX_WORKERS})")
        if self.candidate_buffer < 1 or self.request_buffer < 1:
            raise ValueError("Queue buffers must hold at least one item")
        if self.min_free_space_gb < 0:
            raise ValueError(f"Invalid min_free_space_gb: {self.min_free_space_gb}")

    @property
    def executor_count(self) -> int:
        """Number of executor workers; deletions run on a single worker unless overridden."""
        if self.executor_workers is not None:
            return self.executor_workers
        if self.mode is TransferMode.DELETE:
            return 1
        return DEFAULT_EXECUTOR_WORKERS


class Config:
    """Manages sorter settings loaded from an optional YAML file."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config file. If None, searches standard locations
                and falls back to built-in defaults when nothing is found.
        """
        self.config_path = config_path or self._find_config_file()
        self.config: Dict[str, Any] = {}
        if self.config_path:
            self._load_config()
        else:
            logger.debug("No configuration file found, using defaults")

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations."""
        search_dirs = [Path.cwd(), Path.home() / ".config" / "media-sorter"]

        for directory in search_dirs:
            for name in CONFIG_FILE_NAMES:
                config_file = directory / name
                if config_file.exists():
                    logger.info(f"Found config file: {config_file}")
                    return str(config_file.resolve())

        return None

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {self.config_path}")
        except Exception as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'media_sorter.formats.raw'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
        except (KeyError, TypeError):
            return default
        return default if value is None else value

    def get_mode(self) -> str:
        return str(self.get('media_sorter.mode', TransferMode.MOVE.value)).lower()

    def is_dry_run(self) -> bool:
        return bool(self.get('media_sorter.dry_run', False))

    def allow_larger(self) -> bool:
        return bool(self.get('media_sorter.allow_larger', False))

    def is_strict_metadata(self) -> bool:
        return bool(self.get('media_sorter.strict_metadata', False))

    def get_exclude_pattern(self) -> Optional[str]:
        return self.get('media_sorter.exclude')

    def get_formats(self) -> Dict[str, str]:
        """Get the default/raw/movie folder templates."""
        return {
            'default': self.get('media_sorter.formats.default', DEFAULT_FOLDER_FORMAT),
            'raw': self.get('media_sorter.formats.raw', DEFAULT_FOLDER_FORMAT),
            'movie': self.get('media_sorter.formats.movie', DEFAULT_FOLDER_FORMAT),
        }

    def get_decoder_workers(self) -> int:
        return self.get('media_sorter.workers.decoders', DEFAULT_DECODER_WORKERS)

    def get_executor_workers(self) -> Optional[int]:
        """Get executor worker count; None means pick by mode."""
        return self.get('media_sorter.workers.executors')

    def get_buffers(self) -> Dict[str, int]:
        return {
            'candidates': self.get('media_sorter.buffers.candidates', DEFAULT_CANDIDATE_BUFFER),
            'requests': self.get('media_sorter.buffers.requests', DEFAULT_REQUEST_BUFFER),
        }

    def get_min_free_space_gb(self) -> int:
        """Get minimum free space requirement in GB (0 disables the check)."""
        return self.get('media_sorter.safety.min_free_space_gb', 0)

    def get_log_level(self) -> str:
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Optional[str]:
        return self.get('logging.file')

    def validate_config(self) -> List[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of validation error messages
        """
        errors = []

        modes = [mode.value for mode in TransferMode]
        if self.get_mode() not in modes:
            errors.append(f"Invalid mode: {self.get_mode()} (expected one of {', '.join(modes)})")

        decoders = self.get_decoder_workers()
        if not isinstance(decoders, int) or not 1 <= decoders <= MAX_WORKERS:
            errors.append(f"Invalid decoder workers value: {decoders} (must be 1-{MAX_WORKERS})")

        executors = self.get_executor_workers()
        if executors is not None and (not isinstance(executors, int) or not 1 <= executors <= MAX_WORKERS):
            errors.append(f"Invalid executor workers value: {executors} (must be 1-{MAX_WORKERS})")

        for name, size in self.get_buffers().items():
            if not isinstance(size, int) or size < 1:
                errors.append(f"Invalid {name} buffer size: {size}")

        for name, template in self.get_formats().items():
            template_error = check_folder_format(template)
            if template_error:
                errors.append(f"Invalid {name} format {template!r}: {template_error}")

        pattern = self.get_exclude_pattern()
        if pattern:
            try:
                re.compile(pattern)
            except re.error as e:
                errors.append(f"Invalid exclude pattern {pattern!r}: {e}")

        min_free = self.get_min_free_space_gb()
        if not isinstance(min_free, (int, float)) or min_free < 0:
            errors.append(f"Invalid min_free_space_gb value: {min_free}")

        return errors

    def build_run_config(self, source: str, dest: str, **overrides: Any) -> RunConfig:
        """
        Merge file settings with command-line overrides into a RunConfig.

        Args:
            source: Source directory to sort
            dest: Destination root directory
            **overrides: RunConfig fields given on the command line; None means not given

        Returns:
            Immutable run configuration

        Raises:
            ValueError: If a value is invalid (bad mode, regex or worker count)
        """
        formats = self.get_formats()
        buffers = self.get_buffers()
        settings: Dict[str, Any] = {
            'mode': self.get_mode(),
            'dry_run': self.is_dry_run(),
            'allow_larger': self.allow_larger(),
            'exclude': self.get_exclude_pattern(),
            'default_format': formats['default'],
            'raw_format': formats['raw'],
            'movie_format': formats['movie'],
            'decoder_workers': self.get_decoder_workers(),
            'executor_workers': self.get_executor_workers(),
            'candidate_buffer': buffers['candidates'],
            'request_buffer': buffers['requests'],
            'strict_metadata': self.is_strict_metadata(),
            'min_free_space_gb': self.get_min_free_space_gb(),
        }
        settings.update({key: value for key, value in overrides.items() if value is not None})

        mode = settings['mode']
        if not isinstance(mode, TransferMode):
            try:
                settings['mode'] = TransferMode(str(mode).lower())
            except ValueError:
                raise ValueError(f"Invalid mode: {mode}")

        exclude = settings['exclude']
        if isinstance(exclude, str):
            try:
                settings['exclude'] = re.compile(exclude) if exclude else None
            except re.error as e:
                raise ValueError(f"Invalid exclude pattern {exclude!r}: {e}")

        for key in ('default_format', 'raw_format', 'movie_format'):
            template_error = check_folder_format(settings[key])
            if template_error:
                raise ValueError(f"Invalid {key} {settings[key]!r}: {template_error}")

        return RunConfig(source_root=Path(source), dest_root=Path(dest), **settings)

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"Config(path={self.config_path}, mode={self.get_mode()})"


def check_folder_format(template: Any) -> Optional[str]:
    """Return an error message if template cannot produce a relative folder name."""
    if not isinstance(template, str) or not template.strip():
        return "must be a non-empty string"
    try:
        folder = datetime(2000, 1, 2, 3, 4, 5).strftime(template)
    except ValueError as e:
        return str(e)
    if Path(folder).is_absolute() or '..' in Path(folder).parts:
        return "must produce a relative folder inside the destination"
    return None
