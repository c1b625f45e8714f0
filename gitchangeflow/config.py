"""Configuration management for gitchangeflow."""
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

import tomli
import tomli_w
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".gitchangeflow.toml"
CONFIG_SECTION = "gitchangeflow"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

STRING_FIELDS = ("remote_name", "log_file", "log_level")
BOOL_FIELDS = ("auto_approve", "always_log")


class Config(BaseModel):
    """Configuration settings for gitchangeflow.

    Values come from ``.gitchangeflow.toml`` in the repository root (either
    top-level keys or a ``[gitchangeflow]`` table), then from
    ``GITCHANGEFLOW_*`` environment variables, then from defaults.
    Command line options override all of them.
    """

    remote_name: str = Field(
        default="origin",
        description="Name of the remote to analyze inbound changes from"
    )

    similarity_threshold: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Minimum similarity for a change to join a group"
    )

    auto_approve: bool = Field(
        default=False,
        description="Commit every proposed group without asking"
    )

    always_log: bool = Field(
        default=False,
        description="Whether to always generate log files"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Path to log file (if not using automatic log file generation)"
    )

    log_level: str = Field(
        default="WARNING",
        description="Level for diagnostic logging (DEBUG, INFO, WARNING, ERROR)"
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value

    @staticmethod
    def _sanitize_string(value: str) -> str:
        """Sanitize string values to prevent injection attacks."""
        if not value:
            return value

        # Remove control characters and null bytes
        value = re.sub(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]', '', value)

        # Remove command injection patterns and split on them
        value = re.split(r'[;&|`$()]', value)[0]

        if len(value) > 1000:
            value = value[:1000]

        return value.strip()

    @staticmethod
    def _is_safe_path(path: str) -> bool:
        """Check if a path is safe (no path traversal)."""
        if not path:
            return False

        if '..' in path or path.startswith('/') or '\\' in path:
            return False

        if os.path.isabs(path):
            return False

        return True

    @classmethod
    def load(cls, repo_path: Path) -> 'Config':
        """Load configuration from the config file.

        Args:
            repo_path: Path to the git repository

        Returns:
            Config: Configuration object with values from file or defaults
        """
        config_path = repo_path / DEFAULT_CONFIG_FILENAME

        if not config_path.exists():
            return cls()

        try:
            with config_path.open('rb') as f:
                config_data = tomli.load(f)

            section = config_data.get(CONFIG_SECTION, config_data)
            if not isinstance(section, dict):
                raise ValueError(f"[{CONFIG_SECTION}] must be a table")

            for key in STRING_FIELDS:
                if key in section and isinstance(section[key], str):
                    section[key] = cls._sanitize_string(section[key])

            if section.get('log_file') and not cls._is_safe_path(section['log_file']):
                logger.warning("Unsafe log file path %r, using default", section['log_file'])
                section['log_file'] = None

            known = {k: v for k, v in section.items() if k in cls.model_fields}
            return cls(**known)
        except Exception as e:
            # If there's any error reading the config, use defaults
            logger.warning("Error reading config file %s: %s", config_path, e)
            return cls()

    def save(self, repo_path: Path) -> None:
        """Save configuration to the config file.

        Args:
            repo_path: Path to the git repository
        """
        config_path = repo_path / DEFAULT_CONFIG_FILENAME

        # TOML has no null, so unset values are dropped
        config_dict = {k: v for k, v in self.model_dump().items() if v is not None}

        if config_dict.get('log_file') and not self._is_safe_path(config_dict['log_file']):
            logger.warning("Unsafe log file path %r, not saving", config_dict['log_file'])
            del config_dict['log_file']

        with config_path.open('wb') as f:
            tomli_w.dump({CONFIG_SECTION: config_dict}, f)

    def get_log_file(self) -> Optional[Path]:
        """Get the path to the operation log file.

        If always_log is True, generates a timestamped log file name.
        Otherwise, returns the configured log_file path if set.

        Returns:
            Optional[Path]: Path to the log file, or None if logging is disabled
        """
        if self.always_log:
            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            return Path(f"gcf_log-{timestamp}.log")
        elif self.log_file:
            if self._is_safe_path(self.log_file):
                return Path(self.log_file)
            logger.warning("Unsafe log file path %r, ignoring", self.log_file)
            return None
        return None

    def __init__(self, **data):
        """Initialize config with environment variable support and sanitization."""
        env_data = {}

        for field_name in type(self).model_fields:
            env_var = f"GITCHANGEFLOW_{field_name.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]

            if field_name in STRING_FIELDS:
                value = self._sanitize_string(value)

            if field_name in BOOL_FIELDS:
                value = value.lower() in ['true', '1', 'yes', 'on']

            env_data[field_name] = value

        # Explicit values win over the environment
        merged_data = {**env_data, **data}

        super().__init__(**merged_data)
