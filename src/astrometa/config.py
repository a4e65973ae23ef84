"""
Configuration management for astrometa.

Provides environment-aware configuration with validation and type safety.
"""

import os
import logging
import logging.handlers
import configparser
from typing import Optional
from dataclasses import dataclass, field
from enum import Enum

import pytz

from .exceptions import ConfigurationError


class LogLevel(Enum):
    """Enumeration for log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ExtractionConfig:
    """Metadata extraction settings."""
    verify_checksums: bool = True
    compute_session_date: bool = False
    timezone: Optional[str] = None  # IANA name, e.g. "America/Edmonton"
    max_header_bytes: int = 64 * 1024 * 1024
    read_inline_data: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: LogLevel = LogLevel.INFO
    file_path: Optional[str] = None
    max_file_size_mb: int = 5
    backup_count: int = 3
    console_output: bool = True
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class AstroMetaConfig:
    """Main library configuration."""
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigManager:
    """Configuration manager with environment support."""

    def __init__(self, config_file: Optional[str] = None, env_prefix: str = "ASTROMETA"):
        self.config_file = config_file or self._find_config_file()
        self.env_prefix = env_prefix
        self._config: Optional[AstroMetaConfig] = None

    def _find_config_file(self) -> str:
        """Find configuration file in standard locations."""
        possible_paths = [
            "astrometa.ini",
            os.path.expanduser("~/.astrometa/config.ini"),
            os.path.expanduser("~/.config/astrometa.ini"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return "astrometa.ini"

    def load_config(self) -> AstroMetaConfig:
        """Load configuration from file and environment variables."""
        if self._config is not None:
            return self._config

        config = AstroMetaConfig()

        if os.path.exists(self.config_file):
            self._load_from_file(config)

        self._load_from_env(config)
        self._validate_config(config)

        self._config = config
        return config

    def _load_from_file(self, config: AstroMetaConfig):
        """Load configuration from INI file."""
        parser = configparser.ConfigParser()
        try:
            parser.read(self.config_file)
        except configparser.Error as e:
            raise ConfigurationError(f"Cannot parse configuration file {self.config_file}: {e}")

        try:
            if parser.has_section("extraction"):
                section = parser["extraction"]
                config.extraction.verify_checksums = section.getboolean("verify_checksums", True)
                config.extraction.compute_session_date = section.getboolean("compute_session_date", False)
                config.extraction.timezone = section.get("timezone") or None
                config.extraction.max_header_bytes = section.getint(
                    "max_header_bytes", config.extraction.max_header_bytes)
                config.extraction.read_inline_data = section.getboolean("read_inline_data", True)

            if parser.has_section("logging"):
                section = parser["logging"]
                config.logging.level = LogLevel(section.get("level", "INFO").upper())
                config.logging.file_path = section.get("file_path") or None
                config.logging.max_file_size_mb = section.getint("max_file_size_mb", 5)
                config.logging.backup_count = section.getint("backup_count", 3)
                config.logging.console_output = section.getboolean("console_output", True)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in {self.config_file}: {e}")

    def _load_from_env(self, config: AstroMetaConfig):
        """Load configuration from environment variables."""
        if env_val := os.getenv(f"{self.env_prefix}_TIMEZONE"):
            config.extraction.timezone = env_val
        if env_val := os.getenv(f"{self.env_prefix}_VERIFY_CHECKSUMS"):
            config.extraction.verify_checksums = _env_flag(env_val)
        if env_val := os.getenv(f"{self.env_prefix}_COMPUTE_SESSION_DATE"):
            config.extraction.compute_session_date = _env_flag(env_val)
        if env_val := os.getenv(f"{self.env_prefix}_LOG_LEVEL"):
            try:
                config.logging.level = LogLevel(env_val.upper())
            except ValueError:
                raise ConfigurationError(f"Unknown log level: {env_val}")
        if env_val := os.getenv(f"{self.env_prefix}_LOG_FILE"):
            config.logging.file_path = env_val

    def _validate_config(self, config: AstroMetaConfig):
        """Validate configuration settings."""
        if config.extraction.timezone:
            try:
                pytz.timezone(config.extraction.timezone)
            except pytz.UnknownTimeZoneError:
                raise ConfigurationError(f"Unknown timezone: {config.extraction.timezone}")

        if config.extraction.max_header_bytes < 1:
            raise ConfigurationError("max_header_bytes must be at least 1")

        if config.logging.backup_count < 0:
            raise ConfigurationError("backup_count cannot be negative")

    def save_config(self, config: AstroMetaConfig):
        """Save configuration to file."""
        parser = configparser.ConfigParser()

        parser.add_section("extraction")
        parser["extraction"]["verify_checksums"] = str(config.extraction.verify_checksums)
        parser["extraction"]["compute_session_date"] = str(config.extraction.compute_session_date)
        parser["extraction"]["timezone"] = config.extraction.timezone or ""
        parser["extraction"]["max_header_bytes"] = str(config.extraction.max_header_bytes)
        parser["extraction"]["read_inline_data"] = str(config.extraction.read_inline_data)

        parser.add_section("logging")
        parser["logging"]["level"] = config.logging.level.value
        parser["logging"]["file_path"] = config.logging.file_path or ""
        parser["logging"]["max_file_size_mb"] = str(config.logging.max_file_size_mb)
        parser["logging"]["backup_count"] = str(config.logging.backup_count)
        parser["logging"]["console_output"] = str(config.logging.console_output)

        directory = os.path.dirname(self.config_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.config_file, 'w') as f:
            parser.write(f)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> AstroMetaConfig:
    """Get the current library configuration."""
    return config_manager.load_config()


def setup_logging(config: Optional[AstroMetaConfig] = None, verbose: bool = False) -> None:
    """Setup logging based on configuration."""
    config = config or get_config()
    log_config = config.logging

    level = logging.DEBUG if verbose else getattr(logging, log_config.level.value)
    handlers = []

    if log_config.file_path:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_config.file_path,
            maxBytes=log_config.max_file_size_mb * 1024 * 1024,
            backupCount=log_config.backup_count
        ))
    if log_config.console_output or not handlers:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(level=level, format=log_config.format, handlers=handlers, force=True)
