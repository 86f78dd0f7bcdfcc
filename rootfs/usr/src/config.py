"""
APCUPSD Exporter Configuration

Handles command-line argument parsing and configuration loading from an
optional YAML file and the environment.
"""

import argparse
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, field_validator
import yaml

from constants import DEFAULT_NIS_PORT

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------------
# Configuration Models
# ------------------------------------------------------------------------------------


class LogConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level '{value}'")
        return value


class NisConfig(BaseModel):
    """apcupsd Network Information Server connection."""
    host: str = "localhost"
    port: int = Field(default=DEFAULT_NIS_PORT, ge=1, le=65535)
    timeout: float = Field(default=15, gt=0)
    strip_units: bool = True


class ExporterConfig(BaseModel):
    """HTTP metrics endpoint and polling."""
    listen_address: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    interval: float = Field(default=10, gt=0)


class ConfigModel(BaseModel):
    """Root configuration model."""
    log: LogConfig = Field(default_factory=LogConfig)
    nis: NisConfig = Field(default_factory=NisConfig)
    exporter: ExporterConfig = Field(default_factory=ExporterConfig)


# ------------------------------------------------------------------------------------
# Environment Variables
# ------------------------------------------------------------------------------------
# (section, field, converter) per variable, later entries win
ENV_VARS: dict[str, tuple[str, str, Any]] = {
    "APCUPSD_HOST": ("nis", "host", str),
    "APCUPSD_PORT": ("nis", "port", int),
    "TIMEOUT": ("nis", "timeout", float),
    "APCUPSD_TIMEOUT": ("nis", "timeout", float),
    "APCUPSD_STRIP_UNITS": ("nis", "strip_units", None),
    "METRICS_ADDRESS": ("exporter", "listen_address", str),
    "METRICS_PORT": ("exporter", "port", int),
    "INTERVAL": ("exporter", "interval", float),
    "LOG_LEVEL": ("log", "level", str),
}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean '{value}'")


def _set_option(options: dict[str, Any], section: str, field: str, value: Any) -> None:
    if not isinstance(options.get(section), dict):
        options[section] = {}
    options[section][field] = value


def init_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='apcupsd-exporter',
        description='Prometheus exporter for the apcupsd Network Information Server'
    )
    parser.add_argument('-c', '--config', help='YAML configuration file', type=str, default=None)
    parser.add_argument('--host', help='apcupsd NIS host', type=str)
    parser.add_argument('--port', help='apcupsd NIS port', type=int)
    parser.add_argument('--timeout', help='Network timeout in seconds', type=float)
    parser.add_argument('--no-strip-units', help='Keep units on status values', action='store_true')
    parser.add_argument('--listen-address', help='Address of the metrics endpoint', type=str)
    parser.add_argument('--listen-port', help='Port of the metrics endpoint', type=int)
    parser.add_argument('--interval', help='Seconds between polls', type=float)
    parser.add_argument('--log-level', help='Log level', type=str)
    parser.add_argument('--dump', help='Print the UPS status once and exit', action='store_true')
    parser.add_argument('--version', help='Print the version and exit', action='store_true')
    return parser.parse_args(argv)


def load_yaml_file(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file. Failures are logged and yield an empty dict."""
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load {path}: {e}")
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error(f"Failed to load {path}: expected a mapping, got {type(data).__name__}")
        return {}
    return data


def apply_environment(options: dict[str, Any], environ: Mapping[str, str]) -> None:
    """Override options with environment variables. Unparsable values are ignored."""
    for name, (section, field, converter) in ENV_VARS.items():
        raw = environ.get(name)
        if raw is None or raw == "":
            continue
        try:
            value = _to_bool(raw) if converter is None else converter(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid value '{raw}' for {name}")
            continue
        _set_option(options, section, field, value)


def apply_args(options: dict[str, Any], args: argparse.Namespace) -> None:
    """Override options with command-line arguments that were given."""
    overrides = {
        ("nis", "host"): args.host,
        ("nis", "port"): args.port,
        ("nis", "timeout"): args.timeout,
        ("exporter", "listen_address"): args.listen_address,
        ("exporter", "port"): args.listen_port,
        ("exporter", "interval"): args.interval,
        ("log", "level"): args.log_level,
    }
    if args.no_strip_units:
        overrides[("nis", "strip_units")] = False

    for (section, field), value in overrides.items():
        if value is not None:
            _set_option(options, section, field, value)


def setup_logging(level: str) -> None:
    """Configure the root logger with a single stream handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    formatter = logging.Formatter('%(asctime)s %(levelname)s: %(message)s')

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stream = logging.StreamHandler()
    stream.setLevel(level)
    stream.setFormatter(formatter)
    root_logger.addHandler(stream)


def read_config(
    args: Optional[argparse.Namespace] = None,
    environ: Optional[Mapping[str, str]] = None,
    version: str = "Unknown",
) -> ConfigModel:
    """
    Read and populate the configuration.

    Args:
        args: Parsed command-line arguments (highest precedence)
        environ: Environment variables, defaults to os.environ
        version: The app version string for logging

    Returns:
        ConfigModel: The populated configuration object

    Raises:
        pydantic.ValidationError: If the resulting values are out of range
    """
    if environ is None:
        environ = os.environ

    # 1. YAML file
    options: dict[str, Any] = {}
    if args is not None and args.config:
        options = load_yaml_file(args.config)

    # 2. Environment
    apply_environment(options, environ)

    # 3. Command-line
    if args is not None:
        apply_args(options, args)

    model = ConfigModel.model_validate(options)

    # 4. Global Logging Setup
    setup_logging(model.log.level)

    logger.info(f'Start: apcupsd-exporter - version: {version}')
    logger.debug(f'Config: {str(model.model_dump())}')

    return model
