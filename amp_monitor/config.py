"""
Configuration management for the amplifier status monitor.

Configuration is loaded from config.yaml file.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml

from .exceptions import ConfigurationError

MAX_SUPPORTED_CHANNELS = 8


@dataclass(frozen=True)
class ExchangeOptions:
    """Connection parameters for the UDP feedback channel of one device."""

    host: str
    device_port: int = 1234
    timeout: float = 0.8
    answer_port_zero: bool = False


@dataclass
class MonitorConfig:
    """
    Configuration for the amplifier status monitor.
    """

    # Devices
    hosts: List[str] = field(default_factory=list)
    device_port: int = 1234
    timeout: float = 0.8
    answer_port_zero: bool = False
    max_channels: int = 4

    # Polling
    poll_interval: float = 2.0
    max_consecutive_errors: int = 3

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None

    # Telemetry - InfluxDB
    telemetry_enabled: bool = False
    influxdb_host: str = "localhost:8086"
    influxdb_database: str = "amp_status"
    influxdb_token: str = ""

    def validate(self):
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.hosts:
            raise ConfigurationError("At least one device host must be configured")
        for host in self.hosts:
            if not isinstance(host, str) or not host.strip():
                raise ConfigurationError(f"Invalid device host: {host!r}")

        if not (1 <= self.device_port <= 65535):
            raise ConfigurationError(f"Invalid device_port: {self.device_port}")

        if self.timeout <= 0:
            raise ConfigurationError(f"Invalid timeout: {self.timeout}")
        if self.poll_interval <= 0:
            raise ConfigurationError(f"Invalid poll_interval: {self.poll_interval}")

        if not (1 <= self.max_channels <= MAX_SUPPORTED_CHANNELS):
            raise ConfigurationError(
                f"Invalid max_channels: {self.max_channels}. Must be between 1 and {MAX_SUPPORTED_CHANNELS}"
            )

        if self.max_consecutive_errors < 1:
            raise ConfigurationError(f"Invalid max_consecutive_errors: {self.max_consecutive_errors}")

        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if self.log_level.upper() not in valid_levels:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}. Must be one of {valid_levels}")

    def exchange_options(self, host: str) -> ExchangeOptions:
        """Connection parameters for a single configured device."""
        return ExchangeOptions(
            host=host,
            device_port=self.device_port,
            timeout=self.timeout,
            answer_port_zero=self.answer_port_zero,
        )

    @classmethod
    def from_yaml(cls, path: str) -> 'MonitorConfig':
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML config file

        Returns:
            MonitorConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML config: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}")

        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'MonitorConfig':
        """Build configuration from the nested layout used in config.yaml."""
        config_dict = {}

        device = data.get('device') or {}
        if device:
            hosts = device.get('hosts')
            if hosts is None and device.get('host'):
                hosts = [device['host']]
            if isinstance(hosts, str):
                hosts = [hosts]
            if hosts is not None:
                config_dict['hosts'] = list(hosts)
            config_dict['device_port'] = device.get('port', cls.device_port)
            config_dict['timeout'] = device.get('timeout', cls.timeout)
            config_dict['answer_port_zero'] = bool(device.get('answer_port_zero', cls.answer_port_zero))
            config_dict['max_channels'] = device.get('max_channels', cls.max_channels)

        polling = data.get('polling') or {}
        if polling:
            config_dict['poll_interval'] = polling.get('interval', cls.poll_interval)
            config_dict['max_consecutive_errors'] = polling.get(
                'max_consecutive_errors', cls.max_consecutive_errors
            )

        logging_section = data.get('logging') or {}
        if logging_section:
            config_dict['log_level'] = logging_section.get('level', cls.log_level)
            config_dict['log_format'] = logging_section.get('format', cls.log_format)
            config_dict['log_file'] = logging_section.get('file', cls.log_file)

        telemetry = data.get('telemetry') or {}
        if telemetry:
            config_dict['telemetry_enabled'] = telemetry.get('enabled', cls.telemetry_enabled)
            config_dict['influxdb_host'] = telemetry.get('influxdb_host', cls.influxdb_host)
            config_dict['influxdb_database'] = telemetry.get('influxdb_database', cls.influxdb_database)
            config_dict['influxdb_token'] = telemetry.get('influxdb_token', cls.influxdb_token)

        return cls(**config_dict)

    def __str__(self) -> str:
        """String representation for logging."""
        return (
            f"MonitorConfig("
            f"hosts={','.join(self.hosts) or '-'}, port={self.device_port}, "
            f"timeout={self.timeout}s, answer_port_zero={self.answer_port_zero}, "
            f"channels={self.max_channels}, interval={self.poll_interval}s, "
            f"log_level={self.log_level})"
        )


def load_configuration(config_path: str = "amp_monitor/config.yaml") -> MonitorConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config.yaml file (default: amp_monitor/config.yaml)

    Returns:
        Validated MonitorConfig

    Raises:
        ConfigurationError: If configuration file is missing or invalid
    """
    if not os.path.isabs(config_path):
        if not os.path.exists(config_path):
            script_dir = os.path.dirname(os.path.abspath(__file__))
            config_path = os.path.join(script_dir, "config.yaml")

    config = MonitorConfig.from_yaml(config_path)
    config.validate()

    return config
