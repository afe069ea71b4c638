"""
Configuration loading.

Usage:
    manager = ConfigManager()                 # searches for config.yaml / .env
    manager = ConfigManager("path/config.yaml")
    client = BinanceClient(manager.get_exchange_config())

``config.yaml`` is read after the ``.env`` file is loaded and supports
``${VAR}`` (empty when unset) and ``${VAR:default}`` substitution.
Unlike a process-wide singleton, every manager is independent so several
configurations (e.g. production and testnet) can coexist.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import msgspec
import yaml
from dotenv import load_dotenv

from binance_async.infrastructure.exceptions.system import ConfigurationError
from binance_async.infrastructure.logging import get_logger, LoggingConfig
from .structs import (
    ExchangeConfig,
    ExchangeCredentials,
    FeatureFlags,
    NetworkConfig,
    RateLimitConfig,
    WebSocketConfig,
)

_ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')


def guess_file_paths(file_name: str) -> List[Path]:
    """Possible locations of a configuration file, most specific first."""
    return [
        Path.cwd() / file_name,
        Path(__file__).parent.parent.parent.parent / file_name,  # Project root
        Path.home() / file_name,
    ]


class ConfigManager:
    """
    YAML + environment configuration for the Binance client.

    Expected layout::

        environment: dev
        binance:
          api_key: ${BINANCE_API_KEY}
          secret_key: ${BINANCE_SECRET_KEY}
          testnet: ${BINANCE_TESTNET:false}
          recv_window: 5000
          features: {margin: true, futures: true, savings: false, wallet: false}
        network: {request_timeout: 10.0}
        rate_limiting: {wait_on_rate_limit: false}
        websocket: {ping_interval: 20.0, max_reconnect_attempts: 10}
        logging: {console: {enabled: true, min_level: INFO}}
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None,
                 env_path: Optional[Union[str, Path]] = None,
                 load_env: bool = True):
        self.logger = get_logger("config")

        if load_env:
            self._load_env_file(env_path)

        self._config_path = self._resolve_config_path(config_path)
        self._config_data = self._load_yaml_config(self._config_path)

        self.environment = str(self._config_data.get('environment', 'dev')).lower()
        if self.environment not in ('dev', 'prod', 'test', 'staging'):
            raise ConfigurationError(f"Invalid environment '{self.environment}' in config.yaml", 'environment')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigManager":
        """Build a manager from an already-parsed mapping (no file or .env access)."""
        manager = cls.__new__(cls)
        manager.logger = get_logger("config")
        manager._config_path = None
        manager._config_data = data
        manager.environment = str(data.get('environment', 'dev')).lower()
        return manager

    def _load_env_file(self, env_path: Optional[Union[str, Path]]) -> None:
        candidates = [Path(env_path)] if env_path else guess_file_paths('.env')
        for candidate in candidates:
            if candidate.exists():
                load_dotenv(dotenv_path=candidate, override=False)
                self.logger.info("Loaded environment variables", path=str(candidate))
                return
        self.logger.debug("No .env file found - using system environment variables only")

    @staticmethod
    def _resolve_config_path(config_path: Optional[Union[str, Path]]) -> Path:
        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}", 'config_path')
            return path
        for candidate in guess_file_paths('config.yaml'):
            if candidate.exists():
                return candidate
        raise ConfigurationError("No config.yaml found", 'config_path')

    def _load_yaml_config(self, path: Path) -> Dict[str, Any]:
        """Load configuration from YAML file with environment variable substitution."""
        with open(path, 'r', encoding='utf-8') as f:
            raw_content = f.read()

        try:
            data = yaml.safe_load(self._substitute_env_vars(raw_content))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", 'config_path') from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Top level of {path} must be a mapping", 'config_path')

        self.logger.info("Configuration loaded", path=str(path))
        return data

    def _substitute_env_vars(self, content: str) -> str:
        """
        Substitute environment variables in configuration content.

        Supports syntax:
        - ${VAR_NAME} - environment variable, empty when unset
        - ${VAR_NAME:default} - optional with default value
        """
        def replace_var(match):
            var_expr = match.group(1)

            if ':' in var_expr:
                var_name, default_value = var_expr.split(':', 1)
                env_value = os.getenv(var_name.strip())
                if env_value is None:
                    return default_value
                return env_value

            var_name = var_expr.strip()
            env_value = os.getenv(var_name)
            if env_value is None:
                self.logger.warning("Environment variable not set - using empty value", variable=var_name)
                return ""
            return env_value

        return _ENV_VAR_PATTERN.sub(replace_var, content)

    # Structured accessors

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._config_data.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"Section '{name}' must be a mapping", name)
        return section

    def _convert(self, data: Dict[str, Any], struct_type: type, setting_name: str):
        try:
            return msgspec.convert(data, struct_type, strict=False)
        except msgspec.ValidationError as e:
            raise ConfigurationError(f"Invalid '{setting_name}' settings: {e}", setting_name) from e

    def get_network_config(self) -> NetworkConfig:
        return self._convert(self._section('network'), NetworkConfig, 'network')

    def get_rate_limit_config(self) -> RateLimitConfig:
        return self._convert(self._section('rate_limiting'), RateLimitConfig, 'rate_limiting')

    def get_websocket_config(self) -> WebSocketConfig:
        return self._convert(self._section('websocket'), WebSocketConfig, 'websocket')

    def get_logging_config(self) -> LoggingConfig:
        data = dict(self._section('logging'))
        data.setdefault('environment', self.environment)
        config = LoggingConfig.from_dict(data)
        config.validate()
        return config

    def get_exchange_config(self, section: str = 'binance') -> ExchangeConfig:
        """Build and validate the client configuration from ``section``."""
        data = dict(self._section(section))

        credentials = ExchangeCredentials(
            api_key=str(data.pop('api_key', '') or ''),
            secret_key=str(data.pop('secret_key', '') or ''),
        )
        features = self._convert(data.pop('features', None) or {}, FeatureFlags, f'{section}.features')
        scalars = self._convert(data, _ExchangeSection, section)

        config = ExchangeConfig(
            credentials=credentials,
            testnet=scalars.testnet,
            recv_window=scalars.recv_window,
            base_url=scalars.base_url,
            websocket_url=scalars.websocket_url,
            futures_base_url=scalars.futures_base_url,
            futures_websocket_url=scalars.futures_websocket_url,
            network=self.get_network_config(),
            rate_limit=self.get_rate_limit_config(),
            websocket=self.get_websocket_config(),
            features=features,
        )
        config.validate()
        self.logger.debug("Exchange configuration built", section=section,
                          testnet=config.testnet, credentials=credentials.get_preview())
        return config


class _ExchangeSection(msgspec.Struct, frozen=True, forbid_unknown_fields=True):
    testnet: bool = False
    recv_window: int = 5000
    base_url: Optional[str] = None
    websocket_url: Optional[str] = None
    futures_base_url: Optional[str] = None
    futures_websocket_url: Optional[str] = None
