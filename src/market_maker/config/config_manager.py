"""
Configuration Manager for the wallet cycle market maker.

This module provides centralized configuration management with support for:
- YAML and JSON configuration files
- Environment variable overrides
- Pydantic-based validation
- Default values for optional parameters
"""

import os
import json
import yaml
from pathlib import Path
from typing import List, Optional, Union, Dict, Any
from pydantic import BaseModel, Field, field_validator, ValidationError
from enum import Enum

from ..exceptions import ConfigurationError


# Wrapped SOL mint, the venue's native asset
NATIVE_ASSET_ID = "So11111111111111111111111111111111111111112"


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CycleSettings(BaseModel):
    """
    Trading cycle parameters shared by global and per-wallet settings.

    Ordering between the min/max bounds is checked by the settings
    resolver when a bot starts, so an inconsistent block is reported as
    an invalid-settings start error instead of a load failure.
    """
    min_interval: int = Field(default=60, ge=0, description="Minimum seconds between cycles")
    max_interval: int = Field(default=300, ge=0, description="Maximum seconds between cycles")
    min_amount: float = Field(default=0.01, ge=0, description="Minimum trade size in native units")
    max_amount: float = Field(default=0.05, ge=0, description="Maximum trade size in native units")
    cycles_before_recycle: int = Field(
        default=10, ge=1,
        description="Completed cycles after which the wallet is retired"
    )
    is_randomized: bool = Field(default=True, description="Randomize amounts and intervals")
    trade_asset_id: Optional[str] = Field(default=None, description="Asset traded against the native asset")


class CustomSettings(CycleSettings):
    """Per-wallet override block."""
    enabled: bool = Field(default=False, description="Use this block instead of the global settings")


class EngineSettings(BaseModel):
    """Fixed timings and retry policy of the trading cycle engine."""
    low_balance_retry_seconds: float = Field(
        default=60.0, ge=0,
        description="Delay before re-checking a wallet with too little balance"
    )
    inter_trade_delay_seconds: float = Field(
        default=10.0, ge=0,
        description="Delay between the buy and the sell leg of a cycle"
    )
    error_backoff_seconds: float = Field(
        default=60.0, ge=0,
        description="Delay before retrying after a failed cycle"
    )
    max_consecutive_retries: Optional[int] = Field(
        default=None, ge=1,
        description="Consecutive retries before a bot stops itself (None = unbounded)"
    )
    balance_multiplier: float = Field(
        default=2.0, gt=0,
        description="Required balance as a multiple of the trade amount"
    )


class VenueSettings(BaseModel):
    """Trading venue connection settings."""
    cluster: str = Field(default="mainnet-beta", description="Venue cluster name")
    rpc_url: str = Field(default="https://api.mainnet-beta.solana.com", description="RPC endpoint")
    native_asset_id: str = Field(default=NATIVE_ASSET_ID, description="Native asset identifier")

    @field_validator('native_asset_id')
    @classmethod
    def validate_native_asset_id(cls, v):
        if not v or not v.strip():
            raise ValueError("native_asset_id cannot be empty")
        return v.strip()


class WalletConfig(BaseModel):
    """Wallet entry used by the paper trading runner."""
    id: str = Field(description="Wallet identifier")
    public_key: str = Field(description="Wallet public address")
    starting_balance: float = Field(default=1.0, ge=0, description="Paper balance in native units")
    cycles_completed: int = Field(default=0, ge=0)
    custom_settings: Optional[CustomSettings] = None


class LoggingSettings(BaseModel):
    """Logging settings."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    console: bool = Field(default=True, description="Log to the console")
    colors: bool = Field(default=True, description="Colored console output")
    file: bool = Field(default=False, description="Log to a rotating file")
    file_path: str = Field(default="logs/market_maker.log", description="Path to log file")
    json_file: bool = Field(default=True, description="Write file logs as JSON")


class MarketMakerConfig(BaseModel):
    """Complete market maker configuration."""
    venue: VenueSettings = Field(default_factory=VenueSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    global_settings: CycleSettings = Field(default_factory=CycleSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    wallets: List[WalletConfig] = Field(default_factory=list)

    @field_validator('wallets')
    @classmethod
    def validate_unique_wallets(cls, v):
        ids = [w.id for w in v]
        if len(ids) != len(set(ids)):
            raise ValueError("wallet ids must be unique")
        return v


class ConfigManager:
    """
    Configuration manager for the market maker.

    Handles loading configuration from YAML/JSON files with support for:
    - Environment variable overrides
    - Validation using Pydantic models
    - Default values for optional parameters
    - Saving configuration back to file

    Environment Variables:
        MM_LOG_LEVEL: Override log level
        MM_RPC_URL: Override venue RPC endpoint
        MM_NATIVE_ASSET_ID: Override native asset identifier
        MM_MAX_RETRIES: Override consecutive retry limit
        MM_ERROR_BACKOFF_SECONDS: Override error backoff delay
        MM_INTER_TRADE_DELAY_SECONDS: Override buy/sell gap
        MM_LOW_BALANCE_RETRY_SECONDS: Override low balance re-check delay
    """

    ENV_MAPPINGS = {
        'MM_LOG_LEVEL': ('logging', 'level'),
        'MM_RPC_URL': ('venue', 'rpc_url'),
        'MM_NATIVE_ASSET_ID': ('venue', 'native_asset_id'),
        'MM_MAX_RETRIES': ('engine', 'max_consecutive_retries'),
        'MM_ERROR_BACKOFF_SECONDS': ('engine', 'error_backoff_seconds'),
        'MM_INTER_TRADE_DELAY_SECONDS': ('engine', 'inter_trade_delay_seconds'),
        'MM_LOW_BALANCE_RETRY_SECONDS': ('engine', 'low_balance_retry_seconds'),
    }

    INT_FIELDS = {
        ('engine', 'max_consecutive_retries'),
    }

    FLOAT_FIELDS = {
        ('engine', 'error_backoff_seconds'),
        ('engine', 'inter_trade_delay_seconds'),
        ('engine', 'low_balance_retry_seconds'),
    }

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to configuration file (YAML or JSON)
        """
        self._config_path: Optional[Path] = Path(config_path) if config_path else None
        self._config: Optional[MarketMakerConfig] = None
        self._raw_config: Dict[str, Any] = {}

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> MarketMakerConfig:
        """
        Load configuration from file.

        Args:
            config_path: Path to configuration file. If not provided, uses the path
                        specified during initialization.

        Returns:
            MarketMakerConfig: Validated configuration object

        Raises:
            FileNotFoundError: If configuration file does not exist
            ConfigurationError: If the file format or contents are invalid
        """
        if config_path:
            self._config_path = Path(config_path)

        if not self._config_path:
            raise ConfigurationError("No configuration path specified")

        if not self._config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self._config_path}"
            )

        self._raw_config = self._load_file(self._config_path)
        self._apply_env_overrides()

        try:
            self._config = MarketMakerConfig(**self._raw_config)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e}"
            ) from e

        return self._config

    def _load_file(self, path: Path) -> Dict[str, Any]:
        """Load configuration from file based on extension."""
        suffix = path.suffix.lower()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                if suffix in ['.yaml', '.yml']:
                    data = yaml.safe_load(f) or {}
                elif suffix == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(
                        f"Unsupported configuration format: {suffix}. "
                        "Use .yaml, .yml, or .json"
                    )
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")
        return data

    def _apply_env_overrides(self) -> None:
        """
        Apply environment variable overrides to configuration.

        Environment variables take precedence over file configuration.
        """
        for env_var, (section, key) in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value is None:
                continue

            converted_value = self._convert_env_value(env_var, value, section, key)
            if section not in self._raw_config or self._raw_config[section] is None:
                self._raw_config[section] = {}
            self._raw_config[section][key] = converted_value

    def _convert_env_value(
        self, env_var: str, value: str, section: str, key: str
    ) -> Union[str, int, float, None]:
        """Convert environment variable string to appropriate type."""
        if (section, key) in self.INT_FIELDS:
            if value.strip().lower() in ('', 'none', 'unbounded'):
                return None
            try:
                return int(value)
            except ValueError:
                raise ConfigurationError(
                    f"Environment variable {env_var} must be an integer, got: {value}"
                )

        if (section, key) in self.FLOAT_FIELDS:
            try:
                return float(value)
            except ValueError:
                raise ConfigurationError(
                    f"Environment variable {env_var} must be a number, got: {value}"
                )

        if (section, key) == ('logging', 'level'):
            return value.upper()

        return value

    def save_config(
        self, config_path: Optional[Union[str, Path]] = None, format: str = 'yaml'
    ) -> None:
        """
        Save current configuration to file.

        Args:
            config_path: Path to save configuration. If not provided, uses the
                        path specified during initialization.
            format: Output format ('yaml' or 'json')

        Raises:
            ConfigurationError: If no configuration is loaded or format is invalid
        """
        if not self._config:
            raise ConfigurationError("No configuration loaded to save")

        save_path = Path(config_path) if config_path else self._config_path
        if not save_path:
            raise ConfigurationError("No save path specified")

        save_path.parent.mkdir(parents=True, exist_ok=True)
        config_dict = self._config.model_dump(mode='json')

        with open(save_path, 'w', encoding='utf-8') as f:
            if format.lower() in ['yaml', 'yml']:
                yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)
            elif format.lower() == 'json':
                json.dump(config_dict, f, indent=2)
            else:
                raise ConfigurationError(f"Unsupported format: {format}. Use 'yaml' or 'json'")

    def get_config(self) -> MarketMakerConfig:
        """
        Get the current configuration.

        Raises:
            ConfigurationError: If no configuration is loaded
        """
        if not self._config:
            raise ConfigurationError("No configuration loaded. Call load_config() first.")
        return self._config

    def reload(self) -> MarketMakerConfig:
        """Reload configuration from file."""
        return self.load_config(self._config_path)

    @property
    def is_loaded(self) -> bool:
        """Check if configuration is loaded."""
        return self._config is not None

    @classmethod
    def create_default_config(cls, config_path: Union[str, Path]) -> MarketMakerConfig:
        """
        Create a default configuration file.

        Args:
            config_path: Path where to save the default configuration

        Returns:
            MarketMakerConfig: Default configuration object
        """
        config_path = Path(config_path)
        manager = cls()
        manager._config = MarketMakerConfig()
        manager._config_path = config_path

        format = 'yaml' if config_path.suffix in ['.yaml', '.yml'] else 'json'
        manager.save_config(format=format)

        return manager._config


def load_config(config_path: Union[str, Path]) -> MarketMakerConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to configuration file

    Returns:
        MarketMakerConfig: Validated configuration object
    """
    manager = ConfigManager(config_path)
    return manager.load_config()
