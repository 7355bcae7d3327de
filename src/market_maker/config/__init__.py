"""
Configuration package for the wallet cycle market maker.

This package provides configuration management with support for YAML/JSON files,
environment variable overrides, and Pydantic-based validation.
"""

from .config_manager import (
    ConfigManager,
    MarketMakerConfig,
    CycleSettings,
    CustomSettings,
    EngineSettings,
    VenueSettings,
    WalletConfig,
    LoggingSettings,
    LogLevel,
    NATIVE_ASSET_ID,
    load_config,
)

__all__ = [
    'ConfigManager',
    'MarketMakerConfig',
    'CycleSettings',
    'CustomSettings',
    'EngineSettings',
    'VenueSettings',
    'WalletConfig',
    'LoggingSettings',
    'LogLevel',
    'NATIVE_ASSET_ID',
    'load_config',
]
