import json

import pytest
import yaml

from market_maker.config import (
    NATIVE_ASSET_ID,
    ConfigManager,
    LogLevel,
    MarketMakerConfig,
    load_config,
)
from market_maker.exceptions import ConfigurationError


SAMPLE_CONFIG = {
    'engine': {
        'error_backoff_seconds': 5,
        'max_consecutive_retries': 3,
    },
    'global_settings': {
        'min_interval': 10,
        'max_interval': 20,
        'min_amount': 0.01,
        'max_amount': 0.02,
        'cycles_before_recycle': 4,
        'is_randomized': False,
    },
    'wallets': [
        {'id': 'w1', 'public_key': 'address-1', 'starting_balance': 2.0},
        {
            'id': 'w2',
            'public_key': 'address-2',
            'custom_settings': {
                'enabled': True,
                'trade_asset_id': 'TokenMint',
                'cycles_before_recycle': 2,
            },
        },
    ],
}


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for env_var in ConfigManager.ENV_MAPPINGS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def yaml_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(SAMPLE_CONFIG))
    return path


def test_load_yaml_config(yaml_config):
    config = load_config(yaml_config)

    assert config.engine.error_backoff_seconds == 5
    assert config.engine.max_consecutive_retries == 3
    assert config.engine.inter_trade_delay_seconds == 10
    assert config.global_settings.cycles_before_recycle == 4
    assert config.venue.native_asset_id == NATIVE_ASSET_ID
    assert config.wallets[0].starting_balance == 2.0
    assert config.wallets[1].custom_settings.enabled is True
    assert config.wallets[1].custom_settings.trade_asset_id == 'TokenMint'


def test_load_json_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(SAMPLE_CONFIG))

    config = load_config(path)

    assert [w.id for w in config.wallets] == ['w1', 'w2']


def test_defaults_match_engine_timings():
    config = MarketMakerConfig()

    assert config.engine.low_balance_retry_seconds == 60
    assert config.engine.inter_trade_delay_seconds == 10
    assert config.engine.error_backoff_seconds == 60
    assert config.engine.max_consecutive_retries is None
    assert config.engine.balance_multiplier == 2.0


def test_env_overrides_take_precedence(yaml_config, monkeypatch):
    monkeypatch.setenv('MM_ERROR_BACKOFF_SECONDS', '0.5')
    monkeypatch.setenv('MM_LOG_LEVEL', 'debug')
    monkeypatch.setenv('MM_RPC_URL', 'http://localhost:8899')

    config = load_config(yaml_config)

    assert config.engine.error_backoff_seconds == 0.5
    assert config.logging.level == LogLevel.DEBUG
    assert config.venue.rpc_url == 'http://localhost:8899'


@pytest.mark.parametrize("value", ['none', 'unbounded', ''])
def test_env_can_disable_retry_limit(yaml_config, monkeypatch, value):
    monkeypatch.setenv('MM_MAX_RETRIES', value)

    assert load_config(yaml_config).engine.max_consecutive_retries is None


def test_invalid_env_value_raises(yaml_config, monkeypatch):
    monkeypatch.setenv('MM_MAX_RETRIES', 'many')

    with pytest.raises(ConfigurationError):
        load_config(yaml_config)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_unsupported_format_raises(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[engine]\n")

    with pytest.raises(ConfigurationError, match="Unsupported"):
        load_config(path)


def test_non_mapping_root_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigurationError):
        load_config(path)


def test_duplicate_wallet_ids_rejected(tmp_path):
    data = dict(SAMPLE_CONFIG, wallets=[
        {'id': 'w1', 'public_key': 'a'},
        {'id': 'w1', 'public_key': 'b'},
    ])
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))

    with pytest.raises(ConfigurationError, match="unique"):
        load_config(path)


def test_negative_values_rejected(tmp_path):
    data = dict(SAMPLE_CONFIG, engine={'error_backoff_seconds': -1})
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))

    with pytest.raises(ConfigurationError):
        load_config(path)


def test_manager_requires_loaded_config():
    manager = ConfigManager()

    assert manager.is_loaded is False
    with pytest.raises(ConfigurationError):
        manager.get_config()


def test_manager_accessors_and_reload(yaml_config):
    manager = ConfigManager(yaml_config)
    manager.load_config()

    assert manager.is_loaded
    config = manager.get_config()
    assert config.engine.max_consecutive_retries == 3
    assert config.venue.native_asset_id == NATIVE_ASSET_ID
    assert config.global_settings.min_interval == 10

    yaml_config.write_text(yaml.safe_dump(dict(SAMPLE_CONFIG, wallets=[])))
    assert manager.reload().wallets == []


def test_create_default_config_round_trips(tmp_path):
    path = tmp_path / "nested" / "config.yaml"

    created = ConfigManager.create_default_config(path)

    assert path.exists()
    assert load_config(path) == created
