"""
Effective settings resolution.

Merges a wallet's custom settings block with the global defaults into the
single parameter set that drives the wallet's bot.
"""

import logging
from typing import Optional

from ..config import CycleSettings, NATIVE_ASSET_ID
from ..exceptions import InvalidSettingsError
from ..models import EffectiveSettings, Wallet

logger = logging.getLogger(__name__)


class SettingsResolver:
    """
    Resolves and validates the effective settings of a wallet.

    An enabled custom block replaces the global settings entirely and must
    name the asset to trade. Otherwise the global settings apply and the
    bot trades the venue's native asset.
    """

    def __init__(self, native_asset_id: str = NATIVE_ASSET_ID):
        self.native_asset_id = native_asset_id

    def resolve(self, wallet: Wallet, global_settings: CycleSettings) -> EffectiveSettings:
        """
        Resolve the effective settings for a wallet.

        Args:
            wallet: Wallet snapshot
            global_settings: Global default settings

        Returns:
            EffectiveSettings for the wallet's bot

        Raises:
            InvalidSettingsError: If the resolved settings are inconsistent
        """
        use_custom = wallet.uses_custom_settings
        source = wallet.custom_settings if use_custom else global_settings

        if source is None:
            raise InvalidSettingsError("No settings available for wallet", field="settings")

        if use_custom:
            trade_asset_id = self._require_trade_asset(source.trade_asset_id)
        else:
            trade_asset_id = self.native_asset_id

        self.validate(source)

        effective = EffectiveSettings(
            min_interval=source.min_interval,
            max_interval=source.max_interval,
            min_amount=source.min_amount,
            max_amount=source.max_amount,
            cycles_before_recycle=source.cycles_before_recycle,
            is_randomized=source.is_randomized,
            trade_asset_id=trade_asset_id,
            use_custom_settings=use_custom,
        )

        logger.debug(
            f"Resolved {'custom' if use_custom else 'global'} settings for wallet {wallet.id}"
        )
        return effective

    def _require_trade_asset(self, trade_asset_id: Optional[str]) -> str:
        if not trade_asset_id or not trade_asset_id.strip():
            raise InvalidSettingsError("Trade asset is required", field="trade_asset_id")
        return trade_asset_id.strip()

    @staticmethod
    def validate(settings: CycleSettings) -> None:
        """
        Check bound ordering and ranges of a settings block.

        Raises:
            InvalidSettingsError: On the first violated constraint
        """
        if settings.min_interval < 0 or settings.min_amount < 0:
            raise InvalidSettingsError("Interval and amount bounds must be non-negative")
        if settings.min_interval > settings.max_interval:
            raise InvalidSettingsError(
                f"min_interval ({settings.min_interval}) must not exceed "
                f"max_interval ({settings.max_interval})",
                field="min_interval"
            )
        if settings.min_amount > settings.max_amount:
            raise InvalidSettingsError(
                f"min_amount ({settings.min_amount}) must not exceed "
                f"max_amount ({settings.max_amount})",
                field="min_amount"
            )
        if settings.cycles_before_recycle < 1:
            raise InvalidSettingsError(
                "cycles_before_recycle must be at least 1",
                field="cycles_before_recycle"
            )
