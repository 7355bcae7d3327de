"""
Data models for the wallet cycle market maker.

This module defines the dataclasses shared by the orchestrator, the cycle
engine and the venue collaborators: wallet snapshots, transaction records,
resolved settings, per-bot state and the read-only status snapshots handed
out to callers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import time
import uuid

from .config import CustomSettings


def now_ms() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id(prefix: str = "") -> str:
    """Generate a unique ID with optional prefix."""
    unique_id = str(uuid.uuid4())[:8]
    return f"{prefix}_{unique_id}" if prefix else unique_id


class TradeKind(Enum):
    """Swap leg direction."""
    BUY = "buy"
    SELL = "sell"


class EngineState(Enum):
    """States of the per-bot trading cycle state machine."""
    CHECKING = "checking"
    TRADING = "trading"
    WAITING = "waiting"
    RECYCLING = "recycling"
    STOPPED = "stopped"


@dataclass
class Wallet:
    """
    Wallet snapshot taken when a bot starts.

    The signing key is opaque to the market maker; it is only handed to
    the swap and transfer collaborators and never logged.
    """

    id: str
    public_key: str
    signing_key: Any = field(default=None, repr=False)
    cycles_completed: int = 0
    is_active: bool = False
    custom_settings: Optional[CustomSettings] = None

    @property
    def label(self) -> str:
        """Short public key prefix used in log messages."""
        return f"{self.public_key[:8]}..."

    @property
    def uses_custom_settings(self) -> bool:
        return bool(self.custom_settings and self.custom_settings.enabled)


@dataclass(frozen=True)
class SwapRequest:
    """Parameters of a single swap leg."""

    trade_asset_id: str
    amount: float
    is_buy: bool

    @property
    def kind(self) -> TradeKind:
        return TradeKind.BUY if self.is_buy else TradeKind.SELL


@dataclass(frozen=True)
class TransactionRecord:
    """Outcome of one swap leg. Immutable once created."""

    signature: Optional[str]
    success: bool
    timestamp: int
    kind: TradeKind
    amount: float
    input_asset_id: str
    output_asset_id: str
    error: Optional[str] = None

    @classmethod
    def failed(
        cls,
        request: SwapRequest,
        native_asset_id: str,
        error: str
    ) -> 'TransactionRecord':
        """Build the record of a leg the swap collaborator could not execute."""
        input_asset, output_asset = swap_assets(request, native_asset_id)
        return cls(
            signature=None,
            success=False,
            timestamp=now_ms(),
            kind=request.kind,
            amount=request.amount,
            input_asset_id=input_asset,
            output_asset_id=output_asset,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'signature': self.signature,
            'success': self.success,
            'timestamp': self.timestamp,
            'type': self.kind.value,
            'amount': self.amount,
            'input_token': self.input_asset_id,
            'output_token': self.output_asset_id,
            'error': self.error,
        }


def swap_assets(request: SwapRequest, native_asset_id: str) -> Tuple[str, str]:
    """Return (input, output) asset ids of a swap leg."""
    if request.is_buy:
        return native_asset_id, request.trade_asset_id
    return request.trade_asset_id, native_asset_id


@dataclass(frozen=True)
class EffectiveSettings:
    """Resolved parameter set driving one bot."""

    min_interval: int
    max_interval: int
    min_amount: float
    max_amount: float
    cycles_before_recycle: int
    is_randomized: bool
    trade_asset_id: str
    use_custom_settings: bool = False


@dataclass
class BotState:
    """
    Transient state of one running bot.

    Owned exclusively by the bot's cycle engine; the registry only sees
    the BotStatus snapshots published after each cycle.
    """

    wallet: Wallet
    settings: EffectiveSettings
    cycles_completed: int = 0
    is_running: bool = True
    last_action_time: int = field(default_factory=now_ms)
    transactions: List[TransactionRecord] = field(default_factory=list)
    stop_requested: bool = False
    engine_state: EngineState = EngineState.CHECKING
    consecutive_retries: int = 0

    @property
    def wallet_id(self) -> str:
        return self.wallet.id

    def record(self, transaction: TransactionRecord) -> None:
        """Append a leg outcome to the history."""
        self.transactions.append(transaction)

    def snapshot(self) -> 'BotStatus':
        """Build a read-only status snapshot."""
        return BotStatus(
            is_active=self.is_running,
            cycles_completed=self.cycles_completed,
            last_action_time=self.last_action_time,
            transactions=tuple(self.transactions),
            use_custom_settings=self.settings.use_custom_settings,
            engine_state=self.engine_state,
        )


@dataclass(frozen=True)
class BotStatus:
    """Read-only status of a registered bot."""

    is_active: bool
    cycles_completed: int
    last_action_time: int
    transactions: Tuple[TransactionRecord, ...] = ()
    use_custom_settings: bool = False
    engine_state: EngineState = EngineState.CHECKING


@dataclass(frozen=True)
class BotSummary:
    """One row of the active bots listing."""

    id: str
    public_key: str
    cycles_completed: int
    last_action_time: int
    use_custom_settings: bool


@dataclass(frozen=True)
class RecycleEvent:
    """Emitted when a wallet reaches its cycle threshold."""

    wallet: Wallet
    cycles_completed: int
    occurred_at: int = field(default_factory=now_ms)

    @property
    def wallet_id(self) -> str:
        return self.wallet.id
