import asyncio
from typing import Iterable, List, Optional, Union

import pytest

from market_maker.bot import (
    BotHandle,
    BotRegistry,
    RecycleCoordinator,
    SchedulingPolicy,
    SettingsResolver,
    TradingCycleEngine,
)
from market_maker.config import NATIVE_ASSET_ID, CustomSettings, CycleSettings, EngineSettings
from market_maker.exceptions import SwapError
from market_maker.models import BotState, SwapRequest, TransactionRecord, Wallet, now_ms, swap_assets

TOKEN_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class ScriptedSwapExecutor:
    """Swap executor that succeeds except on the listed call indices."""

    def __init__(self, fail_on: Iterable[int] = (), error: Optional[Exception] = None):
        self.fail_on = set(fail_on)
        self.error = error
        self.calls: List[SwapRequest] = []

    async def swap(self, connection, signing_key, request):
        index = len(self.calls)
        self.calls.append(request)
        if index in self.fail_on:
            raise self.error or SwapError(
                "scripted failure", is_buy=request.is_buy, trade_asset_id=request.trade_asset_id
            )
        input_asset, output_asset = swap_assets(request, NATIVE_ASSET_ID)
        return TransactionRecord(
            signature=f"sig-{index}",
            success=True,
            timestamp=now_ms(),
            kind=request.kind,
            amount=request.amount,
            input_asset_id=input_asset,
            output_asset_id=output_asset,
        )


class ScriptedBalanceProvider:
    """
    Returns the scripted balances in order, repeating the last one.

    Exception instances in the script are raised instead of returned.
    """

    def __init__(self, balances: Union[float, List[Union[float, Exception]]], delay: float = 0.0):
        self.balances = list(balances) if isinstance(balances, list) else [balances]
        self.delay = delay
        self.calls = 0

    async def get_balance(self, connection, address):
        if self.delay:
            await asyncio.sleep(self.delay)
        index = min(self.calls, len(self.balances) - 1)
        self.calls += 1
        value = self.balances[index]
        if isinstance(value, Exception):
            raise value
        return value


class CycleRecorder:
    """on_cycle_complete callback that remembers every notification."""

    def __init__(self):
        self.events = []
        self._changed = asyncio.Event()

    def __call__(self, wallet_id, cycles_completed, recycled):
        self.events.append((wallet_id, cycles_completed, recycled))
        self._changed.set()

    async def wait_for(self, count: int, timeout: float = 5.0) -> None:
        async def _wait():
            while len(self.events) < count:
                self._changed.clear()
                await self._changed.wait()
        await asyncio.wait_for(_wait(), timeout)

    def progress(self):
        return [(cycles, recycled) for _, cycles, recycled in self.events]


@pytest.fixture
def fast_engine_settings():
    return EngineSettings(
        low_balance_retry_seconds=0,
        inter_trade_delay_seconds=0,
        error_backoff_seconds=0,
    )


@pytest.fixture
def global_settings():
    return CycleSettings(
        min_interval=0,
        max_interval=0,
        min_amount=0.1,
        max_amount=0.1,
        cycles_before_recycle=2,
        is_randomized=False,
    )


@pytest.fixture
def slow_settings():
    """Settings that park a bot in WAITING for an hour after each cycle."""
    return CycleSettings(
        min_interval=3600,
        max_interval=3600,
        min_amount=0.1,
        max_amount=0.1,
        cycles_before_recycle=5,
        is_randomized=False,
    )


@pytest.fixture
def wallet():
    return Wallet(
        id="wallet-1",
        public_key="7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
        signing_key="secret",
    )


@pytest.fixture
def custom_wallet():
    return Wallet(
        id="wallet-2",
        public_key="9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM",
        signing_key="secret-2",
        custom_settings=CustomSettings(
            enabled=True,
            min_interval=5,
            max_interval=15,
            min_amount=0.02,
            max_amount=0.04,
            cycles_before_recycle=3,
            is_randomized=True,
            trade_asset_id=TOKEN_MINT,
        ),
    )


async def build_engine(
    wallet: Wallet,
    settings: CycleSettings,
    swap_executor,
    balance_provider,
    engine_settings: EngineSettings,
    on_cycle_complete=None,
    registry: Optional[BotRegistry] = None,
    recycle_hook=None,
):
    """Build a registered engine the way the orchestrator does."""
    registry = registry or BotRegistry()
    effective = SettingsResolver().resolve(wallet, settings)
    state = BotState(wallet=wallet, settings=effective, cycles_completed=wallet.cycles_completed)
    handle = BotHandle(wallet_id=wallet.id, public_key=wallet.public_key, status=state.snapshot())
    await registry.reserve(wallet.id)
    await registry.register(handle)

    engine = TradingCycleEngine(
        state=state,
        handle=handle,
        connection=None,
        swap_executor=swap_executor,
        balance_provider=balance_provider,
        registry=registry,
        recycle_coordinator=RecycleCoordinator(registry, recycle_hook),
        policy=SchedulingPolicy(),
        engine_settings=engine_settings,
        on_cycle_complete=on_cycle_complete,
    )
    return engine, registry
