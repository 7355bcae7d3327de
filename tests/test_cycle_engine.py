import asyncio
import logging

import pytest

from market_maker.config import EngineSettings
from market_maker.exceptions import NetworkError, SwapError
from market_maker.models import EngineState, TradeKind

from conftest import CycleRecorder, ScriptedBalanceProvider, ScriptedSwapExecutor, build_engine


async def run_engine(engine, timeout=5.0):
    return await asyncio.wait_for(engine.run(), timeout)


@pytest.mark.asyncio
async def test_failed_buy_leg_still_completes_the_cycle(wallet, global_settings, fast_engine_settings):
    recorder = CycleRecorder()
    swaps = ScriptedSwapExecutor(fail_on={0})
    engine, registry = await build_engine(
        wallet, global_settings, swaps, ScriptedBalanceProvider(1.0), fast_engine_settings, recorder
    )

    final_state = await run_engine(engine)

    assert final_state == EngineState.RECYCLING
    assert engine.state.cycles_completed == 2
    assert recorder.progress() == [(1, False), (2, False), (2, True)]

    buy, sell = engine.state.transactions[:2]
    assert buy.kind == TradeKind.BUY and buy.success is False
    assert buy.signature is None
    assert "scripted failure" in buy.error
    assert sell.kind == TradeKind.SELL and sell.success is True
    assert len(engine.state.transactions) == 4
    assert wallet.id not in registry


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [SwapError("no route"), NetworkError("rpc timeout")])
async def test_failed_sell_leg_is_recorded(wallet, global_settings, fast_engine_settings, error):
    swaps = ScriptedSwapExecutor(fail_on={1}, error=error)
    engine, _ = await build_engine(
        wallet, global_settings, swaps, ScriptedBalanceProvider(1.0), fast_engine_settings
    )

    await run_engine(engine)

    sell = engine.state.transactions[1]
    assert sell.kind == TradeKind.SELL
    assert sell.success is False
    assert engine.state.cycles_completed == 2


@pytest.mark.asyncio
async def test_trade_legs_use_the_same_amount(wallet, global_settings, fast_engine_settings):
    swaps = ScriptedSwapExecutor()
    engine, _ = await build_engine(
        wallet, global_settings, swaps, ScriptedBalanceProvider(1.0), fast_engine_settings
    )

    await run_engine(engine)

    assert [call.is_buy for call in swaps.calls] == [True, False, True, False]
    assert all(call.amount == 0.1 for call in swaps.calls)


@pytest.mark.asyncio
async def test_low_balance_retries_without_counting_a_cycle(wallet, global_settings, fast_engine_settings):
    recorder = CycleRecorder()
    balances = ScriptedBalanceProvider([0.05, 0.19, 1.0])
    swaps = ScriptedSwapExecutor()
    engine, _ = await build_engine(
        wallet, global_settings, swaps, balances, fast_engine_settings, recorder
    )

    await run_engine(engine)

    assert balances.calls == 4
    assert len(swaps.calls) == 4
    assert recorder.progress() == [(1, False), (2, False), (2, True)]
    assert engine.state.consecutive_retries == 0


@pytest.mark.asyncio
async def test_retry_limit_stops_and_unregisters_the_bot(wallet, global_settings, caplog):
    settings = EngineSettings(
        low_balance_retry_seconds=0,
        inter_trade_delay_seconds=0,
        error_backoff_seconds=0,
        max_consecutive_retries=2,
    )
    recorder = CycleRecorder()
    balances = ScriptedBalanceProvider(0.0)
    swaps = ScriptedSwapExecutor()
    engine, registry = await build_engine(wallet, global_settings, swaps, balances, settings, recorder)

    with caplog.at_level(logging.INFO):
        final_state = await run_engine(engine)

    assert final_state == EngineState.STOPPED
    assert balances.calls == 3
    assert swaps.calls == []
    assert recorder.events == []
    assert engine.handle.stop_requested
    assert engine.state.is_running is False
    assert await registry.query(wallet.id) is None

    abandoned = [r for r in caplog.records if getattr(r, 'cycle_data', {}).get('event_type') == 'bot_abandoned']
    assert len(abandoned) == 1
    assert abandoned[0].levelno == logging.ERROR
    assert abandoned[0].cycle_data['attempts'] == 3
    assert abandoned[0].wallet_id == wallet.id


@pytest.mark.asyncio
async def test_completed_cycle_resets_the_retry_count(wallet, global_settings):
    settings = EngineSettings(
        low_balance_retry_seconds=0,
        inter_trade_delay_seconds=0,
        error_backoff_seconds=0,
        max_consecutive_retries=2,
    )
    balances = ScriptedBalanceProvider([0.0, 0.0, 1.0, 0.0, 0.0, 1.0])
    engine, _ = await build_engine(wallet, global_settings, ScriptedSwapExecutor(), balances, settings)

    final_state = await run_engine(engine)

    assert final_state == EngineState.RECYCLING
    assert engine.state.cycles_completed == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [NetworkError("rpc timeout"), RuntimeError("boom")])
async def test_balance_errors_back_off_and_retry(wallet, global_settings, fast_engine_settings, error):
    recorder = CycleRecorder()
    balances = ScriptedBalanceProvider([error, 1.0])
    engine, _ = await build_engine(
        wallet, global_settings, ScriptedSwapExecutor(), balances, fast_engine_settings, recorder
    )

    final_state = await run_engine(engine)

    assert final_state == EngineState.RECYCLING
    assert balances.calls == 3
    assert recorder.progress() == [(1, False), (2, False), (2, True)]


@pytest.mark.asyncio
async def test_stop_while_waiting_ends_the_loop(wallet, slow_settings, fast_engine_settings):
    recorder = CycleRecorder()
    engine, registry = await build_engine(
        wallet, slow_settings, ScriptedSwapExecutor(), ScriptedBalanceProvider(1.0),
        fast_engine_settings, recorder
    )

    task = asyncio.create_task(engine.run())
    await recorder.wait_for(1)

    status = await registry.query(wallet.id)
    assert status.cycles_completed == 1
    assert len(status.transactions) == 2

    assert await registry.stop(wallet.id) is True
    final_state = await asyncio.wait_for(task, 5)

    assert final_state == EngineState.STOPPED
    assert engine.state.cycles_completed == 1
    assert recorder.progress() == [(1, False)]


@pytest.mark.asyncio
async def test_stop_before_first_pass_trades_nothing(wallet, global_settings, fast_engine_settings):
    balances = ScriptedBalanceProvider(1.0)
    swaps = ScriptedSwapExecutor()
    engine, _ = await build_engine(wallet, global_settings, swaps, balances, fast_engine_settings)
    engine.handle.request_stop()

    final_state = await run_engine(engine)

    assert final_state == EngineState.STOPPED
    assert balances.calls == 0
    assert swaps.calls == []


@pytest.mark.asyncio
async def test_start_at_threshold_recycles_immediately(wallet, global_settings, fast_engine_settings):
    wallet.cycles_completed = 2
    recorder = CycleRecorder()
    swaps = ScriptedSwapExecutor()
    engine, registry = await build_engine(
        wallet, global_settings, swaps, ScriptedBalanceProvider(1.0), fast_engine_settings, recorder
    )

    final_state = await run_engine(engine)

    assert final_state == EngineState.RECYCLING
    assert swaps.calls == []
    assert recorder.progress() == [(2, True)]
    assert wallet.id not in registry


@pytest.mark.asyncio
async def test_failing_callback_does_not_stop_the_bot(wallet, global_settings, fast_engine_settings):
    calls = []

    def callback(wallet_id, cycles, recycled):
        calls.append((cycles, recycled))
        raise RuntimeError("owner store unavailable")

    engine, _ = await build_engine(
        wallet, global_settings, ScriptedSwapExecutor(), ScriptedBalanceProvider(1.0),
        fast_engine_settings, callback
    )

    final_state = await run_engine(engine)

    assert final_state == EngineState.RECYCLING
    assert calls == [(1, False), (2, False), (2, True)]


@pytest.mark.asyncio
async def test_async_callback_is_awaited(wallet, global_settings, fast_engine_settings):
    calls = []

    async def callback(wallet_id, cycles, recycled):
        await asyncio.sleep(0)
        calls.append((wallet_id, cycles, recycled))

    engine, _ = await build_engine(
        wallet, global_settings, ScriptedSwapExecutor(), ScriptedBalanceProvider(1.0),
        fast_engine_settings, callback
    )

    await run_engine(engine)

    assert calls == [(wallet.id, 1, False), (wallet.id, 2, False), (wallet.id, 2, True)]
