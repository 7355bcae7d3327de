import asyncio

import pytest

from market_maker.bot import BotOrchestrator, BotRegistry, RecycleCoordinator, RecycleHook, SweepFundsHook
from market_maker.exceptions import TransferError
from market_maker.exchange import PaperVenue
from market_maker.models import EngineState, RecycleEvent, Wallet

from conftest import CycleRecorder, ScriptedBalanceProvider, ScriptedSwapExecutor, build_engine


class RecordingHook:
    def __init__(self, registry=None, fail=False):
        self.events = []
        self.registry = registry
        self.fail = fail
        self.registered_during_hook = None

    async def on_recycle(self, event):
        self.events.append(event)
        if self.registry is not None:
            self.registered_during_hook = event.wallet_id in self.registry
        if self.fail:
            raise RuntimeError("hook exploded")


def test_recording_hook_satisfies_protocol():
    assert isinstance(RecordingHook(), RecycleHook)
    assert isinstance(SweepFundsHook(None, PaperVenue(), PaperVenue(), PaperVenue()), RecycleHook)


@pytest.mark.asyncio
async def test_hook_runs_after_registry_removal(wallet, global_settings, fast_engine_settings):
    registry = BotRegistry()
    hook = RecordingHook(registry)
    recorder = CycleRecorder()
    engine, _ = await build_engine(
        wallet, global_settings, ScriptedSwapExecutor(), ScriptedBalanceProvider(1.0),
        fast_engine_settings, recorder, registry=registry, recycle_hook=hook
    )

    final_state = await asyncio.wait_for(engine.run(), 5)

    assert final_state == EngineState.RECYCLING
    assert len(hook.events) == 1
    assert hook.events[0].wallet_id == wallet.id
    assert hook.events[0].cycles_completed == 2
    assert hook.registered_during_hook is False
    assert recorder.progress()[-1] == (2, True)


@pytest.mark.asyncio
async def test_failing_hook_still_retires_the_wallet(wallet, global_settings, fast_engine_settings):
    hook = RecordingHook(fail=True)
    recorder = CycleRecorder()
    engine, registry = await build_engine(
        wallet, global_settings, ScriptedSwapExecutor(), ScriptedBalanceProvider(1.0),
        fast_engine_settings, recorder, recycle_hook=hook
    )

    final_state = await asyncio.wait_for(engine.run(), 5)

    assert final_state == EngineState.RECYCLING
    assert wallet.id not in registry
    assert recorder.progress() == [(1, False), (2, False), (2, True)]


@pytest.mark.asyncio
async def test_recycle_without_hook_returns_event(wallet, global_settings, fast_engine_settings):
    engine, registry = await build_engine(
        wallet, global_settings, ScriptedSwapExecutor(), ScriptedBalanceProvider(1.0),
        fast_engine_settings
    )
    coordinator = RecycleCoordinator(registry)
    engine.state.cycles_completed = 2

    event = await coordinator.recycle(engine.state, engine.handle, None)

    assert isinstance(event, RecycleEvent)
    assert event.cycles_completed == 2
    assert engine.state.engine_state == EngineState.RECYCLING
    assert engine.state.is_running is False
    assert wallet.id not in registry


@pytest.mark.asyncio
async def test_sweep_hook_moves_funds_to_replacement(wallet, global_settings, fast_engine_settings):
    venue = PaperVenue()
    venue.fund(wallet.public_key, 1.0)
    venue.register_signer(wallet.signing_key, wallet.public_key)
    hook = SweepFundsHook(None, venue, venue, venue, fee_reserve=0.001)
    orchestrator = BotOrchestrator(
        connection=None,
        swap_executor=venue,
        balance_provider=venue,
        engine_settings=fast_engine_settings,
        recycle_hook=hook,
    )

    handle = await orchestrator.start_bot(wallet, global_settings)
    await asyncio.wait_for(handle.task, 5)

    replacement = hook.replacements[wallet.id]
    assert isinstance(replacement, Wallet)
    assert replacement.public_key != wallet.public_key
    assert venue.balance_of(replacement.public_key) > 0.99
    assert venue.balance_of(wallet.public_key) == pytest.approx(
        0.001 - venue.config.fee_per_transaction
    )


@pytest.mark.asyncio
async def test_sweep_hook_skips_empty_wallet(wallet):
    venue = PaperVenue()
    venue.fund(wallet.public_key, 0.0005)
    hook = SweepFundsHook(None, venue, venue, venue)

    await hook.on_recycle(RecycleEvent(wallet=wallet, cycles_completed=3))

    assert wallet.id in hook.replacements
    assert venue.get_stats()['transfers'] == 0


@pytest.mark.asyncio
async def test_sweep_hook_wraps_transfer_failures(wallet):
    venue = PaperVenue()
    venue.fund(wallet.public_key, 1.0)

    class BrokenTransfer:
        async def transfer(self, connection, from_wallet, to_address, amount):
            raise ConnectionError("socket closed")

    hook = SweepFundsHook(None, venue, BrokenTransfer(), venue)

    with pytest.raises(TransferError) as exc_info:
        await hook.on_recycle(RecycleEvent(wallet=wallet, cycles_completed=3))

    assert exc_info.value.from_address == wallet.public_key
    assert isinstance(exc_info.value.__cause__, ConnectionError)
