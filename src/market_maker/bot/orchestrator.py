"""
Bot Orchestrator for the wallet cycle market maker.

This module provides the BotOrchestrator class, the public entry point
that creates, tracks, schedules and terminates one trading bot per wallet.
"""

import asyncio
import functools
from typing import Any, Optional, Set

from ..config import CycleSettings, EngineSettings, MarketMakerConfig, NATIVE_ASSET_ID
from ..exceptions import InsufficientBalanceError, StartError
from ..exchange import BalanceProvider, SwapExecutor
from ..models import BotState, BotStatus, Wallet
from ..utils import get_logger
from .callbacks import CycleCompleteCallback
from .cycle_engine import TradingCycleEngine
from .recycle import RecycleCoordinator, RecycleHook
from .registry import BotHandle, BotRegistry, BotSummaryView
from .scheduling import SchedulingPolicy
from .settings_resolver import SettingsResolver

logger = get_logger(__name__)


class BotOrchestrator:
    """
    Main market maker orchestrator.

    Starting a bot:
    1. Reserve the wallet id (one bot per wallet)
    2. Resolve the wallet's effective settings
    3. Check the wallet can fund a buy and a sell of the minimum amount
    4. Launch the wallet's TradingCycleEngine as an asyncio task
    5. Register the bot's handle

    Bots run independently; one bot failing never affects another.

    Attributes:
        registry: BotRegistry holding the running bots
        connection: Opaque venue connection handed to the collaborators
    """

    def __init__(
        self,
        connection: Any,
        swap_executor: SwapExecutor,
        balance_provider: BalanceProvider,
        engine_settings: Optional[EngineSettings] = None,
        native_asset_id: str = NATIVE_ASSET_ID,
        registry: Optional[BotRegistry] = None,
        policy: Optional[SchedulingPolicy] = None,
        recycle_hook: Optional[RecycleHook] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            connection: Venue connection passed through to the collaborators
            swap_executor: Executes swap legs
            balance_provider: Reads wallet balances
            engine_settings: Cycle engine timings and retry policy
            native_asset_id: Identifier of the venue's native asset
            registry: Registry to use; a private one is created if omitted
            policy: Scheduling policy shared by all bots
            recycle_hook: Action run after a wallet is recycled
        """
        self.connection = connection
        self.swap_executor = swap_executor
        self.balance_provider = balance_provider
        self.engine_settings = engine_settings or EngineSettings()
        self.native_asset_id = native_asset_id
        self.registry = registry if registry is not None else BotRegistry()
        self.policy = policy or SchedulingPolicy()
        self.resolver = SettingsResolver(native_asset_id)
        self.recycle_coordinator = RecycleCoordinator(self.registry, recycle_hook)

        self._tasks: Set[asyncio.Task] = set()

        logger.info("BotOrchestrator initialized")

    @classmethod
    def from_config(
        cls,
        config: MarketMakerConfig,
        connection: Any,
        swap_executor: SwapExecutor,
        balance_provider: BalanceProvider,
        **kwargs
    ) -> 'BotOrchestrator':
        """Build an orchestrator from a loaded MarketMakerConfig."""
        return cls(
            connection,
            swap_executor,
            balance_provider,
            engine_settings=config.engine,
            native_asset_id=config.venue.native_asset_id,
            **kwargs
        )

    async def start_bot(
        self,
        wallet: Wallet,
        global_settings: CycleSettings,
        on_cycle_complete: Optional[CycleCompleteCallback] = None
    ) -> BotHandle:
        """
        Start a market making bot for a wallet.

        Args:
            wallet: Wallet snapshot
            global_settings: Global settings used unless the wallet has an
                enabled custom settings block
            on_cycle_complete: Called as (wallet_id, cycles_completed, recycled)
                after every cycle and once more on recycle

        Returns:
            BotHandle of the started bot

        Raises:
            DuplicateBotError: If the wallet already has a bot
            InvalidSettingsError: If the effective settings are invalid
            InsufficientBalanceError: If the balance is below twice the minimum amount
            NetworkError: If the starting balance could not be fetched
        """
        await self.registry.reserve(wallet.id)
        try:
            handle = await self._launch(wallet, global_settings, on_cycle_complete)
        except StartError as e:
            await self.registry.release(wallet.id)
            logger.error(f"Failed to start market making for wallet {wallet.label}: {e}")
            raise
        except BaseException:
            await self.registry.release(wallet.id)
            raise

        settings_type = 'custom' if wallet.uses_custom_settings else 'global'
        logger.log_cycle_event({
            'event_type': 'bot_started',
            'wallet_id': wallet.id,
            'settings': settings_type,
        }, msg=f"Started market making for wallet {wallet.label} using {settings_type} settings")
        return handle

    async def _launch(
        self,
        wallet: Wallet,
        global_settings: CycleSettings,
        on_cycle_complete: Optional[CycleCompleteCallback]
    ) -> BotHandle:
        settings = self.resolver.resolve(wallet, global_settings)

        balance = await self.balance_provider.get_balance(self.connection, wallet.public_key)
        required = settings.min_amount * self.engine_settings.balance_multiplier
        if balance < required:
            raise InsufficientBalanceError(required=required, available=balance)

        state = BotState(
            wallet=wallet,
            settings=settings,
            cycles_completed=wallet.cycles_completed or 0,
        )
        handle = BotHandle(
            wallet_id=wallet.id,
            public_key=wallet.public_key,
            status=state.snapshot(),
        )
        engine = TradingCycleEngine(
            state=state,
            handle=handle,
            connection=self.connection,
            swap_executor=self.swap_executor,
            balance_provider=self.balance_provider,
            registry=self.registry,
            recycle_coordinator=self.recycle_coordinator,
            policy=self.policy,
            engine_settings=self.engine_settings,
            native_asset_id=self.native_asset_id,
            on_cycle_complete=on_cycle_complete,
        )

        # Registered before the task runs so a bot that recycles on its
        # first pass still finds its own entry to remove.
        await self.registry.register(handle)
        handle.task = asyncio.create_task(engine.run(), name=f"market-maker-{wallet.id}")
        self._tasks.add(handle.task)
        handle.task.add_done_callback(functools.partial(self._on_task_done, handle))
        return handle

    def _on_task_done(self, handle: BotHandle, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Bot task {task.get_name()} was cancelled")
        else:
            error = task.exception()
            if error is not None:
                logger.error(f"Bot task {task.get_name()} crashed: {error}", exc_info=error)

        # A task that ended outside the engine's terminal paths leaves its entry behind
        if self.registry.discard(handle.wallet_id, handle):
            logger.log_cycle_event({
                'event_type': 'bot_removed',
                'wallet_id': handle.wallet_id,
            }, msg=f"Removed bot of wallet {handle.wallet_id} after its task ended")

    async def stop_bot(self, wallet_id: str) -> bool:
        """
        Stop the bot of a wallet.

        Returns:
            True if a bot was found; False if none was running
        """
        stopped = await self.registry.stop(wallet_id)
        if stopped:
            logger.log_cycle_event({
                'event_type': 'bot_stopped',
                'wallet_id': wallet_id,
            }, msg=f"Stopped market making for wallet {wallet_id}")
        return stopped

    async def handle_wallet_deleted(self, wallet_id: str) -> bool:
        """Tear down the bot of a wallet removed by its owner."""
        return await self.stop_bot(wallet_id)

    async def get_bot_status(self, wallet_id: str) -> Optional[BotStatus]:
        """Status snapshot of a wallet's bot, or None if it is not running."""
        return await self.registry.query(wallet_id)

    async def list_active_bots(self) -> BotSummaryView:
        """Summaries of all running bots."""
        return await self.registry.list_all()

    async def shutdown(self, timeout: Optional[float] = 30.0) -> None:
        """
        Stop every bot and wait for their tasks to finish.

        Bots in the middle of a swap finish the leg before stopping; tasks
        still running after ``timeout`` seconds are cancelled.
        """
        handles = await self.registry.handles()
        for handle in handles:
            await self.registry.stop(handle.wallet_id)

        tasks = list(self._tasks)
        if not tasks:
            return

        logger.info(f"Waiting for {len(tasks)} bot task(s) to finish...")
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("All bots stopped")
