"""
Trading cycle engine.

This module provides the TradingCycleEngine, the per-wallet state machine
that runs one bot:

    CHECKING -> TRADING -> WAITING -> CHECKING ...
    CHECKING -> RECYCLING (terminal, cycle threshold reached)
    CHECKING / WAITING -> STOPPED (terminal, stop requested)

A failure while checking or trading moves the bot to WAITING with a fixed
backoff before it returns to CHECKING.
"""

import asyncio
import logging
from typing import Any, Optional

from ..config import EngineSettings, NATIVE_ASSET_ID
from ..exceptions import NetworkError, RetryLimitExceededError, SwapError
from ..exchange import BalanceProvider, SwapExecutor
from ..models import BotState, EngineState, SwapRequest, TransactionRecord, now_ms
from ..utils import get_logger
from .callbacks import CycleCompleteCallback, notify_cycle_complete
from .recycle import RecycleCoordinator
from .registry import BotHandle, BotRegistry
from .scheduling import SchedulingPolicy

logger = get_logger(__name__)


class TradingCycleEngine:
    """
    Drives the trading cycles of one wallet.

    Each pass checks the stop flag and the recycle threshold, verifies the
    wallet can fund both legs, executes a buy, waits the inter-trade delay,
    executes a sell and schedules the next pass. A failed swap leg is
    recorded and does not abort the cycle; any other failure backs off and
    retries. Stopping is cooperative: it takes effect at the top of a pass
    or while waiting, never in the middle of a swap.

    Attributes:
        state: BotState owned by this engine
        handle: Registry handle carrying the stop signal
    """

    def __init__(
        self,
        state: BotState,
        handle: BotHandle,
        connection: Any,
        swap_executor: SwapExecutor,
        balance_provider: BalanceProvider,
        registry: BotRegistry,
        recycle_coordinator: RecycleCoordinator,
        policy: Optional[SchedulingPolicy] = None,
        engine_settings: Optional[EngineSettings] = None,
        native_asset_id: str = NATIVE_ASSET_ID,
        on_cycle_complete: Optional[CycleCompleteCallback] = None
    ):
        self.state = state
        self.handle = handle
        self.connection = connection
        self.swap_executor = swap_executor
        self.balance_provider = balance_provider
        self.registry = registry
        self.recycle_coordinator = recycle_coordinator
        self.policy = policy or SchedulingPolicy()
        self.engine_settings = engine_settings or EngineSettings()
        self.native_asset_id = native_asset_id
        self.on_cycle_complete = on_cycle_complete

        self._logger = logger.bind(wallet_id=state.wallet_id)

    @property
    def label(self) -> str:
        return self.state.wallet.label

    def _stop_requested(self) -> bool:
        if self.handle.stop_requested:
            self.state.stop_requested = True
        return self.state.stop_requested

    def _set_state(self, engine_state: EngineState) -> None:
        self.state.engine_state = engine_state

    async def run(self) -> EngineState:
        """
        Run cycles until the bot is stopped or recycled.

        Returns:
            The terminal state the bot ended in
        """
        self._logger.log_cycle_event({
            'event_type': 'started',
            'cycles_completed': self.state.cycles_completed,
            'cycles_before_recycle': self.state.settings.cycles_before_recycle,
        }, msg=f"Trade loop started for wallet {self.label}")

        try:
            while True:
                try:
                    delay = await self._run_pass()
                except RetryLimitExceededError as e:
                    await self._abandon(e)
                    break

                if delay is None:
                    break
                if not await self._wait(delay):
                    self._finish_stopped()
                    break
        finally:
            self.state.is_running = False

        return self.state.engine_state

    async def _run_pass(self) -> Optional[float]:
        """
        Execute one CHECKING pass, trading if the wallet is funded.

        Returns:
            Seconds to wait before the next pass, or None once terminal
        """
        try:
            self._set_state(EngineState.CHECKING)

            if self._stop_requested():
                self._finish_stopped()
                return None

            if self.state.cycles_completed >= self.state.settings.cycles_before_recycle:
                await self.recycle_coordinator.recycle(self.state, self.handle, self.on_cycle_complete)
                await self._publish()
                return None

            balance = await self.balance_provider.get_balance(
                self.connection, self.state.wallet.public_key
            )
            amount = self.policy.amount(self.state.settings)
            required = amount * self.engine_settings.balance_multiplier

            if balance < required:
                self._logger.log_balance_event({
                    'balance': balance,
                    'required': required,
                    'amount': amount,
                }, msg=f"Insufficient balance in wallet {self.label}: "
                       f"{balance:.4f} < {required:.4f}, retrying later")
                return self._retry_delay(self.engine_settings.low_balance_retry_seconds)

            self._set_state(EngineState.TRADING)
            await self._trade(amount)

            self.state.consecutive_retries = 0
            interval = self.policy.interval(self.state.settings)
            self._logger.info(f"Next trade cycle in {interval} seconds")
            return float(interval)

        except (asyncio.CancelledError, RetryLimitExceededError):
            raise
        except Exception as e:
            self._logger.error(
                f"Market making cycle failed for wallet {self.label}: {e}",
                exc_info=not isinstance(e, NetworkError)
            )
            return self._retry_delay(self.engine_settings.error_backoff_seconds)

    async def _trade(self, amount: float) -> None:
        """Execute the buy leg, the inter-trade delay and the sell leg."""
        settings = self.state.settings
        self._logger.info(
            f"Executing trade cycle {self.state.cycles_completed + 1} for wallet {self.label}"
        )

        await self._execute_leg(SwapRequest(settings.trade_asset_id, amount, is_buy=True))

        self._logger.debug("Waiting between transactions...")
        await asyncio.sleep(self.engine_settings.inter_trade_delay_seconds)

        await self._execute_leg(SwapRequest(settings.trade_asset_id, amount, is_buy=False))

        self.state.cycles_completed += 1
        self.state.last_action_time = now_ms()
        await self._publish()

        self._logger.log_cycle_event({
            'event_type': 'cycle_completed',
            'cycles_completed': self.state.cycles_completed,
            'amount': amount,
        }, msg=f"Cycle {self.state.cycles_completed} completed for wallet {self.label}")

        await notify_cycle_complete(
            self.on_cycle_complete, self.state.wallet_id, self.state.cycles_completed, False
        )

    async def _execute_leg(self, request: SwapRequest) -> TransactionRecord:
        """
        Execute one swap leg and record its outcome.

        Venue failures become a failed TransactionRecord; the cycle goes on.
        """
        try:
            record = await self.swap_executor.swap(
                self.connection, self.state.wallet.signing_key, request
            )
        except (SwapError, NetworkError) as e:
            record = TransactionRecord.failed(request, self.native_asset_id, str(e))
            self._logger.warning(f"Swap failed: {e}")

        self.state.record(record)
        self._logger.log_trade(
            record.to_dict(),
            msg=f"{request.kind.value.capitalize()} {'executed' if record.success else 'failed'} "
                f"for {request.amount:.6f} on wallet {self.label}"
        )
        return record

    def _retry_delay(self, delay: float) -> float:
        """
        Count a retry and return its delay.

        Raises:
            RetryLimitExceededError: If a retry limit is configured and exhausted
        """
        self.state.consecutive_retries += 1
        limit = self.engine_settings.max_consecutive_retries
        if limit is not None and self.state.consecutive_retries > limit:
            raise RetryLimitExceededError(
                f"Wallet {self.label} exceeded {limit} consecutive retries",
                attempts=self.state.consecutive_retries
            )
        return delay

    async def _wait(self, delay: float) -> bool:
        """
        Wait before the next pass unless a stop arrives first.

        Returns:
            True if the delay elapsed, False if the bot was stopped
        """
        self._set_state(EngineState.WAITING)
        if self._stop_requested():
            return False

        try:
            await asyncio.wait_for(self.handle.stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return not self._stop_requested()

        self.state.stop_requested = True
        return False

    def _finish_stopped(self) -> None:
        self._set_state(EngineState.STOPPED)
        self.state.is_running = False
        self._logger.log_cycle_event({
            'event_type': 'stopped',
            'cycles_completed': self.state.cycles_completed,
        }, msg=f"Bot stop requested, ending trade loop for wallet {self.label}")

    async def _abandon(self, error: RetryLimitExceededError) -> None:
        """
        Stop a bot that exhausted its retry budget and unregister it.

        The owner is not called back; the bot_abandoned event is the only
        report that the wallet is no longer traded.
        """
        self._logger.log_cycle_event({
            'event_type': 'bot_abandoned',
            'reason': error.error_code,
            'attempts': error.attempts,
            'cycles_completed': self.state.cycles_completed,
        }, msg=f"{error}; stopping bot", level=logging.ERROR)
        self.state.stop_requested = True
        self.handle.request_stop()
        self._finish_stopped()
        await self.registry.remove(self.state.wallet_id, self.handle)

    async def _publish(self) -> None:
        await self.registry.update_status(self.handle, self.state.snapshot())
