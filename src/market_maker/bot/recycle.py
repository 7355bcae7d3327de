"""
Wallet recycling.

When a bot reaches its cycle threshold the wallet is retired: the owner is
notified once with ``recycled=True`` and the bot leaves the registry.
Creating a replacement wallet and moving the remaining funds is not done
by the market maker itself; it is delegated to an optional RecycleHook.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from ..exceptions import TransferError
from ..exchange import BalanceProvider, FundTransfer, WalletFactory
from ..models import BotState, EngineState, RecycleEvent, Wallet
from ..utils import get_logger
from .callbacks import CycleCompleteCallback, notify_cycle_complete
from .registry import BotHandle, BotRegistry

logger = get_logger(__name__)


@runtime_checkable
class RecycleHook(Protocol):
    """Owner-supplied action run after a wallet has been retired."""

    async def on_recycle(self, event: RecycleEvent) -> None:
        ...


class RecycleCoordinator:
    """
    Handles the terminal cycle-threshold transition of a bot.

    Attributes:
        registry: Registry the retired bot is removed from
        hook: Optional action for replacement wallets and fund transfer
    """

    def __init__(self, registry: BotRegistry, hook: Optional[RecycleHook] = None):
        self.registry = registry
        self.hook = hook

    async def recycle(
        self,
        state: BotState,
        handle: BotHandle,
        on_cycle_complete: Optional[CycleCompleteCallback]
    ) -> RecycleEvent:
        """
        Retire a bot that reached its cycle threshold.

        Notifies the owner exactly once with ``recycled=True``, removes the
        bot from the registry, then runs the recycle hook if one is set.
        """
        state.engine_state = EngineState.RECYCLING
        state.is_running = False
        event = RecycleEvent(wallet=state.wallet, cycles_completed=state.cycles_completed)

        logger.log_recycle_event({
            'wallet_id': state.wallet_id,
            'cycles_completed': state.cycles_completed,
            'cycles_before_recycle': state.settings.cycles_before_recycle,
        }, msg=f"Reached {state.cycles_completed} cycles, recycling wallet {state.wallet.label}")

        await notify_cycle_complete(on_cycle_complete, state.wallet_id, state.cycles_completed, True)
        await self.registry.remove(state.wallet_id, handle)

        if self.hook is None:
            logger.warning(
                f"No recycle hook configured; funds remain in retired wallet {state.wallet.label}",
                extra={'category': 'RECYCLE', 'wallet_id': state.wallet_id}
            )
            return event

        try:
            await self.hook.on_recycle(event)
        except Exception as e:
            logger.error(
                f"Recycle hook failed for wallet {state.wallet.label}: {e}",
                exc_info=True,
                extra={'category': 'RECYCLE', 'wallet_id': state.wallet_id}
            )
        return event


class SweepFundsHook:
    """
    Opt-in recycle hook that moves a retired wallet's funds to a new wallet.

    The replacement wallet comes from the wallet factory; everything above
    ``fee_reserve`` is transferred to it. The last created replacement of
    each retired wallet is kept in ``replacements``.
    """

    def __init__(
        self,
        connection: Any,
        balance_provider: BalanceProvider,
        fund_transfer: FundTransfer,
        wallet_factory: WalletFactory,
        fee_reserve: float = 0.001
    ):
        self.connection = connection
        self.balance_provider = balance_provider
        self.fund_transfer = fund_transfer
        self.wallet_factory = wallet_factory
        self.fee_reserve = fee_reserve
        self.replacements = {}

    async def on_recycle(self, event: RecycleEvent) -> None:
        replacement: Wallet = await self.wallet_factory.create_wallet()
        self.replacements[event.wallet_id] = replacement

        balance = await self.balance_provider.get_balance(self.connection, event.wallet.public_key)
        amount = balance - self.fee_reserve
        if amount <= 0:
            logger.warning(
                f"Nothing to sweep from {event.wallet.label}: balance {balance:.6f}",
                extra={'category': 'RECYCLE', 'wallet_id': event.wallet_id}
            )
            return

        try:
            signature = await self.fund_transfer.transfer(
                self.connection, event.wallet, replacement.public_key, amount
            )
        except TransferError:
            raise
        except Exception as e:
            raise TransferError(
                f"Sweep to {replacement.public_key[:8]}... failed: {e}",
                from_address=event.wallet.public_key,
                to_address=replacement.public_key
            ) from e

        logger.log_recycle_event({
            'wallet_id': event.wallet_id,
            'replacement_wallet_id': replacement.id,
            'amount': amount,
            'signature': signature,
        }, msg=f"Transferred {amount:.6f} from {event.wallet.label} to {replacement.label}")
