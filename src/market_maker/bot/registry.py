"""
Bot registry.

Owns the mapping of wallet id to running bot and enforces that at most one
bot exists per wallet, including while a start is still awaiting its
balance check.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from ..exceptions import DuplicateBotError
from ..models import BotStatus, BotSummary

logger = logging.getLogger(__name__)


@dataclass
class BotHandle:
    """
    Registry-side handle of a running bot.

    Holds only what the registry needs: the stop signal, the task running
    the bot and the last published status snapshot.
    """

    wallet_id: str
    public_key: str
    status: BotStatus
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task] = None

    @property
    def stop_requested(self) -> bool:
        return self.stop_event.is_set()

    def request_stop(self) -> None:
        self.stop_event.set()

    def summary(self) -> BotSummary:
        return BotSummary(
            id=self.wallet_id,
            public_key=self.public_key,
            cycles_completed=self.status.cycles_completed,
            last_action_time=self.status.last_action_time,
            use_custom_settings=self.status.use_custom_settings,
        )


class BotSummaryView:
    """
    Lazy, restartable view over the bots registered at listing time.

    Summaries are built on iteration from the handles' latest status, so
    iterating again reflects cycles completed since the listing.
    """

    def __init__(self, handles: List[BotHandle]):
        self._handles = handles

    def __iter__(self) -> Iterator[BotSummary]:
        for handle in self._handles:
            yield handle.summary()

    def __len__(self) -> int:
        return len(self._handles)

    def __bool__(self) -> bool:
        return bool(self._handles)


class BotRegistry:
    """
    Lock-guarded repository of running bots.

    Starting a bot is a two-step operation: ``reserve`` claims the wallet
    id before the asynchronous balance check and ``register`` publishes the
    bot once it is launched (``release`` gives the claim back on failure).
    Concurrent starts for the same wallet therefore see either the
    reservation or the registered bot and fail with DuplicateBotError.
    """

    def __init__(self):
        self._bots: Dict[str, BotHandle] = {}
        self._pending: Set[str] = set()
        self._lock = asyncio.Lock()

    async def reserve(self, wallet_id: str) -> None:
        """
        Claim a wallet id for a starting bot.

        Raises:
            DuplicateBotError: If the wallet already has a bot or a pending start
        """
        async with self._lock:
            if wallet_id in self._bots or wallet_id in self._pending:
                raise DuplicateBotError(wallet_id)
            self._pending.add(wallet_id)

    async def release(self, wallet_id: str) -> None:
        """Drop a reservation whose start failed."""
        async with self._lock:
            self._pending.discard(wallet_id)

    async def register(self, handle: BotHandle) -> None:
        """Turn a reservation into a registered bot."""
        async with self._lock:
            if handle.wallet_id in self._bots:
                raise DuplicateBotError(handle.wallet_id)
            self._pending.discard(handle.wallet_id)
            self._bots[handle.wallet_id] = handle

    async def remove(self, wallet_id: str, handle: Optional[BotHandle] = None) -> bool:
        """
        Remove a bot from the registry.

        Args:
            wallet_id: Wallet whose bot to remove
            handle: When given, only remove the entry if it is this handle

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            return self.discard(wallet_id, handle)

    def discard(self, wallet_id: str, handle: Optional[BotHandle] = None) -> bool:
        """
        Remove a bot without taking the lock.

        For task done callbacks, which cannot await. No locked section
        awaits while holding the lock, so this never interleaves with one.
        """
        current = self._bots.get(wallet_id)
        if current is None or (handle is not None and current is not handle):
            return False
        del self._bots[wallet_id]
        return True

    async def stop(self, wallet_id: str) -> bool:
        """
        Signal a bot to stop and remove it.

        Idempotent: a second call for the same wallet returns False.
        """
        async with self._lock:
            handle = self._bots.pop(wallet_id, None)
            if handle is None:
                return False
            handle.request_stop()

        logger.info(f"Stop requested for wallet {wallet_id}")
        return True

    async def query(self, wallet_id: str) -> Optional[BotStatus]:
        async with self._lock:
            handle = self._bots.get(wallet_id)
            return handle.status if handle else None

    async def list_all(self) -> BotSummaryView:
        async with self._lock:
            return BotSummaryView(list(self._bots.values()))

    async def handles(self) -> List[BotHandle]:
        async with self._lock:
            return list(self._bots.values())

    async def update_status(self, handle: BotHandle, status: BotStatus) -> None:
        """Publish a fresh status snapshot on a bot's handle."""
        async with self._lock:
            handle.status = status

    def __len__(self) -> int:
        return len(self._bots)

    def __contains__(self, wallet_id: str) -> bool:
        return wallet_id in self._bots
