"""
Cycle completion callback plumbing.
"""

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

# on_cycle_complete(wallet_id, cycles_completed, recycled)
CycleCompleteCallback = Callable[[str, int, bool], Union[None, Awaitable[None]]]


async def notify_cycle_complete(
    callback: Optional[CycleCompleteCallback],
    wallet_id: str,
    cycles_completed: int,
    recycled: bool
) -> bool:
    """
    Invoke the owner's cycle callback, awaiting it if it is a coroutine.

    A failing callback is logged and never affects the bot.

    Returns:
        True if the callback ran without raising
    """
    if callback is None:
        return True

    try:
        result = callback(wallet_id, cycles_completed, recycled)
        if inspect.isawaitable(result):
            await result
        return True
    except Exception as e:
        logger.error(
            f"Cycle callback failed for wallet {wallet_id} "
            f"(cycles={cycles_completed}, recycled={recycled}): {e}",
            exc_info=True
        )
        return False
