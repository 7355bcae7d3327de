"""
Bot package for the wallet cycle market maker.

This package provides the orchestrator components:
- BotOrchestrator: Public API to start, stop, query and list bots
- BotRegistry: Lock-guarded one-bot-per-wallet registry
- TradingCycleEngine: Per-wallet buy/sell cycle state machine
- RecycleCoordinator: Retires wallets that reached their cycle threshold
- SettingsResolver: Resolves custom or global settings per wallet
- SchedulingPolicy: Trade amounts and wait intervals
"""

from .scheduling import SchedulingPolicy
from .settings_resolver import SettingsResolver
from .registry import BotRegistry, BotHandle, BotSummaryView
from .recycle import RecycleCoordinator, RecycleHook, SweepFundsHook
from .cycle_engine import TradingCycleEngine
from .orchestrator import BotOrchestrator
from .callbacks import CycleCompleteCallback

__all__ = [
    'BotOrchestrator',
    'BotRegistry',
    'BotHandle',
    'BotSummaryView',
    'TradingCycleEngine',
    'RecycleCoordinator',
    'RecycleHook',
    'SweepFundsHook',
    'SettingsResolver',
    'SchedulingPolicy',
    'CycleCompleteCallback',
]
