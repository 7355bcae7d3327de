"""
Exchange package for the wallet cycle market maker.

This package provides:
- The collaborator interfaces used to reach the trading venue
  (swap execution, balance queries, fund transfers, wallet creation)
- An in-memory paper venue implementing all of them
"""

from .collaborators import (
    SwapExecutor,
    BalanceProvider,
    FundTransfer,
    WalletFactory,
)

from .paper_venue import PaperVenue, PaperVenueConfig

__all__ = [
    'SwapExecutor',
    'BalanceProvider',
    'FundTransfer',
    'WalletFactory',
    'PaperVenue',
    'PaperVenueConfig',
]
