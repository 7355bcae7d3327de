"""
Venue collaborator interfaces.

The market maker never talks to the trading venue directly. Quoting and
submitting swaps, reading balances and moving funds are delegated to the
narrow async interfaces below, so key handling, transport and routing
stay outside the orchestrator.
"""

from typing import Any, Protocol, runtime_checkable

from ..models import SwapRequest, TransactionRecord, Wallet


@runtime_checkable
class SwapExecutor(Protocol):
    """Executes one swap leg between the native asset and a trade asset."""

    async def swap(
        self,
        connection: Any,
        signing_key: Any,
        request: SwapRequest
    ) -> TransactionRecord:
        """
        Execute a swap leg.

        Returns:
            The TransactionRecord of the leg

        Raises:
            SwapError: If no route was found or the transaction failed
            NetworkError: If the venue could not be reached
        """
        ...


@runtime_checkable
class BalanceProvider(Protocol):
    """Reads the native asset balance of an address."""

    async def get_balance(self, connection: Any, address: str) -> float:
        """
        Raises:
            NetworkError: If the balance could not be fetched
        """
        ...


@runtime_checkable
class FundTransfer(Protocol):
    """Moves native asset between wallets."""

    async def transfer(
        self,
        connection: Any,
        from_wallet: Wallet,
        to_address: str,
        amount: float
    ) -> str:
        """
        Returns:
            The transfer signature

        Raises:
            TransferError: If the transfer was rejected or not confirmed
        """
        ...


@runtime_checkable
class WalletFactory(Protocol):
    """Creates replacement wallets for recycled ones."""

    async def create_wallet(self) -> Wallet:
        ...
