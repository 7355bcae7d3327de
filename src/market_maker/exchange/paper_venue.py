"""
Paper trading venue.

This module provides an in-memory venue that implements every collaborator
interface (swaps, balances, transfers, wallet creation) without making any
network calls. It backs the paper trading runner and the test suite.
"""

import asyncio
import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config import NATIVE_ASSET_ID
from ..exceptions import NetworkError, SwapError, TransferError
from ..models import SwapRequest, TransactionRecord, Wallet, generate_id, now_ms, swap_assets

logger = logging.getLogger(__name__)


@dataclass
class PaperVenueConfig:
    """Simulation parameters for the paper venue."""
    native_asset_id: str = NATIVE_ASSET_ID
    fee_per_transaction: float = 0.000005
    latency_seconds: float = 0.0
    swap_failure_rate: float = 0.0
    balance_failure_rate: float = 0.0
    seed: Optional[int] = None


@dataclass
class PaperAccount:
    """Simulated holdings of one address."""
    native_balance: float = 0.0
    token_balances: Dict[str, float] = field(default_factory=dict)


class PaperVenue:
    """
    In-memory venue implementing the swap, balance, transfer and wallet
    factory collaborators.

    Swaps are filled 1:1 between the native asset and the trade asset,
    minus a flat fee per transaction. A sell leg sells at most the token
    amount the address holds.

    Example:
        ```python
        venue = PaperVenue()
        venue.fund('7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU', 1.0)

        balance = await venue.get_balance(None, '7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU')
        record = await venue.swap(None, None, SwapRequest('TokenMint', 0.1, is_buy=True))
        ```
    """

    def __init__(self, config: Optional[PaperVenueConfig] = None):
        self.config = config or PaperVenueConfig()
        self._rng = random.Random(self.config.seed)
        self._accounts: Dict[str, PaperAccount] = {}
        self._signer_addresses: Dict[Any, str] = {}
        self._unhashable_signers: List[Tuple[Any, str]] = []
        self._lock = asyncio.Lock()

        self._stats = {
            'swaps': 0,
            'failed_swaps': 0,
            'balance_queries': 0,
            'transfers': 0,
        }

        logger.info("PaperVenue initialized")

    def fund(self, address: str, amount: float) -> None:
        """Credit native balance to an address."""
        account = self._accounts.setdefault(address, PaperAccount())
        account.native_balance += amount

    def register_signer(self, signing_key: Any, address: str) -> None:
        """
        Associate an opaque signing key with the address it signs for.

        Hashable keys are matched by value, others by identity.
        """
        try:
            self._signer_addresses[signing_key] = address
        except TypeError:
            self._unhashable_signers.append((signing_key, address))

    def balance_of(self, address: str) -> float:
        return self._accounts.get(address, PaperAccount()).native_balance

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)

    async def _simulate_latency(self) -> None:
        if self.config.latency_seconds > 0:
            await asyncio.sleep(self.config.latency_seconds)

    def _address_for(self, signing_key: Any) -> str:
        if isinstance(signing_key, Wallet):
            return signing_key.public_key
        try:
            address = self._signer_addresses.get(signing_key)
        except TypeError:
            address = next(
                (addr for key, addr in self._unhashable_signers if key is signing_key), None
            )
        if address is None:
            address = str(signing_key)
        return address

    async def get_balance(self, connection: Any, address: str) -> float:
        await self._simulate_latency()
        self._stats['balance_queries'] += 1

        if self._rng.random() < self.config.balance_failure_rate:
            raise NetworkError(f"Failed to get wallet balance: simulated RPC timeout for {address}")

        return self.balance_of(address)

    async def swap(self, connection: Any, signing_key: Any, request: SwapRequest) -> TransactionRecord:
        await self._simulate_latency()
        self._stats['swaps'] += 1

        if self._rng.random() < self.config.swap_failure_rate:
            self._stats['failed_swaps'] += 1
            raise SwapError(
                f"No routes found for swap of {request.trade_asset_id}",
                is_buy=request.is_buy,
                trade_asset_id=request.trade_asset_id
            )

        address = self._address_for(signing_key)
        fee = self.config.fee_per_transaction

        async with self._lock:
            account = self._accounts.setdefault(address, PaperAccount())
            held = account.token_balances.get(request.trade_asset_id, 0.0)

            if request.is_buy:
                if account.native_balance < request.amount + fee:
                    self._stats['failed_swaps'] += 1
                    raise SwapError(
                        "Insufficient native balance for buy leg",
                        is_buy=True,
                        trade_asset_id=request.trade_asset_id
                    )
                account.native_balance -= request.amount + fee
                account.token_balances[request.trade_asset_id] = held + request.amount
            else:
                filled = min(held, request.amount)
                if filled <= 0:
                    self._stats['failed_swaps'] += 1
                    raise SwapError(
                        "No token balance to sell",
                        is_buy=False,
                        trade_asset_id=request.trade_asset_id
                    )
                account.token_balances[request.trade_asset_id] = held - filled
                account.native_balance += filled - fee

        input_asset, output_asset = swap_assets(request, self.config.native_asset_id)
        return TransactionRecord(
            signature=uuid.uuid4().hex,
            success=True,
            timestamp=now_ms(),
            kind=request.kind,
            amount=request.amount,
            input_asset_id=input_asset,
            output_asset_id=output_asset,
        )

    async def transfer(
        self,
        connection: Any,
        from_wallet: Wallet,
        to_address: str,
        amount: float
    ) -> str:
        await self._simulate_latency()

        async with self._lock:
            source = self._accounts.setdefault(from_wallet.public_key, PaperAccount())
            total = amount + self.config.fee_per_transaction
            if amount <= 0 or source.native_balance < total:
                raise TransferError(
                    f"Transfer of {amount:.6f} rejected: balance {source.native_balance:.6f}",
                    from_address=from_wallet.public_key,
                    to_address=to_address
                )
            source.native_balance -= total
            self._accounts.setdefault(to_address, PaperAccount()).native_balance += amount

        self._stats['transfers'] += 1
        return uuid.uuid4().hex

    async def create_wallet(self) -> Wallet:
        public_key = uuid.uuid4().hex + uuid.uuid4().hex[:12]
        self._accounts.setdefault(public_key, PaperAccount())
        return Wallet(id=generate_id("wallet"), public_key=public_key, signing_key=public_key)
