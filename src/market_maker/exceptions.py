"""
Custom exceptions for the market maker.

This module defines the hierarchy of exceptions raised when starting bots,
resolving settings and talking to the trading venue through the swap,
balance and transfer collaborators.
"""


class MarketMakerError(Exception):
    """Base exception for all market maker errors."""

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class StartError(MarketMakerError):
    """
    Base exception for rejected bot starts.

    A start that fails with any subclass of this error leaves the
    registry untouched.
    """


class DuplicateBotError(StartError):
    """Exception raised when a bot is already running for a wallet."""

    def __init__(self, wallet_id: str, details: dict = None):
        super().__init__(
            f"Market maker already running for wallet {wallet_id}",
            error_code="DUPLICATE_BOT",
            details=details
        )
        self.wallet_id = wallet_id


class InvalidSettingsError(StartError):
    """
    Exception raised when the effective settings of a wallet are invalid.

    Examples: min_interval > max_interval, min_amount > max_amount,
    missing trade asset on an enabled custom settings block.
    """

    def __init__(self, message: str = "Invalid settings", field: str = None, details: dict = None):
        super().__init__(message, error_code="INVALID_SETTINGS", details=details)
        self.field = field


class InsufficientBalanceError(StartError):
    """
    Exception raised when a wallet cannot fund a buy and a sell leg.

    The required amount is twice the minimum trade amount.
    """

    def __init__(
        self,
        message: str = None,
        required: float = None,
        available: float = None,
        details: dict = None
    ):
        if message is None:
            message = (
                f"Insufficient balance. Minimum required: {required or 0:.4f}, "
                f"current: {available or 0:.4f}"
            )
        super().__init__(message, error_code="INSUFFICIENT_BALANCE", details=details)
        self.required = required
        self.available = available


class VenueError(MarketMakerError):
    """
    Base exception for recoverable venue errors.

    These never terminate a running bot; the cycle engine logs them and
    either records a failed leg or backs off and retries.
    """


class NetworkError(VenueError):
    """
    Exception raised for network-related errors.

    These errors are typically transient and can be retried.
    Examples: RPC timeouts, connection refused, failed balance queries.
    """

    def __init__(self, message: str = "Network error occurred", details: dict = None):
        super().__init__(message, error_code="NETWORK_ERROR", details=details)


class SwapError(VenueError):
    """Exception raised when a swap leg could not be quoted or executed."""

    def __init__(
        self,
        message: str = "Swap failed",
        is_buy: bool = None,
        trade_asset_id: str = None,
        details: dict = None
    ):
        super().__init__(message, error_code="SWAP_ERROR", details=details)
        self.is_buy = is_buy
        self.trade_asset_id = trade_asset_id


class TransferError(VenueError):
    """Exception raised when moving funds between wallets fails."""

    def __init__(
        self,
        message: str = "Transfer failed",
        from_address: str = None,
        to_address: str = None,
        details: dict = None
    ):
        super().__init__(message, error_code="TRANSFER_ERROR", details=details)
        self.from_address = from_address
        self.to_address = to_address


class RetryLimitExceededError(MarketMakerError):
    """
    Exception raised when a bot exhausts its consecutive retry budget.

    Only raised when a retry limit is configured; the default budget is
    unbounded.
    """

    def __init__(
        self,
        message: str = "Maximum consecutive retries exceeded",
        attempts: int = None,
        details: dict = None
    ):
        super().__init__(message, error_code="RETRY_LIMIT_EXCEEDED", details=details)
        self.attempts = attempts


class ConfigurationError(ValueError):
    """Exception raised for unreadable or invalid configuration files."""
