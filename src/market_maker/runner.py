"""
Paper trading runner for the wallet cycle market maker.

Loads the configuration, funds the configured wallets on an in-memory paper
venue, starts one bot per wallet and runs until interrupted.

Usage:
    market-maker --config config/config.yaml
    market-maker --config config/config.yaml --log-level DEBUG
"""

import argparse
import asyncio
import signal
import sys
from typing import Dict, Optional

from dotenv import load_dotenv

from . import __version__
from .config import MarketMakerConfig, load_config
from .bot import BotOrchestrator, SweepFundsHook
from .exceptions import MarketMakerError
from .exchange import PaperVenue, PaperVenueConfig
from .models import Wallet
from .utils import get_logger, setup_logging, shutdown_logging

logger = get_logger(__name__)


class BotRunner:
    """
    Manages the orchestrator lifecycle and handles signals.
    """

    def __init__(self):
        self.orchestrator: Optional[BotOrchestrator] = None
        self.venue: Optional[PaperVenue] = None
        self.cycle_counts: Dict[str, int] = {}
        self._shutdown_event = asyncio.Event()

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self._signal_handler)
            logger.info("Signal handlers registered")
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            logger.warning("Signal handlers not supported on this platform")

    def _signal_handler(self):
        logger.info("Shutdown signal received, stopping bots...")
        self._shutdown_event.set()

    def on_cycle_complete(self, wallet_id: str, cycles_completed: int, recycled: bool) -> None:
        """Record cycle progress the way a wallet store would."""
        self.cycle_counts[wallet_id] = cycles_completed
        if recycled:
            logger.info(f"Wallet {wallet_id} recycled after {cycles_completed} cycles")

    async def _wait_until_idle(self, poll_interval: float = 1.0) -> None:
        """Wait for a shutdown signal or for every bot to leave the registry."""
        while not self._shutdown_event.is_set():
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                if not len(self.orchestrator.registry):
                    logger.info("No bots left running")
                    return

    async def run(self, config: MarketMakerConfig, sweep: bool = False, seed: Optional[int] = None) -> int:
        """
        Run all configured wallets until a shutdown signal arrives.

        Args:
            config: Loaded configuration
            sweep: Move retired wallets' funds to fresh paper wallets
            seed: Seed for the paper venue and scheduling randomness
        """
        if not config.wallets:
            logger.error("No wallets configured")
            return 1

        self.venue = PaperVenue(PaperVenueConfig(
            native_asset_id=config.venue.native_asset_id,
            seed=seed,
        ))

        recycle_hook = None
        if sweep:
            recycle_hook = SweepFundsHook(
                connection=None,
                balance_provider=self.venue,
                fund_transfer=self.venue,
                wallet_factory=self.venue,
            )

        self.orchestrator = BotOrchestrator.from_config(
            config,
            connection=config.venue.rpc_url,
            swap_executor=self.venue,
            balance_provider=self.venue,
            recycle_hook=recycle_hook,
        )

        started = 0
        for wallet_config in config.wallets:
            self.venue.fund(wallet_config.public_key, wallet_config.starting_balance)
            wallet = Wallet(
                id=wallet_config.id,
                public_key=wallet_config.public_key,
                signing_key=wallet_config.public_key,
                cycles_completed=wallet_config.cycles_completed,
                is_active=True,
                custom_settings=wallet_config.custom_settings,
            )
            try:
                await self.orchestrator.start_bot(wallet, config.global_settings, self.on_cycle_complete)
                started += 1
            except MarketMakerError as e:
                logger.warning(f"Skipping wallet {wallet_config.id}: {e}")

        if not started:
            logger.error("No bots could be started")
            return 1

        logger.info(f"{started} bot(s) running. Press Ctrl+C to stop.")
        try:
            await self._wait_until_idle()
        finally:
            await self.orchestrator.shutdown()
            logger.info(f"Final cycle counts: {self.cycle_counts}")
            logger.info(f"Venue stats: {self.venue.get_stats()}")

        return 0


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Wallet cycle market maker (paper trading)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  market-maker --config config/config.yaml
  market-maker --config config/config.yaml --sweep
  market-maker --config config/config.yaml --log-level DEBUG
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--sweep',
        action='store_true',
        help='Move recycled wallets\' funds to new paper wallets'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for reproducible paper runs'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Logging level (overrides the config file)'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser.parse_args(argv)


async def async_main(argv=None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    load_dotenv()

    config = load_config(args.config)
    if args.log_level:
        config.logging.level = args.log_level
    setup_logging(config.logging)

    logger.info(f"Loaded configuration from {args.config}")

    runner = BotRunner()
    runner.setup_signal_handlers()
    try:
        return await runner.run(config, sweep=args.sweep, seed=args.seed)
    finally:
        shutdown_logging()


def main() -> None:
    try:
        exit_code = asyncio.run(async_main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(2)
