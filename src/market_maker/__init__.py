"""
Wallet cycle market maker.

Runs one autonomous buy/sell trading bot per wallet and retires wallets
once they complete their configured number of cycles.
"""

__version__ = "1.0.0"
