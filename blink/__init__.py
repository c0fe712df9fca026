"""
blink - Solana Actions server for the hand cricket tournament

Turns wallet clicks into unsigned transactions for the tournament program.
The server never signs anything; it checks each request against the
in-memory tracker and hands the transaction back to the wallet.
"""

from .server import app

__all__ = ["app"]
