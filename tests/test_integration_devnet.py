"""
Integration test: talk to the deployed hand cricket program on Solana devnet.

Fetches a real blockhash, builds a register transaction against it, and
decodes the live tournament account if the program has been initialized.

Requires: network access to Solana devnet RPC

Run:
    HANDCRICKET_DEVNET=1 .venv/bin/python -m pytest tests/test_integration_devnet.py -v
"""

import os

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

pytestmark = pytest.mark.skipif(
    os.environ.get("HANDCRICKET_DEVNET") != "1",
    reason="set HANDCRICKET_DEVNET=1 to hit Solana devnet",
)

from handcricket.chain import (
    build_transaction,
    fetch_player_stats,
    fetch_tournament,
    get_latest_blockhash,
    player_addresses,
    program_id,
    register_player_ix,
    serialize_transaction,
)
from handcricket.config import DEFAULT_RPC_URL

RPC_URL = os.environ.get("SOLANA_RPC", DEFAULT_RPC_URL)
PROGRAM = program_id()


def test_latest_blockhash():
    blockhash = get_latest_blockhash(RPC_URL)
    assert isinstance(blockhash, Hash)
    assert blockhash != Hash.default()


def test_register_transaction_with_live_blockhash():
    player = Pubkey.new_unique()
    tx = build_transaction(
        player,
        [register_player_ix(player_addresses(player, PROGRAM), PROGRAM)],
        get_latest_blockhash(RPC_URL),
    )
    assert serialize_transaction(tx)


def test_tournament_account_decodes():
    tournament = fetch_tournament(RPC_URL, PROGRAM)
    if tournament is None:
        pytest.skip("Tournament account not initialized on devnet")
    assert tournament.players_registered <= tournament.max_players
    assert tournament.entry_fee > 0


def test_unknown_player_has_no_stats():
    assert fetch_player_stats(Pubkey.new_unique(), RPC_URL, PROGRAM) is None
