"""Tests for handcricket.chain: PDAs, instructions, transactions, account decoding."""

import base64
import hashlib
import struct

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction

from handcricket.chain import (
    MalformedIdentifier,
    account_discriminator,
    build_transaction,
    decode_game_account,
    decode_player_stats,
    decode_tournament,
    end_tournament_ix,
    instruction_discriminator,
    parse_pubkey,
    play_turn_ix,
    player_addresses,
    program_id,
    register_player_ix,
    serialize_transaction,
)

PROGRAM = program_id()


@pytest.fixture
def player():
    return Pubkey.new_unique()


def _metas(ix):
    return [(m.pubkey, m.is_signer, m.is_writable) for m in ix.accounts]


class TestParsePubkey:
    def test_valid(self):
        key = "9AhjZ7ybup47fvJNvFMCxhxVz3qs4serqVEXWmGAoMTx"
        assert str(parse_pubkey(key)) == key

    @pytest.mark.parametrize("value", [None, "", "not-a-key", "0xABC123", 42, "1" * 60])
    def test_malformed(self, value):
        with pytest.raises(MalformedIdentifier) as exc:
            parse_pubkey(value)
        assert str(exc.value) == 'Invalid "account" provided'

    def test_field_name_in_message(self):
        with pytest.raises(MalformedIdentifier, match='Invalid "admin" provided'):
            parse_pubkey("nope", "admin")


class TestAddresses:
    def test_tournament_shared_per_program(self, player):
        other = Pubkey.new_unique()
        a = player_addresses(player, PROGRAM)
        b = player_addresses(other, PROGRAM)
        assert a.tournament == b.tournament
        assert a.player_stats != b.player_stats
        assert a.game_account != b.game_account

    def test_seeds(self, player):
        addrs = player_addresses(player, PROGRAM)
        tournament, _ = Pubkey.find_program_address([b"tournament"], PROGRAM)
        stats, _ = Pubkey.find_program_address(
            [b"player-stats", bytes(tournament), bytes(player)], PROGRAM
        )
        assert addrs.tournament == tournament
        assert addrs.player_stats == stats

    def test_deterministic(self, player):
        assert player_addresses(player, PROGRAM) == player_addresses(player, PROGRAM)


class TestInstructions:
    def test_discriminator_is_anchor_sighash(self):
        expected = hashlib.sha256(b"global:register_player").digest()[:8]
        assert instruction_discriminator("register_player") == expected
        assert len(instruction_discriminator("play_turn")) == 8

    def test_register_player_accounts(self, player):
        addrs = player_addresses(player, PROGRAM)
        ix = register_player_ix(addrs, PROGRAM)
        assert ix.program_id == PROGRAM
        assert bytes(ix.data) == instruction_discriminator("register_player")
        assert _metas(ix) == [
            (addrs.tournament, False, True),
            (addrs.player_stats, False, True),
            (player, True, True),
            (SYSTEM_PROGRAM_ID, False, False),
        ]

    def test_play_turn_carries_choice(self, player):
        addrs = player_addresses(player, PROGRAM)
        ix = play_turn_ix(addrs, 4, PROGRAM)
        assert bytes(ix.data) == instruction_discriminator("play_turn") + bytes([4])
        assert _metas(ix) == [
            (addrs.game_account, False, True),
            (addrs.player_stats, False, True),
            (addrs.tournament, False, False),
            (player, True, True),
            (SYSTEM_PROGRAM_ID, False, False),
        ]

    def test_end_tournament_appends_winners(self):
        admin = Pubkey.new_unique()
        winners = [Pubkey.new_unique() for _ in range(3)]
        ix = end_tournament_ix(admin, winners, PROGRAM)
        metas = _metas(ix)
        assert metas[1] == (admin, True, True)
        assert metas[3:] == [(w, False, True) for w in winners]


class TestTransactions:
    def test_unsigned_with_priority_fee(self, player):
        addrs = player_addresses(player, PROGRAM)
        tx = build_transaction(player, [register_player_ix(addrs, PROGRAM)], Hash.default())

        assert tx.message.account_keys[0] == player
        assert tx.message.header.num_required_signatures == 1
        assert len(tx.message.instructions) == 2
        compute_budget = tx.message.account_keys[tx.message.instructions[0].program_id_index]
        assert str(compute_budget) == "ComputeBudget111111111111111111111111111111"

    def test_no_priority_fee(self, player):
        addrs = player_addresses(player, PROGRAM)
        tx = build_transaction(
            player, [register_player_ix(addrs, PROGRAM)], Hash.default(), compute_unit_price=None
        )
        assert len(tx.message.instructions) == 1

    def test_empty_transaction(self, player):
        tx = build_transaction(player, [], Hash.default())
        assert tx.message.instructions == []
        assert tx.message.account_keys == [player]

    def test_serialize_base64(self, player):
        addrs = player_addresses(player, PROGRAM)
        tx = build_transaction(player, [play_turn_ix(addrs, 6, PROGRAM)], Hash.default())
        encoded = serialize_transaction(tx)
        decoded = Transaction.from_bytes(base64.b64decode(encoded))
        assert decoded.message == tx.message


class TestDecode:
    def test_tournament(self):
        admin = Pubkey.new_unique()
        data = account_discriminator("Tournament") + struct.pack(
            "<32sQQQQ?Q", bytes(admin), 3, 100, 100_000_000, 300_000_000, True, 86_400
        )
        acct = decode_tournament(data)
        assert acct.admin == str(admin)
        assert acct.players_registered == 3
        assert acct.max_players == 100
        assert acct.total_pot == 300_000_000
        assert acct.is_active is True

    def test_player_stats(self):
        player = Pubkey.new_unique()
        data = account_discriminator("PlayerStats") + struct.pack("<32s?II", bytes(player), True, 42, 7)
        acct = decode_player_stats(data)
        assert acct.player == str(player)
        assert acct.best_score == 42
        assert acct.games_played == 7

    def test_game_account(self):
        player = Pubkey.new_unique()
        data = account_discriminator("GameAccount") + struct.pack("<32sI?", bytes(player), 9, False)
        acct = decode_game_account(data)
        assert acct.score == 9
        assert acct.is_active is False

    def test_wrong_discriminator(self):
        data = account_discriminator("GameAccount") + bytes(37)
        with pytest.raises(ValueError, match="Not a Tournament account"):
            decode_tournament(data + bytes(64))

    def test_too_short(self):
        with pytest.raises(ValueError, match="too short"):
            decode_player_stats(account_discriminator("PlayerStats") + bytes(10))
