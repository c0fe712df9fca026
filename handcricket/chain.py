"""
handcricket/chain.py - Hand cricket program interaction via solders / solana-py.

Derives the program's PDAs, builds the unsigned transactions the Blink hands
back to wallets (register_player, play_turn, end_tournament), fetches a recent
blockhash, and decodes the program's accounts for read-only lookups.

The instruction and account layouts belong to the deployed Anchor program;
this module only reproduces them.
"""

import base64
import hashlib
import logging
import struct
from dataclasses import dataclass

from solders.compute_budget import set_compute_unit_price
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction

from .config import DEFAULT_PROGRAM_ID, DEFAULT_RPC_URL

logger = logging.getLogger(__name__)

TOURNAMENT_SEED = b"tournament"
PLAYER_STATS_SEED = b"player-stats"

DEFAULT_COMPUTE_UNIT_PRICE = 1000  # micro-lamports


# ============================================================================
# Errors
# ============================================================================

class MalformedIdentifier(ValueError):
    """Raised when an account string is not a base58 Solana public key."""

    def __init__(self, value: object, field: str = "account"):
        self.value = value
        self.field = field
        super().__init__(f'Invalid "{field}" provided')


class ChainUnavailable(RuntimeError):
    """Raised when the RPC node can't be reached or returns garbage."""


def _require_solana():
    """Import and return the solana-py RPC client class."""
    try:
        from solana.rpc.api import Client
        return Client
    except ImportError:
        raise ImportError(
            "solana is required for RPC lookups. "
            "Install it with: pip install solana"
        )


# ============================================================================
# Keys and PDAs
# ============================================================================

def parse_pubkey(value: object, field: str = "account") -> Pubkey:
    """Parse a caller-supplied address, raising MalformedIdentifier."""
    if not isinstance(value, str) or not value:
        raise MalformedIdentifier(value, field)
    try:
        return Pubkey.from_string(value)
    except (ValueError, TypeError):
        raise MalformedIdentifier(value, field)


def program_id(value: str = DEFAULT_PROGRAM_ID) -> Pubkey:
    return Pubkey.from_string(value)


def tournament_pda(program: Pubkey) -> Pubkey:
    return Pubkey.find_program_address([TOURNAMENT_SEED], program)[0]


def player_stats_pda(player: Pubkey, tournament: Pubkey, program: Pubkey) -> Pubkey:
    return Pubkey.find_program_address(
        [PLAYER_STATS_SEED, bytes(tournament), bytes(player)], program
    )[0]


def game_account_pda(player: Pubkey, program: Pubkey) -> Pubkey:
    return Pubkey.find_program_address([bytes(player)], program)[0]


@dataclass
class PlayerAddresses:
    """Every account a player's instructions touch."""

    player: Pubkey
    tournament: Pubkey
    player_stats: Pubkey
    game_account: Pubkey


def player_addresses(player: Pubkey, program: Pubkey) -> PlayerAddresses:
    tournament = tournament_pda(program)
    return PlayerAddresses(
        player=player,
        tournament=tournament,
        player_stats=player_stats_pda(player, tournament, program),
        game_account=game_account_pda(player, program),
    )


# ============================================================================
# Instructions
# ============================================================================

def instruction_discriminator(name: str) -> bytes:
    """Anchor instruction discriminator: sha256("global:<name>")[:8]."""
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def account_discriminator(name: str) -> bytes:
    """Anchor account discriminator: sha256("account:<Name>")[:8]."""
    return hashlib.sha256(f"account:{name}".encode()).digest()[:8]


def register_player_ix(addrs: PlayerAddresses, program: Pubkey) -> Instruction:
    return Instruction(
        program,
        instruction_discriminator("register_player"),
        [
            AccountMeta(addrs.tournament, is_signer=False, is_writable=True),
            AccountMeta(addrs.player_stats, is_signer=False, is_writable=True),
            AccountMeta(addrs.player, is_signer=True, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
    )


def play_turn_ix(addrs: PlayerAddresses, choice: int, program: Pubkey) -> Instruction:
    data = instruction_discriminator("play_turn") + struct.pack("<B", choice)
    return Instruction(
        program,
        data,
        [
            AccountMeta(addrs.game_account, is_signer=False, is_writable=True),
            AccountMeta(addrs.player_stats, is_signer=False, is_writable=True),
            AccountMeta(addrs.tournament, is_signer=False, is_writable=False),
            AccountMeta(addrs.player, is_signer=True, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
    )


def end_tournament_ix(admin: Pubkey, winners: list[Pubkey], program: Pubkey) -> Instruction:
    """Winners ride along as remaining accounts, best first."""
    accounts = [
        AccountMeta(tournament_pda(program), is_signer=False, is_writable=True),
        AccountMeta(admin, is_signer=True, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    accounts += [AccountMeta(w, is_signer=False, is_writable=True) for w in winners]
    return Instruction(program, instruction_discriminator("end_tournament"), accounts)


# ============================================================================
# Transactions
# ============================================================================

def build_transaction(
    payer: Pubkey,
    instructions: list[Instruction],
    blockhash: Hash,
    compute_unit_price: int | None = DEFAULT_COMPUTE_UNIT_PRICE,
) -> Transaction:
    """Unsigned transaction with the caller as fee payer.

    A priority-fee instruction is prepended unless compute_unit_price is
    None. Passing no instructions gives an empty transaction (used by
    read-only actions that still need to return one).
    """
    ixs = list(instructions)
    if ixs and compute_unit_price is not None:
        ixs.insert(0, set_compute_unit_price(compute_unit_price))
    message = Message.new_with_blockhash(ixs, payer, blockhash)
    return Transaction.new_unsigned(message)


def serialize_transaction(tx: Transaction) -> str:
    """Base64 wire encoding, signatures left empty for the wallet."""
    return base64.b64encode(bytes(tx)).decode()


def get_latest_blockhash(rpc_url: str = DEFAULT_RPC_URL) -> Hash:
    """Fetch a recent blockhash.

    Raises:
        ChainUnavailable: if the RPC call fails.
    """
    Client = _require_solana()
    try:
        resp = Client(rpc_url).get_latest_blockhash()
        return resp.value.blockhash
    except Exception as e:
        logger.warning(f"getLatestBlockhash failed on {rpc_url}: {e}")
        raise ChainUnavailable(f"Could not reach Solana RPC at {rpc_url}") from e


# ============================================================================
# Account decoding
# ============================================================================

_TOURNAMENT_LAYOUT = struct.Struct("<32sQQQQ?Q")
_PLAYER_STATS_LAYOUT = struct.Struct("<32s?II")
_GAME_ACCOUNT_LAYOUT = struct.Struct("<32sI?")


@dataclass
class TournamentAccount:
    admin: str
    players_registered: int
    max_players: int
    entry_fee: int
    total_pot: int
    is_active: bool
    tournament_end_time: int


@dataclass
class PlayerStatsAccount:
    player: str
    is_registered: bool
    best_score: int
    games_played: int


@dataclass
class GameAccount:
    player: str
    score: int
    is_active: bool


def _unpack(name: str, layout: struct.Struct, data: bytes) -> tuple:
    disc = account_discriminator(name)
    if len(data) < 8 + layout.size:
        raise ValueError(f"{name} account too short: {len(data)} bytes")
    if data[:8] != disc:
        raise ValueError(f"Not a {name} account (discriminator {data[:8].hex()})")
    return layout.unpack_from(data, 8)


def decode_tournament(data: bytes) -> TournamentAccount:
    admin, registered, max_players, fee, pot, active, end_time = _unpack(
        "Tournament", _TOURNAMENT_LAYOUT, data
    )
    return TournamentAccount(
        admin=str(Pubkey.from_bytes(admin)),
        players_registered=registered,
        max_players=max_players,
        entry_fee=fee,
        total_pot=pot,
        is_active=active,
        tournament_end_time=end_time,
    )


def decode_player_stats(data: bytes) -> PlayerStatsAccount:
    player, registered, best, games = _unpack("PlayerStats", _PLAYER_STATS_LAYOUT, data)
    return PlayerStatsAccount(
        player=str(Pubkey.from_bytes(player)),
        is_registered=registered,
        best_score=best,
        games_played=games,
    )


def decode_game_account(data: bytes) -> GameAccount:
    player, score, active = _unpack("GameAccount", _GAME_ACCOUNT_LAYOUT, data)
    return GameAccount(player=str(Pubkey.from_bytes(player)), score=score, is_active=active)


def _fetch_account_data(address: Pubkey, rpc_url: str) -> bytes | None:
    Client = _require_solana()
    try:
        resp = Client(rpc_url).get_account_info(address)
    except Exception as e:
        raise ChainUnavailable(f"Could not reach Solana RPC at {rpc_url}") from e
    if resp.value is None:
        return None
    return bytes(resp.value.data)


def fetch_tournament(
    rpc_url: str = DEFAULT_RPC_URL,
    program: Pubkey | None = None,
) -> TournamentAccount | None:
    """Read the tournament PDA. None if it hasn't been initialized."""
    program = program or program_id()
    data = _fetch_account_data(tournament_pda(program), rpc_url)
    return decode_tournament(data) if data is not None else None


def fetch_player_stats(
    player: Pubkey,
    rpc_url: str = DEFAULT_RPC_URL,
    program: Pubkey | None = None,
) -> PlayerStatsAccount | None:
    program = program or program_id()
    addrs = player_addresses(player, program)
    data = _fetch_account_data(addrs.player_stats, rpc_url)
    return decode_player_stats(data) if data is not None else None
