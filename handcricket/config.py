"""
handcricket/config.py - Tournament and chain configuration

Reads config from a TOML file (default ~/.handcricket/config.toml), then
applies environment overrides. Every section is optional; anything missing
falls back to the defaults below, which match the deployed devnet program.

Example:
    [tournament]
    capacity = 100
    entry_fee_lamports = 100000000  # 0.1 SOL
    admin = "9AhjZ7ybup47fvJNvFMCxhxVz3qs4serqVEXWmGAoMTx"
    allow_play_after_end = true
    leaderboard_size = 10
    winners = 5

    [chain]
    rpc_url = "https://api.devnet.solana.com"
    program_id = "Fam7iwYN6W82UGQSxY4e1MNsBDqHJV8aGBuMB2JHqcz4"
    compute_unit_price = 1000
    blockchain_id = "solana:EtWTRABZaYq6iMfeYKouRu166VU2xqa1"

    [blink]
    icon = "https://i.postimg.cc/52hr198Z/mainblink.png"

Environment overrides:
    SOLANA_RPC          chain.rpc_url
    HANDCRICKET_ADMIN   tournament.admin
"""

import logging
import os
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# ============================================================================
# Constants
# ============================================================================

LAMPORTS_PER_SOL = 1_000_000_000


def _get_config_dir() -> Path:
    """Get platform-appropriate config directory."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "handcricket"
    return Path.home() / ".handcricket"


CONFIG_DIR = _get_config_dir()
CONFIG_PATH = CONFIG_DIR / "config.toml"

DEFAULT_RPC_URL = "https://api.devnet.solana.com"
DEFAULT_PROGRAM_ID = "Fam7iwYN6W82UGQSxY4e1MNsBDqHJV8aGBuMB2JHqcz4"
DEFAULT_ADMIN = "9AhjZ7ybup47fvJNvFMCxhxVz3qs4serqVEXWmGAoMTx"
DEVNET_BLOCKCHAIN_ID = "solana:EtWTRABZaYq6iMfeYKouRu166VU2xqa1"
DEFAULT_ICON = "https://i.postimg.cc/52hr198Z/mainblink.png"


# ============================================================================
# Data Types
# ============================================================================

@dataclass
class TournamentConfig:
    """Rules the session tracker enforces."""

    capacity: int = 100
    entry_fee_lamports: int = LAMPORTS_PER_SOL // 10
    admin: str = DEFAULT_ADMIN
    # The deployed route never gated turns on the active flag
    allow_play_after_end: bool = True
    leaderboard_size: int = 10
    winners: int = 5

    @property
    def entry_fee_sol(self) -> float:
        return self.entry_fee_lamports / LAMPORTS_PER_SOL


@dataclass
class ChainConfig:
    """Solana network and program settings."""

    rpc_url: str = DEFAULT_RPC_URL
    program_id: str = DEFAULT_PROGRAM_ID
    compute_unit_price: int = 1000  # micro-lamports
    # CAIP-2 id advertised in the X-Blockchain-Ids header
    blockchain_id: str = DEVNET_BLOCKCHAIN_ID


@dataclass
class BlinkConfig:
    """Presentation settings for the Actions metadata."""

    icon: str = DEFAULT_ICON
    title: str = "Hand Cricket Tournament 🏆"


@dataclass
class HandCricketConfig:
    """Top-level configuration."""

    tournament: TournamentConfig = field(default_factory=TournamentConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    blink: BlinkConfig = field(default_factory=BlinkConfig)


# ============================================================================
# Parsing
# ============================================================================

def _parse_tournament(data: dict) -> TournamentConfig:
    """Parse the [tournament] section, validating the numeric limits."""
    defaults = TournamentConfig()
    cfg = TournamentConfig(
        capacity=data.get("capacity", defaults.capacity),
        entry_fee_lamports=data.get("entry_fee_lamports", defaults.entry_fee_lamports),
        admin=data.get("admin", defaults.admin),
        allow_play_after_end=data.get("allow_play_after_end", defaults.allow_play_after_end),
        leaderboard_size=data.get("leaderboard_size", defaults.leaderboard_size),
        winners=data.get("winners", defaults.winners),
    )
    if cfg.capacity < 1:
        raise ValueError(f"tournament.capacity must be at least 1, got {cfg.capacity}")
    if cfg.winners < 1:
        raise ValueError(f"tournament.winners must be at least 1, got {cfg.winners}")
    if cfg.leaderboard_size < 1:
        raise ValueError(
            f"tournament.leaderboard_size must be at least 1, got {cfg.leaderboard_size}"
        )
    if cfg.entry_fee_lamports < 0:
        raise ValueError("tournament.entry_fee_lamports cannot be negative")
    return cfg


def _section(raw: dict, name: str) -> dict:
    data = raw.get(name, {})
    return data if isinstance(data, dict) else {}


def apply_env_overrides(config: HandCricketConfig) -> HandCricketConfig:
    """Apply SOLANA_RPC / HANDCRICKET_ADMIN on top of file settings."""
    rpc_url = os.environ.get("SOLANA_RPC")
    if rpc_url:
        config.chain.rpc_url = rpc_url
    admin = os.environ.get("HANDCRICKET_ADMIN")
    if admin:
        config.tournament.admin = admin
    return config


def load_config(path: Path | None = None) -> HandCricketConfig:
    """
    Read config from TOML file, then apply environment overrides.

    Args:
        path: Override config file path (default: ~/.handcricket/config.toml)

    Returns:
        HandCricketConfig. Missing file or bad TOML returns defaults.

    Raises:
        ValueError: if the file sets an out-of-range tournament limit.
    """
    config_path = path or CONFIG_PATH

    if not config_path.exists():
        return apply_env_overrides(HandCricketConfig())

    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
    except Exception as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return apply_env_overrides(HandCricketConfig())

    tournament = _parse_tournament(_section(raw, "tournament"))

    chain_data = _section(raw, "chain")
    _chain_defaults = ChainConfig()
    chain = ChainConfig(
        rpc_url=chain_data.get("rpc_url", _chain_defaults.rpc_url),
        program_id=chain_data.get("program_id", _chain_defaults.program_id),
        compute_unit_price=chain_data.get("compute_unit_price", _chain_defaults.compute_unit_price),
        blockchain_id=chain_data.get("blockchain_id", _chain_defaults.blockchain_id),
    )

    blink_data = _section(raw, "blink")
    _blink_defaults = BlinkConfig()
    blink = BlinkConfig(
        icon=blink_data.get("icon", _blink_defaults.icon),
        title=blink_data.get("title", _blink_defaults.title),
    )

    return apply_env_overrides(
        HandCricketConfig(tournament=tournament, chain=chain, blink=blink)
    )
