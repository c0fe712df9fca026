"""
Hand Cricket - tournament session tracking for a Solana Blink

Players pay entry, bat against a die, and chase the best score before the
admin closes the tournament. The onchain program holds the money; this
package mirrors its state so requests can be checked before a transaction
is built.
"""

__version__ = "0.1.0"

from .config import (
    TournamentConfig,
    ChainConfig,
    BlinkConfig,
    HandCricketConfig,
    load_config,
)

from .store import TournamentStore

from .tracker import (
    # Tracker
    TournamentTracker,
    MoveSource,
    random_move,
    # Results
    TurnResult,
    LeaderboardEntry,
    TournamentResult,
    PlayerSnapshot,
    # Errors
    TrackerError,
    TournamentClosed,
    TournamentFull,
    AlreadyRegistered,
    NotRegistered,
    InvalidChoice,
    Unauthorized,
)

from .rewards import Payout, distribute

__all__ = [
    # Version
    "__version__",
    # Config
    "TournamentConfig",
    "ChainConfig",
    "BlinkConfig",
    "HandCricketConfig",
    "load_config",
    # Tracker
    "TournamentStore",
    "TournamentTracker",
    "MoveSource",
    "random_move",
    "TurnResult",
    "LeaderboardEntry",
    "TournamentResult",
    "PlayerSnapshot",
    "TrackerError",
    "TournamentClosed",
    "TournamentFull",
    "AlreadyRegistered",
    "NotRegistered",
    "InvalidChoice",
    "Unauthorized",
    # Rewards
    "Payout",
    "distribute",
]
