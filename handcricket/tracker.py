"""
handcricket/tracker.py - Tournament session tracker.

Gates every Blink request before a transaction is built. Mirrors the
tournament program's state in memory: who paid entry, each player's live
round, best scores, and whether the tournament is still open.

All four operations run under one lock. Each one either mutates the store
and returns a result, or raises a TrackerError and leaves the store as it
was. Nothing inside the lock touches the network.
"""

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Callable

from .config import TournamentConfig
from .rewards import Payout, distribute
from .store import TournamentStore

logger = logging.getLogger(__name__)

CHOICES = range(1, 7)

# Returns the computer's move, uniform over 1..6
MoveSource = Callable[[], int]


def random_move() -> int:
    return random.randint(1, 6)


# ============================================================================
# Errors
# ============================================================================

class TrackerError(Exception):
    """A request the tournament rules reject. Never fatal to the process."""

    action: str = ""
    default_message: str = "Request rejected"

    def __init__(self, player: str | None = None, message: str | None = None):
        self.player = player
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class TournamentClosed(TrackerError):
    """Raised when the tournament has already ended."""

    action = "register"
    default_message = "Tournament is no longer active"

    def __init__(self, player: str | None = None, action: str = "register"):
        self.action = action
        super().__init__(player)


class TournamentFull(TrackerError):
    """Raised when every seat is taken."""

    action = "register"

    def __init__(self, player: str | None = None, capacity: int = 0):
        self.capacity = capacity
        super().__init__(player, f"Tournament is full ({capacity} players max)")


class AlreadyRegistered(TrackerError):
    action = "register"
    default_message = "You are already registered for this tournament"


class NotRegistered(TrackerError):
    action = "game"
    default_message = "You must register for the tournament before playing"


class InvalidChoice(TrackerError):
    """Raised for a move outside 1..6 (or no move at all)."""

    action = "game"

    def __init__(self, player: str | None = None, choice: object = None):
        self.choice = choice
        super().__init__(player, f"Invalid choice {choice!r}: pick a number between 1 and 6")


class Unauthorized(TrackerError):
    action = "end-tournament"
    default_message = "Invalid admin key or unauthorized access"


# ============================================================================
# Results
# ============================================================================

@dataclass
class TurnResult:
    """Outcome of one PlayTurn."""

    player: str
    player_choice: int
    computer_choice: int
    is_out: bool
    score: int  # running total, or the final score when out
    best_score: int


@dataclass
class LeaderboardEntry:
    player: str
    score: int


@dataclass
class TournamentResult:
    """What EndTournament hands back to the admin endpoint."""

    winners: list[LeaderboardEntry]
    total_pot: int
    payouts: list[Payout] = field(default_factory=list)


@dataclass
class PlayerSnapshot:
    player: str
    registered: bool
    round_score: int | None
    best_score: int
    games_played: int


# ============================================================================
# Tracker
# ============================================================================

class TournamentTracker:
    """Sole authority on whether a tournament request is valid.

    Args:
        config: Tournament rules (capacity, admin, limits).
        store: Backing store. A fresh one is created if omitted.
        move_source: Computer move generator. Tests pass a scripted one.
    """

    def __init__(
        self,
        config: TournamentConfig | None = None,
        store: TournamentStore | None = None,
        move_source: MoveSource = random_move,
    ):
        self.config = config or TournamentConfig()
        self.store = store or TournamentStore(self.config.capacity)
        self._move_source = move_source
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(self, player: str) -> int:
        """Register a player. Returns the new registered count."""
        with self._lock:
            store = self.store
            if not store.active:
                raise TournamentClosed(player)
            if store.registered_count >= store.capacity:
                raise TournamentFull(player, store.capacity)
            if store.is_registered(player):
                raise AlreadyRegistered(player)

            store.add_player(player)
            count = store.registered_count

        logger.info(f"Registered {player} ({count}/{self.store.capacity})")
        return count

    def play_turn(self, player: str, choice: int) -> TurnResult:
        """Play one ball: a matching computer move means the player is out."""
        if isinstance(choice, bool) or not isinstance(choice, int) or choice not in CHOICES:
            raise InvalidChoice(player, choice)

        with self._lock:
            store = self.store
            if not store.is_registered(player):
                raise NotRegistered(player)
            if not store.active and not self.config.allow_play_after_end:
                raise TournamentClosed(player, action="game")

            computer = self._draw()
            is_out = choice == computer
            score = store.round_score(player) or 0

            if not is_out:
                score += choice
                store.set_round_score(player, score)
                return TurnResult(
                    player=player,
                    player_choice=choice,
                    computer_choice=computer,
                    is_out=False,
                    score=score,
                    best_score=store.best_score(player),
                )

            previous_best = store.best_score(player)
            if score > previous_best:
                store.set_best_score(player, score)
            store.record_game(player)
            store.clear_round(player)
            best = store.best_score(player)

        logger.info(f"{player} out for {score} (best {best})")
        if score > previous_best:
            logger.info(f"New personal best for {player}: {score}")
        return TurnResult(
            player=player,
            player_choice=choice,
            computer_choice=computer,
            is_out=True,
            score=score,
            best_score=best,
        )

    def end_tournament(self, admin: str) -> TournamentResult:
        """Close the tournament and rank the winners. Admin only."""
        with self._lock:
            if admin != self.config.admin:
                raise Unauthorized(admin)
            if not self.store.active:
                raise TournamentClosed(admin, action="end-tournament")

            winners = self._ranked(self.config.winners)
            total_pot = self._total_pot()
            self.store.active = False

        payouts = distribute(total_pot, [w.player for w in winners], self.config.admin)
        logger.info(
            f"Tournament ended: {len(winners)} winners, pot {total_pot} lamports"
        )
        return TournamentResult(winners=winners, total_pot=total_pot, payouts=payouts)

    def leaderboard(self) -> list[LeaderboardEntry]:
        """Best scores, highest first. Empty until someone goes out."""
        with self._lock:
            return self._ranked(self.config.leaderboard_size)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self.store.active

    def status(self) -> dict:
        with self._lock:
            snap = self.store.snapshot()
            snap["total_pot"] = self._total_pot()
            snap["allow_play_after_end"] = self.config.allow_play_after_end
            return snap

    def player(self, player: str) -> PlayerSnapshot:
        with self._lock:
            store = self.store
            return PlayerSnapshot(
                player=player,
                registered=store.is_registered(player),
                round_score=store.round_score(player),
                best_score=store.best_score(player),
                games_played=store.games_played(player),
            )

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _draw(self) -> int:
        move = self._move_source()
        if move not in CHOICES:
            raise ValueError(f"Move source returned {move!r}, expected 1..6")
        return move

    def _ranked(self, limit: int) -> list[LeaderboardEntry]:
        # sorted() is stable, so equal scores keep first-recorded order
        ranked = sorted(self.store.best_scores(), key=lambda item: item[1], reverse=True)
        return [LeaderboardEntry(player=p, score=s) for p, s in ranked[:limit]]

    def _total_pot(self) -> int:
        return self.store.registered_count * self.config.entry_fee_lamports
