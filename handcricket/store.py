"""
handcricket/store.py - In-memory storage for the tournament session tracker.

One instance per server lifetime. Nothing here enforces game rules; the
tracker owns the checks and holds the lock around every read-check-write.
Dicts keep insertion order, which is what the leaderboard tie-break relies on.
"""

from typing import Any


class TournamentStore:
    """Process-local mirror of the tournament and player accounts."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.active = True
        # player -> registration order (dict used as an ordered set)
        self._registered: dict[str, int] = {}
        self._round_scores: dict[str, int] = {}
        self._best_scores: dict[str, int] = {}
        self._games_played: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def registered_count(self) -> int:
        return len(self._registered)

    def is_registered(self, player: str) -> bool:
        return player in self._registered

    def add_player(self, player: str) -> None:
        self._registered[player] = len(self._registered)

    def players(self) -> list[str]:
        """Registered players in registration order."""
        return list(self._registered)

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def round_score(self, player: str) -> int | None:
        """Running score for a live round, None between rounds."""
        return self._round_scores.get(player)

    def set_round_score(self, player: str, score: int) -> None:
        self._round_scores[player] = score

    def clear_round(self, player: str) -> None:
        self._round_scores.pop(player, None)

    def best_score(self, player: str) -> int:
        return self._best_scores.get(player, 0)

    def set_best_score(self, player: str, score: int) -> None:
        self._best_scores[player] = score

    def best_scores(self) -> list[tuple[str, int]]:
        """(player, best) pairs in first-recorded order."""
        return list(self._best_scores.items())

    def games_played(self, player: str) -> int:
        return self._games_played.get(player, 0)

    def record_game(self, player: str) -> None:
        self._games_played[player] = self._games_played.get(player, 0) + 1

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Counts only, safe to hand to a health endpoint."""
        return {
            "active": self.active,
            "capacity": self.capacity,
            "registered": self.registered_count,
            "live_rounds": len(self._round_scores),
            "completed_rounds": sum(self._games_played.values()),
        }
