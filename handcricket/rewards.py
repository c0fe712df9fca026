"""
handcricket/rewards.py - Reward split the tournament program pays out.

Pure arithmetic, mirrors what end_tournament does onchain so the admin
endpoint can show winners what they are about to receive.
"""

from dataclasses import dataclass

# 80% of the pot goes to the winners, the rest to the admin
REWARD_POT_PCT = 80

# Per-place share of the reward pot, in percent
DISTRIBUTION = (40, 25, 15, 10, 10)


@dataclass
class Payout:
    """One transfer out of the tournament account."""

    recipient: str
    lamports: int
    place: int | None = None  # None for the admin share


def reward_pot(total_pot: int) -> int:
    """Lamports reserved for winners."""
    return total_pot * REWARD_POT_PCT // 100


def distribute(total_pot: int, winners: list[str], admin: str) -> list[Payout]:
    """Split the pot between ranked winners and the admin.

    Only as many places as there are winners get paid; unpaid places stay
    in the tournament account, the same as onchain. Zero-lamport shares are
    skipped.
    """
    pot = reward_pot(total_pot)
    payouts = []
    for place, (winner, pct) in enumerate(zip(winners, DISTRIBUTION), start=1):
        share = pot * pct // 100
        if share > 0:
            payouts.append(Payout(recipient=winner, lamports=share, place=place))

    admin_share = total_pot - pot
    if admin_share > 0:
        payouts.append(Payout(recipient=admin, lamports=admin_share))
    return payouts
