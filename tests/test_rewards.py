"""Tests for handcricket.rewards: pot split between winners and admin."""

from handcricket.rewards import DISTRIBUTION, distribute, reward_pot

SOL = 1_000_000_000
ADMIN = "admin"


class TestRewardPot:
    def test_eighty_percent(self):
        assert reward_pot(10 * SOL) == 8 * SOL

    def test_floors(self):
        assert reward_pot(7) == 5


class TestDistribute:
    def test_five_winners_pay_out_whole_pot(self):
        pot = 10 * SOL
        payouts = distribute(pot, ["a", "b", "c", "d", "e"], ADMIN)

        winners = [p for p in payouts if p.place is not None]
        assert [p.recipient for p in winners] == ["a", "b", "c", "d", "e"]
        assert [p.lamports for p in winners] == [
            8 * SOL * pct // 100 for pct in DISTRIBUTION
        ]
        assert payouts[-1].recipient == ADMIN
        assert payouts[-1].place is None
        assert sum(p.lamports for p in payouts) == pot

    def test_fewer_winners_leave_remainder(self):
        pot = 10 * SOL
        payouts = distribute(pot, ["a", "b"], ADMIN)
        assert [(p.recipient, p.place) for p in payouts] == [("a", 1), ("b", 2), (ADMIN, None)]
        assert payouts[0].lamports == 3_200_000_000
        assert payouts[1].lamports == 2 * SOL
        assert payouts[2].lamports == 2 * SOL

    def test_extra_winners_ignored(self):
        payouts = distribute(SOL, [f"p{i}" for i in range(8)], ADMIN)
        assert len([p for p in payouts if p.place is not None]) == 5

    def test_empty_pot(self):
        assert distribute(0, ["a"], ADMIN) == []

    def test_no_winners_admin_only(self):
        payouts = distribute(SOL, [], ADMIN)
        assert len(payouts) == 1
        assert payouts[0].recipient == ADMIN
        assert payouts[0].lamports == SOL // 5
