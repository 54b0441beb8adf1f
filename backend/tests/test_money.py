from decimal import Decimal
import unittest
import uuid
from collections import defaultdict

from autocrm.utils.money import compute_shares, compute_weighted_shares, percent_of, quantize_money


class TestMoney(unittest.TestCase):
    def test_quantize_rounds_half_up(self):
        self.assertEqual(quantize_money(Decimal("1.005")), Decimal("1.01"))
        self.assertEqual(quantize_money(Decimal("1.004")), Decimal("1.00"))

    def test_percent_of(self):
        self.assertEqual(percent_of(Decimal("6000"), Decimal("60")), Decimal("3600.00"))
        self.assertEqual(percent_of(Decimal("0.05"), Decimal("50")), Decimal("0.03"))

    def test_weighted_shares_exact_sum(self):
        """Shares always sum exactly to the amount, whatever the weights."""
        amount = Decimal("100.00")
        weights = {"a": Decimal("33.3"), "b": Decimal("33.3"), "c": Decimal("33.4")}
        shares = compute_weighted_shares(amount, weights)
        self.assertEqual(sum(shares.values()), amount)

    def test_weighted_shares_proportional(self):
        amount = Decimal("3600.00")
        shares = compute_weighted_shares(amount, {"a": Decimal("50"), "b": Decimal("50")})
        self.assertEqual(shares, {"a": Decimal("1800.00"), "b": Decimal("1800.00")})

    def test_weighted_shares_normalize_by_total(self):
        """Weights summing to 120 behave like the same weights scaled to 100."""
        amount = Decimal("3500.00")
        shares = compute_weighted_shares(amount, {"a": Decimal("60"), "b": Decimal("60")})
        self.assertEqual(shares, {"a": Decimal("1750.00"), "b": Decimal("1750.00")})

    def test_weighted_shares_largest_remainder(self):
        """The leftover cent goes to the key with the largest fractional part."""
        amount = Decimal("0.10")
        # exact cents: a = 6.666.., b = 3.333..
        shares = compute_weighted_shares(amount, {"a": Decimal("2"), "b": Decimal("1")})
        self.assertEqual(shares, {"a": Decimal("0.07"), "b": Decimal("0.03")})

    def test_weighted_shares_zero_weights(self):
        shares = compute_weighted_shares(Decimal("10.00"), {"a": Decimal("0"), "b": Decimal("0")})
        self.assertEqual(shares, {"a": Decimal("0.00"), "b": Decimal("0.00")})

    def test_weighted_shares_empty(self):
        self.assertEqual(compute_weighted_shares(Decimal("10.00"), {}), {})

    def test_compute_shares_remainder(self):
        amount = Decimal("10.00")  # 3.33, 3.33, 3.34
        shares = compute_shares(amount, ["u1", "u2", "u3"])
        values = sorted(shares.values())
        self.assertEqual(values, [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")])
        self.assertEqual(sum(values), amount)

    def test_seed_spreads_extra_cent(self):
        """Different seeds hand the extra cent to different keys."""
        amount = Decimal("0.04")
        users = ["u1", "u2", "u3"]
        counts = defaultdict(int)
        for _ in range(100):
            shares = compute_shares(amount, users, seed=str(uuid.uuid4()))
            for uid, share in shares.items():
                if share == Decimal("0.02"):
                    counts[uid] += 1
        self.assertTrue(len(counts) > 1, "The extra cent should not always go to the same key")

    def test_same_seed_same_result(self):
        weights = {"u1": Decimal("1"), "u2": Decimal("1"), "u3": Decimal("1")}
        first = compute_weighted_shares(Decimal("10.00"), weights, seed="order-1")
        second = compute_weighted_shares(Decimal("10.00"), weights, seed="order-1")
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
