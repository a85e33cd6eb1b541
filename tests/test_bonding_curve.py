"""Tests for bonding curve trade costs"""
import pytest

from visibility_points.bonding_curve import A, B, BASE_PRICE, compute_trade_cost


def price(n: int) -> int:
    return BASE_PRICE + A * n * n + B * n


class TestComputeTradeCost:

    def test_first_credit(self):
        assert compute_trade_cost(0, 1, True) == BASE_PRICE

    def test_second_credit(self):
        assert compute_trade_cost(1, 1, True) == 10_025_015

    def test_sell_whole_supply(self):
        assert compute_trade_cost(100, 100, False) == 1_128_675_250

    @pytest.mark.parametrize("supply,amount", [(0, 5), (3, 4), (10, 1), (57, 23)])
    def test_matches_sum_of_prices(self, supply, amount):
        assert compute_trade_cost(supply, amount, True) == sum(price(n) for n in range(supply, supply + amount))

    @pytest.mark.parametrize("supply,amount", [(0, 5), (12, 8), (99, 1)])
    def test_sell_mirrors_buy(self, supply, amount):
        assert compute_trade_cost(supply + amount, amount, False) == compute_trade_cost(supply, amount, True)

    def test_zero_amount(self):
        with pytest.raises(ValueError, match="InvalidAmount"):
            compute_trade_cost(10, 0, True)
