"""Quadratic bonding curve pricing of visibility credits"""

A = 15
B = 25_000
BASE_PRICE = 10_000_000


def compute_trade_cost(total_supply: int, amount: int, is_buy: bool) -> int:
    """
    Cost in wei of buying or selling `amount` credits at `total_supply`.

    Price of the n-th credit is BASE_PRICE + A * n^2 + B * n, so the cost of a
    trade is the closed-form sum over the supply range it crosses.

    Raises:
        ValueError: If amount is zero
    """
    from_supply = total_supply if is_buy else total_supply - amount

    if amount == 0:
        raise ValueError("InvalidAmount")

    to_supply = from_supply + amount - 1

    if from_supply == 0:
        sum_squares = (to_supply * (to_supply + 1) * (2 * to_supply + 1)) // 6
        sum_first_n = (to_supply * (to_supply + 1)) // 2
    else:
        sum_squares_to = (to_supply * (to_supply + 1) * (2 * to_supply + 1)) // 6
        sum_squares_from = ((from_supply - 1) * from_supply * (2 * from_supply - 1)) // 6
        sum_squares = sum_squares_to - sum_squares_from

        sum_first_n_to = (to_supply * (to_supply + 1)) // 2
        sum_first_n_from = ((from_supply - 1) * from_supply) // 2
        sum_first_n = sum_first_n_to - sum_first_n_from

    return BASE_PRICE * amount + A * sum_squares + B * sum_first_n
