"""Daily points allocation between protocol users"""
import logging
from decimal import Decimal, localcontext
from typing import Dict, Iterator, Tuple

from visibility_points.bonding_curve import compute_trade_cost
from visibility_points.models.activity import ActivitySnapshot
from visibility_points.models.points import PointsAllocation, PointsWeights, RuleFlags
from visibility_points.utils import format_ether

logger = logging.getLogger(__name__)

BASE_POINTS = Decimal(100_000)
POINTS_PER_PROTOCOL_FEE_ETH = Decimal(50_000)

# Enough digits for uint256 wei values with 18 decimals to spare
PRECISION = 78

Contribution = Tuple[str, Decimal]


def compute_total_points(
        snapshot: ActivitySnapshot,
        base_points: Decimal = BASE_POINTS,
        points_per_protocol_fee_eth: Decimal = POINTS_PER_PROTOCOL_FEE_ETH
) -> Decimal:
    """Base points plus a bonus per ETH of protocol fees collected that day"""
    aggregate = snapshot.users_day_activities
    total_protocol_fees = aggregate.protocol_fees if aggregate else 0
    return base_points + points_per_protocol_fee_eth * format_ether(total_protocol_fees)


def points_from_daily_activity(snapshot: ActivitySnapshot, pool: Decimal) -> Iterator[Contribution]:
    """Equal split of the pool between the day's active users"""
    aggregate = snapshot.users_day_activities
    if not aggregate or aggregate.nb_active_users <= 0:
        return

    points_per_active_user = pool / aggregate.nb_active_users
    for activity in snapshot.user_day_activities:
        if activity.is_active_user:
            yield activity.user_address, points_per_active_user


def points_from_holdings(snapshot: ActivitySnapshot, pool: Decimal) -> Iterator[Contribution]:
    """Split of the pool by each user's share of the total value locked"""
    total_holdings_eth = snapshot.total_value_locked
    if total_holdings_eth <= 0:
        return

    for holding in snapshot.visibility_balances:
        if holding.balance <= 0 or holding.total_supply <= 0:
            continue

        # Value of the whole visibility if every credit were sold back
        total_holdings_wei = compute_trade_cost(holding.total_supply, holding.total_supply, False)
        balance_share = Decimal(holding.balance) / Decimal(holding.total_supply)
        user_holdings_eth = format_ether(total_holdings_wei) * balance_share

        yield holding.user_address, pool * (user_holdings_eth / total_holdings_eth)


def _points_from_fees(snapshot: ActivitySnapshot, pool: Decimal, attribute: str) -> Iterator[Contribution]:
    aggregate = snapshot.users_day_activities
    if not aggregate:
        return

    total_fees = Decimal(getattr(aggregate, attribute))
    if total_fees <= 0:
        return

    for activity in snapshot.user_day_activities:
        user_fees = Decimal(getattr(activity, attribute))
        yield activity.user_address, pool * (user_fees / total_fees)


def points_from_protocol_fees(snapshot: ActivitySnapshot, pool: Decimal) -> Iterator[Contribution]:
    """Split of the pool by each user's share of protocol fees paid"""
    return _points_from_fees(snapshot, pool, 'protocol_fees')


def points_from_referral_fees(snapshot: ActivitySnapshot, pool: Decimal) -> Iterator[Contribution]:
    """Split of the pool by each user's share of referrer fees earned"""
    return _points_from_fees(snapshot, pool, 'referrer_fees')


def _add_points(points: Dict[str, Decimal], contributions: Iterator[Contribution]) -> None:
    for user_address, nb_points_to_add in contributions:
        if nb_points_to_add > 0:
            key = user_address.lower()
            points[key] = points.get(key, Decimal(0)) + nb_points_to_add


def allocate(
        snapshot: ActivitySnapshot,
        flags: RuleFlags = RuleFlags(),
        weights: PointsWeights = PointsWeights(),
        base_points: Decimal = BASE_POINTS,
        points_per_protocol_fee_eth: Decimal = POINTS_PER_PROTOCOL_FEE_ETH
) -> PointsAllocation:
    """
    Allocate the day's points between users.

    Rules run in a fixed order (daily activity, holdings, protocol fees,
    referrals), which sets the insertion order of the returned mapping and
    therefore the leaf order of the merkle tree.

    Args:
        snapshot: Activity of the day
        flags: Rules to apply
        weights: Share of the total points given to each rule

    Returns:
        PointsAllocation: Total points and strictly positive points per address
    """
    with localcontext() as ctx:
        ctx.prec = PRECISION

        total_points = compute_total_points(snapshot, base_points, points_per_protocol_fee_eth)
        points: Dict[str, Decimal] = {}

        rules = (
            (flags.add_from_daily_active_users, weights.daily_active_users, points_from_daily_activity),
            (flags.add_from_holdings, weights.holdings, points_from_holdings),
            (flags.add_from_protocol_fees, weights.protocol_fees, points_from_protocol_fees),
            (flags.add_from_referrals, weights.referrals, points_from_referral_fees),
        )
        for enabled, share, rule in rules:
            if enabled:
                _add_points(points, rule(snapshot, total_points * share))

    logger.info(f"Allocated {total_points} points between {len(points)} users")
    return PointsAllocation(total_points=total_points, points=points)
