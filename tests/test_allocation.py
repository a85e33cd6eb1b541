"""
Tests for daily points allocation:
- total points to reward
- each rule in isolation
- accumulation and ordering of user points
"""
from decimal import Decimal

import pytest

from conftest import ALICE, BOB, CAROL, ETHER
from visibility_points.allocation import allocate, compute_total_points
from visibility_points.bonding_curve import compute_trade_cost
from visibility_points.models.activity import ActivitySnapshot, UserDayActivity, UsersDayActivity
from visibility_points.models.points import PointsWeights, RuleFlags
from visibility_points.utils import format_ether

NO_RULES = RuleFlags(
    add_from_protocol_fees=False,
    add_from_holdings=False,
    add_from_referrals=False,
    add_from_daily_active_users=False,
)


def only(rule: str) -> RuleFlags:
    return RuleFlags(**{**vars(NO_RULES), rule: True})


class TestTotalPoints:

    def test_base_points_without_fees(self, example_snapshot):
        assert compute_total_points(example_snapshot) == Decimal(100_000)

    def test_bonus_per_protocol_fee_eth(self, fees_snapshot):
        assert compute_total_points(fees_snapshot) == Decimal(200_000)

    def test_no_aggregate_means_base_points(self):
        snapshot = ActivitySnapshot(total_value_locked=Decimal(0))
        assert compute_total_points(snapshot) == Decimal(100_000)

    def test_fractional_fees(self):
        snapshot = ActivitySnapshot(
            total_value_locked=Decimal(0),
            users_day_activities=UsersDayActivity(nb_active_users=0, protocol_fees=ETHER // 1000, referrer_fees=0),
        )
        assert compute_total_points(snapshot) == Decimal(100_050)


class TestRules:

    def test_all_rules_disabled_gives_no_points(self, fees_snapshot):
        allocation = allocate(fees_snapshot, NO_RULES)
        assert allocation.points == {}
        assert allocation.total_points == Decimal(200_000)

    def test_daily_active_users_equal_split(self, fees_snapshot):
        allocation = allocate(fees_snapshot, only('add_from_daily_active_users'))
        # 6% of 200k split between 3 active users
        expected = Decimal(12_000) / 3
        assert allocation.points == {ALICE: expected, BOB: expected, CAROL: expected}

    def test_daily_active_users_skips_inactive(self):
        snapshot = ActivitySnapshot(
            total_value_locked=Decimal(0),
            users_day_activities=UsersDayActivity(nb_active_users=1, protocol_fees=0, referrer_fees=0),
            user_day_activities=[
                UserDayActivity(user_address=ALICE, is_active_user=True, protocol_fees=0, referrer_fees=0),
                UserDayActivity(user_address=BOB, is_active_user=False, protocol_fees=0, referrer_fees=0),
            ],
        )
        allocation = allocate(snapshot, only('add_from_daily_active_users'))
        assert allocation.points == {ALICE: Decimal(6_000)}

    def test_daily_active_users_skipped_without_active_users(self):
        snapshot = ActivitySnapshot(
            total_value_locked=Decimal(0),
            users_day_activities=UsersDayActivity(nb_active_users=0, protocol_fees=0, referrer_fees=0),
            user_day_activities=[
                UserDayActivity(user_address=ALICE, is_active_user=True, protocol_fees=0, referrer_fees=0),
            ],
        )
        assert allocate(snapshot, only('add_from_daily_active_users')).points == {}

    def test_protocol_fees_split(self, fees_snapshot):
        allocation = allocate(fees_snapshot, only('add_from_protocol_fees'))
        assert allocation.points == {ALICE: Decimal(112_500), BOB: Decimal(37_500)}
        assert sum(allocation.points.values()) == Decimal(150_000)

    def test_referral_fees_split(self, fees_snapshot):
        allocation = allocate(fees_snapshot, only('add_from_referrals'))
        assert allocation.points == {BOB: Decimal(2_000), CAROL: Decimal(6_000)}
        assert CAROL in allocation.points and ALICE not in allocation.points

    def test_fee_rules_skipped_without_fees(self, example_snapshot):
        flags = RuleFlags(add_from_holdings=False, add_from_daily_active_users=False)
        assert allocate(example_snapshot, flags).points == {}

    def test_holdings_share_of_tvl(self, fees_snapshot):
        allocation = allocate(fees_snapshot, only('add_from_holdings'))
        pool_value = format_ether(compute_trade_cost(40, 40, False))
        holdings_pool = Decimal(30_000)
        assert allocation.points[BOB] == holdings_pool * (pool_value * Decimal(10) / Decimal(40) / Decimal(10))
        assert allocation.points[CAROL] == holdings_pool * (pool_value * Decimal(30) / Decimal(40) / Decimal(10))

    def test_holdings_skipped_when_tvl_is_zero(self, example_snapshot):
        example_snapshot.total_value_locked = Decimal(0)
        assert allocate(example_snapshot, only('add_from_holdings')).points == {}


class TestAllocate:

    def test_example_day(self, example_snapshot):
        allocation = allocate(example_snapshot)

        assert allocation.total_points == Decimal(100_000)
        # Half of the 6k active users pool each, Alice also gets her holdings share
        assert allocation.points[BOB] == Decimal(3_000)
        assert allocation.points[ALICE] == Decimal("3000.00000008465064375")

    def test_addresses_are_lowercased_and_merged(self):
        upper_alice = "0x" + "A1" * 20
        snapshot = ActivitySnapshot(
            total_value_locked=Decimal(0),
            users_day_activities=UsersDayActivity(nb_active_users=2, protocol_fees=ETHER, referrer_fees=0),
            user_day_activities=[
                UserDayActivity(user_address=upper_alice, is_active_user=True, protocol_fees=ETHER, referrer_fees=0),
            ],
        )
        allocation = allocate(snapshot)
        assert list(allocation.points) == [ALICE]
        # 6% of 150k halved plus 75% of 150k
        assert allocation.points[ALICE] == Decimal(4_500) + Decimal(112_500)

    def test_insertion_order_follows_rule_order(self, fees_snapshot):
        fees_snapshot.users_day_activities.nb_active_users = 1
        fees_snapshot.user_day_activities[0].is_active_user = False
        fees_snapshot.user_day_activities[1].is_active_user = False
        # Carol first from daily activity, Bob from holdings, Alice from protocol fees
        assert list(allocate(fees_snapshot).points) == [CAROL, BOB, ALICE]

    def test_rules_accumulate(self, fees_snapshot):
        allocation = allocate(fees_snapshot)
        holdings = allocate(fees_snapshot, only('add_from_holdings')).points

        # Active users, protocol fees and referrals pools are fully distributed
        distributed = Decimal(12_000) + Decimal(150_000) + Decimal(8_000)
        assert sum(allocation.points.values()) - distributed == sum(holdings.values())
        assert sum(allocation.points.values()) <= allocation.total_points

    def test_custom_weights(self, fees_snapshot):
        weights = PointsWeights(
            protocol_fees=Decimal("1"),
            holdings=Decimal("0"),
            referrals=Decimal("0"),
            daily_active_users=Decimal("0"),
        )
        allocation = allocate(fees_snapshot, weights=weights)
        assert allocation.points == {ALICE: Decimal(150_000), BOB: Decimal(50_000)}

    def test_invalid_weights_rejected(self):
        with pytest.raises(ValueError):
            PointsWeights(protocol_fees=Decimal("0.8"))

    def test_same_snapshot_same_allocation(self, fees_snapshot):
        assert allocate(fees_snapshot) == allocate(fees_snapshot)
