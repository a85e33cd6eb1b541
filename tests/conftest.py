"""Shared fixtures for points tests"""
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from visibility_points.models.activity import (
    ActivitySnapshot,
    UserDayActivity,
    UsersDayActivity,
    VisibilityBalance,
)
from visibility_points.models.db import Base

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20

ETHER = 10 ** 18


@pytest.fixture
def example_snapshot():
    """TVL of 100 ETH, Alice holds half a visibility, Alice and Bob active, no fees."""
    return ActivitySnapshot(
        total_value_locked=Decimal(100),
        visibility_balances=[
            VisibilityBalance(user_address=ALICE, balance=50, total_supply=100),
        ],
        users_day_activities=UsersDayActivity(nb_active_users=2, protocol_fees=0, referrer_fees=0),
        user_day_activities=[
            UserDayActivity(user_address=ALICE, is_active_user=True, protocol_fees=0, referrer_fees=0),
            UserDayActivity(user_address=BOB, is_active_user=True, protocol_fees=0, referrer_fees=0),
        ],
    )


@pytest.fixture
def fees_snapshot():
    """2 ETH of protocol fees and 1 ETH of referrer fees split unevenly."""
    return ActivitySnapshot(
        total_value_locked=Decimal(10),
        visibility_balances=[
            VisibilityBalance(user_address=BOB, balance=10, total_supply=40),
            VisibilityBalance(user_address=CAROL, balance=30, total_supply=40),
        ],
        users_day_activities=UsersDayActivity(
            nb_active_users=3, protocol_fees=2 * ETHER, referrer_fees=1 * ETHER
        ),
        user_day_activities=[
            UserDayActivity(user_address=ALICE, is_active_user=True,
                            protocol_fees=3 * ETHER // 2, referrer_fees=0),
            UserDayActivity(user_address=BOB, is_active_user=True,
                            protocol_fees=ETHER // 2, referrer_fees=ETHER // 4),
            UserDayActivity(user_address=CAROL, is_active_user=True,
                            protocol_fees=0, referrer_fees=3 * ETHER // 4),
        ],
    )


@pytest.fixture
def session():
    """In-memory SQLite session with all tables created."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
